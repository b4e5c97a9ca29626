"""
Tests for the keyword fallback picker (deterministic rebuild of a basket).
"""

from domain.kiosk.fallback_picker import pick_by_keywords, score_candidate
from nlu.normalizer import normalize_text


class TestScoreCandidate:
    def test_group_hit_plus_stock(self, by_sku, hardware):
        groups = [["teflon", "ptfe", "ptf", "cinta"]]
        assert score_candidate("necesito teflon", by_sku["PTF-12"], groups) == 3

    def test_stock_only(self, by_sku):
        assert score_candidate("hola", by_sku["WR-8IN"], []) == 1

    def test_out_of_stock_without_group_is_zero(self, by_sku):
        assert score_candidate("hola", by_sku["PVC-CPL-050"], []) == 0


class TestPickByKeywords:
    def test_matching_candidate_first_regardless_of_order(self, candidates_of, hardware):
        cands = candidates_of("WR-8IN", "PVC-CPL-050", "PVC-GLUE-240", "PTF-12")
        picks = pick_by_keywords("necesito teflón", normalize_text("necesito teflón"), cands, vertical=hardware)
        assert picks[0].sku == "PTF-12"

    def test_zero_score_dropped(self, candidates_of, hardware):
        cands = candidates_of("PVC-CPL-050", "PTF-12")
        picks = pick_by_keywords("necesito teflón", "", cands, vertical=hardware)
        assert [p.sku for p in picks] == ["PTF-12"]

    def test_ties_keep_candidate_order(self, candidates_of, hardware):
        cands = candidates_of("WR-8IN", "PVC-GLUE-240", "MASK-TAPE-36", "CU-TUBE-050")
        picks = pick_by_keywords("algo para la casa", "", cands, vertical=hardware)
        assert [p.sku for p in picks] == ["WR-8IN", "PVC-GLUE-240", "MASK-TAPE-36"]

    def test_limit(self, candidates_of, hardware):
        cands = candidates_of("WR-8IN", "PVC-GLUE-240", "MASK-TAPE-36")
        assert len(pick_by_keywords("algo", "", cands, 1, vertical=hardware)) == 1

    def test_exclude(self, candidates_of, hardware):
        cands = candidates_of("PVC-UNION-050", "PVC-CPL-050", "PTF-12")
        picks = pick_by_keywords("mejor pon el cople", "", cands, vertical=hardware, exclude=["PVC-UNION-050"])
        assert "PVC-UNION-050" not in [p.sku for p in picks]
        # cople group beats the stock bonus even when out of stock
        assert picks[0].sku == "PVC-CPL-050"

    def test_normalized_query_counts(self, candidates_of, hardware):
        cands = candidates_of("CU-TUBE-050", "REP-CORTA-001")
        picks = pick_by_keywords("lo de siempre", "repuesto", cands, vertical=hardware)
        assert picks[0].sku == "REP-CORTA-001"

    def test_no_vertical_scores_stock_only(self, candidates_of):
        cands = candidates_of("PVC-CPL-050", "PTF-12")
        assert [p.sku for p in pick_by_keywords("teflón", "", cands)] == ["PTF-12"]
