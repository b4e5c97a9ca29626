"""
Tests for pinned SKU backfill and the stock nudge pass.
"""

from domain.kiosk.catalog_memory import InMemoryCatalogRepo
from domain.kiosk.catalog_repo import CatalogUnavailable
from domain.kiosk.nudges import apply_stock_nudges
from domain.kiosk.policy import first_stocked, line_from_product, resolve_skus, text_matches
from models.plan import Plan


class FlakyCatalog(InMemoryCatalogRepo):
    """Fails the first `failures` point lookups."""

    def __init__(self, products, failures):
        super().__init__(products)
        self.failures = failures
        self.calls = 0

    def get_by_skus(self, skus):
        self.calls += 1
        if self.calls <= self.failures:
            raise CatalogUnavailable("db locked")
        return super().get_by_skus(skus)


class TestTextMatches:
    def test_accents_ignored(self):
        assert text_matches(r"teflon", "Cinta de TEFLÓN")

    def test_empty_pattern(self):
        assert not text_matches("", "lo que sea")
        assert not text_matches(None, "lo que sea")


class TestResolveSkus:
    def test_candidates_first_then_catalog(self, candidates_of, memory_catalog):
        cands = candidates_of("PTF-12")
        out = resolve_skus(["PTF-12", "WR-8IN"], candidates=cands, catalog=memory_catalog)
        assert [p.sku for p in out] == ["PTF-12", "WR-8IN"]
        assert "WR-8IN" in cands  # admitted

    def test_retry_then_success(self, candidates_of, catalog_products):
        catalog = FlakyCatalog(catalog_products, failures=1)
        out = resolve_skus(["PTF-12"], candidates=candidates_of(), catalog=catalog)
        assert [p.sku for p in out] == ["PTF-12"]
        assert catalog.calls == 2

    def test_gives_up_after_attempts(self, candidates_of, catalog_products, monkeypatch):
        monkeypatch.setenv("KIOSK_PINNED_FETCH_ATTEMPTS", "3")
        catalog = FlakyCatalog(catalog_products, failures=10)
        cands = candidates_of()
        assert resolve_skus(["PTF-12"], candidates=cands, catalog=catalog) == []
        assert catalog.calls == 3
        assert cands == {}

    def test_unknown_sku_skipped(self, candidates_of, memory_catalog):
        assert resolve_skus(["NOPE"], candidates=candidates_of(), catalog=memory_catalog) == []

    def test_no_catalog(self, candidates_of):
        assert resolve_skus(["PTF-12"], candidates=candidates_of(), catalog=None) == []


class TestFirstStocked:
    def test_skips_out_of_stock(self, by_sku):
        assert first_stocked([by_sku["PVC-CPL-050"], by_sku["PTF-12"]]).sku == "PTF-12"

    def test_none(self, by_sku):
        assert first_stocked([by_sku["PVC-CPL-050"]]) is None


class TestStockNudges:
    def _plan(self, by_sku, *skus):
        return Plan(basket=[line_from_product(by_sku[s], 1, "") for s in skus], confirm="¿Listo?")

    def test_oos_looked_up_in_catalog(self, by_sku, candidates_of, memory_catalog, hardware):
        plan = self._plan(by_sku, "PVC-UNION-050")
        new_plan, reply = apply_stock_nudges(
            "fuga en el PVC",
            plan,
            "Usa la unión.",
            candidates=candidates_of("PVC-UNION-050"),
            catalog=memory_catalog,
            rules=hardware["stock_nudges"],
        )
        assert reply.startswith('El **cople recto 1/2"** está agotado. ')
        assert new_plan.basket == plan.basket

    def test_already_mentioned(self, by_sku, candidates_of, hardware):
        plan = self._plan(by_sku, "PVC-UNION-050")
        new_plan, reply = apply_stock_nudges(
            "fuga en pvc",
            plan,
            "El cople está agotado, usa la unión.",
            candidates=candidates_of("PVC-UNION-050", "PVC-CPL-050"),
            rules=hardware["stock_nudges"],
        )
        assert reply == "El cople está agotado, usa la unión."
        assert new_plan.confirm == "¿Listo?"

    def test_substitute_not_in_basket(self, by_sku, candidates_of, hardware):
        plan = self._plan(by_sku, "PVC-GLUE-240")
        _, reply = apply_stock_nudges(
            "fuga en pvc", plan, "Ok.", candidates=candidates_of("PVC-CPL-050"), rules=hardware["stock_nudges"]
        )
        assert reply == "Ok."

    def test_lookup_failure_is_not_fatal(self, by_sku, candidates_of, catalog_products, hardware):
        plan = self._plan(by_sku, "PVC-UNION-050")
        catalog = FlakyCatalog(catalog_products, failures=10)
        _, reply = apply_stock_nudges(
            "fuga en pvc", plan, "Ok.", candidates=candidates_of("PVC-UNION-050"), catalog=catalog,
            rules=hardware["stock_nudges"],
        )
        assert reply == "Ok."
