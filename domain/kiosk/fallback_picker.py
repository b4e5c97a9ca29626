# domain/kiosk/fallback_picker.py
"""
Keyword Fallback Picker.

Used whenever the generated basket has to be thrown away and rebuilt without
the model. Scoring per candidate:
  +2 for every keyword group with a member in both the utterance and the
     product text (name/description/category/subcategory, substring match)
  +1 when the product is in stock
Only score > 0 survives; ties keep candidate order.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from domain.kiosk.catalog_repo import CandidateSet, Product
from domain.kiosk.policy import product_text
from nlu.normalizer import normalize_text


def _groups(vertical: Optional[Dict[str, Any]]) -> List[List[str]]:
    raw = (vertical or {}).get("keyword_groups") or []
    out: List[List[str]] = []
    for g in raw:
        if isinstance(g, (list, tuple)):
            words = [normalize_text(w) for w in g if isinstance(w, str) and w.strip()]
            if words:
                out.append(words)
    return out


def score_candidate(query_text: str, product: Product, groups: Sequence[Sequence[str]]) -> int:
    hay = product_text(product)
    score = 0
    for group in groups:
        in_q = any(k in query_text for k in group)
        in_c = any(k in hay for k in group)
        if in_q and in_c:
            score += 2
    if product.in_stock:
        score += 1
    return score


def pick_by_keywords(
    q: str,
    q_norm: str,
    candidates: CandidateSet,
    limit: int = 3,
    *,
    vertical: Optional[Dict[str, Any]] = None,
    exclude: Iterable[str] = (),
) -> List[Product]:
    groups = _groups(vertical)
    query_text = normalize_text(f"{q or ''} {q_norm or ''}")
    skip = set(exclude or ())

    scored: List[Tuple[Product, int]] = []
    for p in candidates.values():
        if p.sku in skip:
            continue
        s = score_candidate(query_text, p, groups)
        if s > 0:
            scored.append((p, s))

    # sorted() is stable: equal scores keep candidate order
    scored = sorted(scored, key=lambda x: x[1], reverse=True)
    return [p for p, _ in scored[: max(0, int(limit))]]
