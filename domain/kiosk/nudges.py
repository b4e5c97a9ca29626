# domain/kiosk/nudges.py
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Tuple

from domain.kiosk.catalog_repo import CandidateSet, CatalogRepo, CatalogUnavailable, Product
from domain.kiosk.policy import text_matches
from models.plan import Plan
from nlu.normalizer import normalize_text
from utils.logging import log_event


def _lookup(
    sku: str,
    candidates: CandidateSet,
    catalog: Optional[CatalogRepo],
    trace_id: Optional[str],
) -> Optional[Product]:
    p = candidates.get(sku)
    if p is not None or catalog is None:
        return p
    try:
        found = catalog.get_by_skus([sku])
    except CatalogUnavailable as e:
        log_event(trace_id, "nudge_lookup_fail", {"sku": sku, "error": str(e)})
        return None
    return found[0] if found else None


def _nudge_applies(
    rule: Dict[str, Any],
    utterance: str,
    plan: Plan,
    candidates: CandidateSet,
    catalog: Optional[CatalogRepo],
    trace_id: Optional[str],
) -> bool:
    text = normalize_text(utterance)
    words = rule.get("when_all") or []
    if not words or not all(normalize_text(w) in text for w in words):
        return False

    if rule.get("substitute_sku") not in plan.basket_skus():
        return False

    oos = _lookup(str(rule.get("out_of_stock_sku") or ""), candidates, catalog, trace_id)
    return oos is not None and oos.stock == 0


def apply_stock_nudges(
    utterance: str,
    plan: Plan,
    reply: str,
    *,
    candidates: CandidateSet,
    catalog: Optional[CatalogRepo] = None,
    rules: Sequence[Dict[str, Any]] = (),
    trace_id: Optional[str] = None,
) -> Tuple[Plan, str]:
    """
    Text-only pass: basket/upsell lines are never touched.
    When a configured substitute sits in the basket while the item it stands in
    for is out of stock, prepend the warning (unless the reply already says so)
    and make the confirm prompt ask for the substitute.
    """
    for rule in rules or []:
        if not isinstance(rule, dict):
            continue
        if not _nudge_applies(rule, utterance, plan, candidates, catalog, trace_id):
            continue
        if text_matches(rule.get("mentioned"), reply):
            continue

        reply = f"{rule.get('warning') or ''}{reply}"
        if rule.get("confirm"):
            plan = plan.model_copy(update={"confirm": rule["confirm"]})
        log_event(trace_id, "stock_nudge", {"rule": rule.get("name")})

    return plan, reply
