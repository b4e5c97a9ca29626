# domain/kiosk/upsell.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

from domain.kiosk.verticals.loader import load_vertical
from models.plan import UpsellSuggestion

MAX_SUGGESTIONS = 2


def _rule_fires(rule: Dict[str, Any], skus: set) -> bool:
    target = rule.get("sku")
    if not target or target in skus:
        return False

    when_any = rule.get("when_any") or []
    if any(s in skus for s in when_any):
        return True

    prefixes = rule.get("when_prefix") or []
    if any(s.startswith(p) for p in prefixes for s in skus):
        return True

    return False


def suggest_upsell(
    basket_skus: Iterable[str],
    rules: Optional[Sequence[Dict[str, Any]]] = None,
    limit: int = MAX_SUGGESTIONS,
) -> List[UpsellSuggestion]:
    """
    Cross-sell from the FINAL basket only (never the model's upsell).
    Rules run in table order; each fires when a trigger SKU/prefix is present
    and its target is absent.
    """
    if rules is None:
        rules = load_vertical().get("upsell_rules") or []

    skus = set(basket_skus or [])
    out: List[UpsellSuggestion] = []
    for rule in rules:
        if not isinstance(rule, dict) or not _rule_fires(rule, skus):
            continue
        if any(u.sku == rule["sku"] for u in out):
            continue
        out.append(UpsellSuggestion(sku=rule["sku"], name=str(rule.get("name") or rule["sku"])))

    return out[: max(0, int(limit))]
