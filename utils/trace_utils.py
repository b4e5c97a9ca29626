# utils/trace_utils.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List


def _lines(x: Any) -> List[Any]:
    if isinstance(x, list):
        return x
    return []


def _line_sku(line: Any) -> str:
    if isinstance(line, dict):
        return str(line.get("sku") or "")
    return str(getattr(line, "sku", "") or "")


def _line_qty(line: Any) -> Any:
    if isinstance(line, dict):
        return line.get("qty")
    return getattr(line, "qty", None)


def plan_summary(plan: Any) -> Dict[str, Any]:
    """
    Compact plan view for logs: SKU/qty pairs instead of full lines.
    Accepts a Plan model or its dict dump.
    """
    if plan is None:
        return {"_plan": None}
    if hasattr(plan, "model_dump"):
        plan = plan.model_dump()
    if not isinstance(plan, dict):
        return {"_type": str(type(plan))}

    return {
        "title": plan.get("title"),
        "steps_count": len(_lines(plan.get("steps"))),
        "basket": [f"{_line_sku(it)}x{_line_qty(it)}" for it in _lines(plan.get("basket"))],
        "upsell": [_line_sku(it) for it in _lines(plan.get("upsell"))],
        "has_confirm": bool(plan.get("confirm")),
    }


def cart_summary(cart: Iterable[Any]) -> List[str]:
    return [f"{_line_sku(it)}x{_line_qty(it)}" for it in (cart or [])]


def basket_diff_hint(before: Iterable[Any], after: Iterable[Any], max_changed: int = 30) -> Dict[str, Any]:
    """
    Basket change between two reconciliation steps.
    - added / removed SKUs
    - SKUs whose qty changed
    """
    b = {_line_sku(it): _line_qty(it) for it in (before or [])}
    a = {_line_sku(it): _line_qty(it) for it in (after or [])}

    hint: Dict[str, Any] = {}

    added = [s for s in a if s not in b]
    removed = [s for s in b if s not in a]
    qty_changed = [s for s in a if s in b and a[s] != b[s]]

    for key, vals in (("added", added), ("removed", removed), ("qty_changed", qty_changed)):
        if not vals:
            continue
        if len(vals) > max_changed:
            hint[key] = vals[:max_changed]
            hint[f"{key}_truncated"] = True
        else:
            hint[key] = vals

    return hint
