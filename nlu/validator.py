# nlu/validator.py
"""
Untrusted model output -> trusted Plan.

parse_proposal() tags the raw payload as ValidProposal | MalformedProposal.
validate_proposal() is the only place where proposed lines become BasketLines:
  - SKUs outside the candidate set are dropped (hallucination guard)
  - one line per SKU (first wins)
  - name/price/stock/image come from the catalog product, never the model
  - basket qty: client cart wins, else the proposal's qty floored at 1
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from domain.kiosk.catalog_repo import CandidateSet
from domain.kiosk.policy import line_from_product
from models.plan import BasketLine, Plan, coerce_qty
from utils.logging import log_event

MAX_STEPS = 5


@dataclass(frozen=True)
class ValidProposal:
    plan: Dict[str, Any] = field(default_factory=dict)
    reply: str = ""


@dataclass(frozen=True)
class MalformedProposal:
    reason: str


Proposal = Union[ValidProposal, MalformedProposal]


def parse_proposal(raw: Any) -> Proposal:
    """
    raw: model text (str/bytes), an already-decoded dict, or None when the
    model call failed.
    """
    if raw is None:
        return MalformedProposal("no_proposal")

    if isinstance(raw, dict):
        obj: Any = raw
    elif isinstance(raw, (str, bytes, bytearray)):
        try:
            obj = json.loads(raw)
        except ValueError:
            return MalformedProposal("invalid_json")
    else:
        return MalformedProposal(f"unsupported_type:{type(raw).__name__}")

    if not isinstance(obj, dict):
        return MalformedProposal("not_an_object")

    plan = obj.get("plan")
    reply = obj.get("reply")
    return ValidProposal(
        plan=plan if isinstance(plan, dict) else {},
        reply=reply.strip() if isinstance(reply, str) else "",
    )


def _safe_str(x: Any) -> str:
    return x if isinstance(x, str) else "" if x is None else str(x)


def _steps(x: Any) -> List[str]:
    if not isinstance(x, list):
        return []
    out = [_safe_str(s).strip() for s in x if isinstance(s, (str, int, float))]
    return [s for s in out if s][:MAX_STEPS]


def validate_lines(
    raw_lines: Any,
    candidates: CandidateSet,
    cart_qty: Optional[Mapping[str, int]] = None,
) -> Tuple[List[BasketLine], List[str]]:
    """
    Returns (trusted lines, dropped SKUs).
    cart_qty=None means no quantity reassertion (upsell).
    """
    lines: List[BasketLine] = []
    dropped: List[str] = []
    seen = set()

    if not isinstance(raw_lines, list):
        return lines, dropped

    for x in raw_lines:
        if not isinstance(x, dict):
            continue
        sku = _safe_str(x.get("sku")).strip()
        product = candidates.get(sku)
        if product is None:
            dropped.append(sku)
            continue
        if sku in seen:
            continue
        seen.add(sku)

        if cart_qty is not None and sku in cart_qty:
            qty = cart_qty[sku]
        else:
            qty = coerce_qty(x.get("qty"))

        lines.append(line_from_product(product, qty, _safe_str(x.get("why")).strip()))

    return lines, dropped


def reassert_quantities(lines: List[BasketLine], cart_qty: Mapping[str, int]) -> List[BasketLine]:
    """
    Client cart qty wins for every SKU it holds.
    """
    out: List[BasketLine] = []
    for it in lines:
        if it.sku in cart_qty and it.qty != cart_qty[it.sku]:
            out.append(it.model_copy(update={"qty": cart_qty[it.sku]}))
        else:
            out.append(it)
    return out


def validate_proposal(
    proposal: ValidProposal,
    candidates: CandidateSet,
    cart_qty: Mapping[str, int],
    trace_id: Optional[str] = None,
) -> Plan:
    raw = proposal.plan or {}

    basket, dropped_basket = validate_lines(raw.get("basket"), candidates, cart_qty)
    upsell, dropped_upsell = validate_lines(raw.get("upsell"), candidates, None)

    if dropped_basket or dropped_upsell:
        log_event(
            trace_id,
            "proposal_unknown_skus_dropped",
            {"basket": dropped_basket, "upsell": dropped_upsell},
        )

    return Plan(
        title=_safe_str(raw.get("title")).strip(),
        steps=_steps(raw.get("steps")),
        basket=basket,
        upsell=upsell,
        confirm=_safe_str(raw.get("confirm")).strip(),
    )
