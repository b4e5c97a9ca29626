# domain/kiosk/reconciler.py
"""
Basket Reconciliation Engine.

Turns an untrusted {plan, reply} proposal into a plan that only holds real
candidates, respects the client cart quantities and matches the customer's
intent. Steps run in a fixed order:

  1) End short-circuit
  2) parse + candidate-membership filter (nlu.validator)
  3) quantity reassertion (client cart wins)
  4) add path: keep cart, ensure-rules, paired spares
  5) force replace (explicit or implied swap)
  6) empty-basket recovery
  7) cart preservation on non-replace, non-removal turns
  8) stock nudges (text only)
  9) upsell filter (done by the validator, re-checked in the final pass)

Pure function of its inputs plus read-only pinned SKU lookups. The caller's
candidate mapping is never mutated; pinned products are admitted into a copy.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from domain.kiosk.catalog_repo import CandidateSet, CatalogRepo, Product
from domain.kiosk.fallback_picker import pick_by_keywords
from domain.kiosk.nudges import apply_stock_nudges
from domain.kiosk.policy import (
    WHY_KEPT,
    WHY_PREFERENCE,
    WHY_PRIOR_ORDER,
    first_stocked,
    line_from_product,
    line_text,
    product_text,
    resolve_skus,
    text_matches,
)
from domain.kiosk.verticals.loader import load_vertical
from models.plan import BasketLine, CartItem, ConversationTurn, Plan
from nlu.intent import Intent, classify_intent
from nlu.messages import msg
from nlu.normalizer import normalize_query
from nlu.validator import MalformedProposal, parse_proposal, reassert_quantities, validate_proposal
from utils.logging import log_event
from utils.trace_utils import basket_diff_hint, plan_summary


# ----------------------------
# fixed plans
# ----------------------------

def terminal_plan() -> Tuple[Plan, str]:
    return Plan(confirm=msg("end.confirm")), msg("end.reply")


def fallback_plan() -> Tuple[Plan, str]:
    return Plan(confirm=msg("fallback.confirm")), msg("fallback.reply")


def need_details_plan() -> Tuple[Plan, str]:
    plan = Plan(
        title=msg("details.title"),
        steps=[
            msg("details.step.material"),
            msg("details.step.size"),
            msg("details.step.context"),
        ],
        confirm=msg("details.confirm"),
    )
    return plan, msg("details.reply")


# ----------------------------
# helpers
# ----------------------------

def cart_quantities(client_cart: Sequence[CartItem]) -> Dict[str, int]:
    """
    sku -> qty. Duplicate SKUs: first position, last qty.
    """
    out: Dict[str, int] = {}
    for c in client_cart or []:
        out[c.sku] = c.qty
    return out


def _skus(lines: Iterable[BasketLine]) -> Set[str]:
    return {it.sku for it in lines}


def _append_cart_lines(
    basket: List[BasketLine],
    cart_qty: Dict[str, int],
    candidates: CandidateSet,
    why: str,
) -> List[BasketLine]:
    out = list(basket)
    present = _skus(out)
    for sku, qty in cart_qty.items():
        p = candidates.get(sku)
        if p is None or sku in present:
            continue
        out.append(line_from_product(p, qty, why))
        present.add(sku)
    return out


def _picker_lines(
    utterance: str,
    q_norm: str,
    candidates: CandidateSet,
    vertical: Dict[str, Any],
    exclude: Iterable[str],
    limit: int = 3,
) -> List[BasketLine]:
    picks = pick_by_keywords(utterance, q_norm, candidates, limit, vertical=vertical, exclude=exclude)
    return [line_from_product(p, 1, WHY_PREFERENCE) for p in picks]


def _has_category(pattern: str, lines: Iterable[BasketLine]) -> bool:
    return any(text_matches(pattern, line_text(it)) for it in lines)


def mentioned_alternates(utterance: str, vertical: Dict[str, Any]) -> Dict[str, str]:
    """
    category -> pattern, for every alternate category named in the utterance.
    """
    groups = vertical.get("alternate_groups") or {}
    return {cat: pat for cat, pat in groups.items() if text_matches(pat, utterance)}


def _log_step(trace_id: Optional[str], step: str, before: List[BasketLine], after: List[BasketLine]) -> None:
    hint = basket_diff_hint(before, after)
    if hint:
        log_event(trace_id, "reconcile_step", {"step": step, **hint})


# ----------------------------
# step 4: add path
# ----------------------------

def _apply_ensure_rules(
    utterance: str,
    basket: List[BasketLine],
    cart_qty: Dict[str, int],
    candidates: CandidateSet,
    catalog: Optional[CatalogRepo],
    vertical: Dict[str, Any],
    trace_id: Optional[str],
) -> List[BasketLine]:
    """
    Each rule: utterance asks for a need the basket does not cover yet ->
    first stocked heuristic match, else first stocked pinned SKU, else any
    heuristic match, else first pinned SKU, else no-op.
    """
    out = list(basket)
    pinned_table = vertical.get("pinned_fallback_skus") or {}

    for rule in vertical.get("ensure_rules") or []:
        if not text_matches(rule.get("when"), utterance):
            continue
        if _has_category(rule.get("present") or "", out):
            continue

        present = _skus(out)
        patterns = rule.get("match_all") or []
        matches: List[Product] = [
            p
            for p in candidates.values()
            if p.sku not in present and patterns and all(text_matches(pat, product_text(p)) for pat in patterns)
        ]

        pick = first_stocked(matches)
        if pick is None:
            pinned = resolve_skus(
                pinned_table.get(rule.get("pinned_need")) or [],
                candidates=candidates,
                catalog=catalog,
                trace_id=trace_id,
                reason=str(rule.get("name") or ""),
            )
            pinned = [p for p in pinned if p.sku not in present]
            pick = first_stocked(pinned) or (matches[0] if matches else None) or (pinned[0] if pinned else None)

        if pick is None:
            log_event(trace_id, "ensure_rule_noop", {"rule": rule.get("name")})
            continue

        out.append(line_from_product(pick, cart_qty.get(pick.sku, 1), str(rule.get("why") or "")))

    return out


def _apply_paired_spares(
    utterance: str,
    basket: List[BasketLine],
    cart_qty: Dict[str, int],
    candidates: CandidateSet,
    catalog: Optional[CatalogRepo],
    vertical: Dict[str, Any],
    trace_id: Optional[str],
) -> List[BasketLine]:
    if not text_matches(vertical.get("spare_request"), utterance):
        return basket

    out = list(basket)
    pairs = vertical.get("paired_spares") or {}
    for tool_sku in cart_qty:
        spare_sku = pairs.get(tool_sku)
        if not spare_sku or spare_sku in _skus(out):
            continue
        found = resolve_skus(
            [spare_sku],
            candidates=candidates,
            catalog=catalog,
            trace_id=trace_id,
            reason=f"paired_spare:{tool_sku}",
        )
        for p in found:
            out.append(line_from_product(p, cart_qty.get(p.sku, 1), str(vertical.get("paired_spare_why") or "")))
    return out


# ----------------------------
# step 5: force replace
# ----------------------------

def implicit_replace(
    utterance: str,
    basket: List[BasketLine],
    prev_skus: Set[str],
    candidates: CandidateSet,
    vertical: Dict[str, Any],
) -> bool:
    """
    Alternate vocabulary named, the proposal only echoes the previous cart,
    and at least one named category is not held yet. Re-confirming an item
    already in the cart ("sí, el teflón está bien") is not a swap.
    """
    mentioned = mentioned_alternates(utterance, vertical)
    if not mentioned or not basket:
        return False
    if not all(it.sku in prev_skus for it in basket):
        return False

    prev_text = [f"{p.name} {p.sku}" for s in prev_skus for p in [candidates.get(s)] if p is not None]
    return any(not any(text_matches(pat, t) for t in prev_text) for pat in mentioned.values())


def _force_replace(
    utterance: str,
    q_norm: str,
    basket: List[BasketLine],
    prev_skus: Set[str],
    cart_qty: Dict[str, int],
    candidates: CandidateSet,
    vertical: Dict[str, Any],
) -> List[BasketLine]:
    out = [it for it in basket if it.sku not in prev_skus]

    if not out:
        out = _picker_lines(utterance, q_norm, candidates, vertical, exclude=prev_skus)
    else:
        missing = [
            pat for pat in mentioned_alternates(utterance, vertical).values() if not _has_category(pat, out)
        ]
        if missing:
            # only the missing categories compete for the pick cap
            narrowed = {
                sku: p for sku, p in candidates.items() if any(text_matches(pat, product_text(p)) for pat in missing)
            }
            skip = prev_skus | _skus(out)
            out.extend(_picker_lines(utterance, q_norm, narrowed, vertical, exclude=skip))

    return reassert_quantities(out, cart_qty)


# ----------------------------
# final invariant pass
# ----------------------------

def _enforce(lines: Iterable[BasketLine], candidates: CandidateSet, cart_qty: Optional[Dict[str, int]]) -> List[BasketLine]:
    out: List[BasketLine] = []
    seen: Set[str] = set()
    for it in lines:
        if it.sku in seen or it.sku not in candidates:
            continue
        seen.add(it.sku)
        out.append(it)
    if cart_qty is not None:
        out = reassert_quantities(out, cart_qty)
    return out


# ----------------------------
# public API
# ----------------------------

def reconcile(
    utterance: str,
    history: Sequence[ConversationTurn],
    client_cart: Sequence[CartItem],
    candidates: CandidateSet,
    raw_proposal: Any,
    *,
    catalog: Optional[CatalogRepo] = None,
    vertical: Optional[Dict[str, Any]] = None,
    trace_id: Optional[str] = None,
) -> Tuple[Plan, str]:
    utterance = utterance or ""
    intent: Intent = classify_intent(utterance)

    # 1) End
    if intent.end:
        log_event(trace_id, "reconcile_end", {})
        return terminal_plan()

    if vertical is None:
        vertical = load_vertical()

    # 2) parse
    proposal = parse_proposal(raw_proposal)
    if isinstance(proposal, MalformedProposal):
        log_event(trace_id, "reconcile_malformed", {"reason": proposal.reason})
        return fallback_plan()

    turn: CandidateSet = dict(candidates or {})
    cart_qty = cart_quantities(client_cart)
    prev_skus = set(cart_qty)
    q_norm = normalize_query(utterance)

    log_event(
        trace_id,
        "reconcile_start",
        {
            "intent": intent.as_dict(),
            "history_turns": len(history or []),
            "cart": [f"{s}x{q}" for s, q in cart_qty.items()],
            "candidate_count": len(turn),
        },
    )

    # 2) + 3) membership filter, dedupe, cart qty
    plan = validate_proposal(proposal, turn, cart_qty, trace_id=trace_id)
    basket = plan.basket
    confirm = plan.confirm

    # 4) add path
    if intent.add_turn:
        before = basket
        basket = _append_cart_lines(basket, cart_qty, turn, WHY_KEPT)
        basket = _apply_ensure_rules(utterance, basket, cart_qty, turn, catalog, vertical, trace_id)
        basket = _apply_paired_spares(utterance, basket, cart_qty, turn, catalog, vertical, trace_id)
        confirm = confirm or msg("confirm.add")
        _log_step(trace_id, "add_path", before, basket)

    # 5) force replace
    forced = not intent.add_turn and (
        intent.replace or implicit_replace(utterance, basket, prev_skus, turn, vertical)
    )
    if forced:
        before = basket
        basket = _force_replace(utterance, q_norm, basket, prev_skus, cart_qty, turn, vertical)
        if basket:
            confirm = confirm or msg("confirm.replace")
        _log_step(trace_id, "force_replace", before, basket)

    # 6) empty basket
    if not basket:
        if intent.replace:
            basket = _picker_lines(utterance, q_norm, turn, vertical, exclude=prev_skus)
            confirm = confirm or msg("confirm.replace")
            _log_step(trace_id, "empty_rebuild", [], basket)
        elif not intent.wants_removal and cart_qty:
            basket = _append_cart_lines([], cart_qty, turn, WHY_KEPT)
            confirm = confirm or msg("confirm.restore")
            _log_step(trace_id, "empty_restore", [], basket)

    # 7) keep what the model forgot
    if not (intent.replace or forced) and not intent.wants_removal:
        before = basket
        basket = _append_cart_lines(basket, cart_qty, turn, WHY_PRIOR_ORDER)
        _log_step(trace_id, "cart_preserve", before, basket)

    plan = plan.model_copy(
        update={
            "basket": _enforce(basket, turn, cart_qty),
            "upsell": _enforce(plan.upsell, turn, None),
            "confirm": confirm,
        }
    )
    reply = proposal.reply or msg("reply.default")

    # 8) nudges
    plan, reply = apply_stock_nudges(
        utterance,
        plan,
        reply,
        candidates=turn,
        catalog=catalog,
        rules=vertical.get("stock_nudges") or [],
        trace_id=trace_id,
    )

    log_event(trace_id, "reconcile_done", {"plan": plan_summary(plan), "forced_replace": forced})
    return plan, reply
