from __future__ import annotations

import uuid
import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException

from models.api_models import AgentRequest, AgentResponse
from models.plan import Plan, UpsellSuggestion
from domain.kiosk.catalog_repo import CatalogUnavailable
from domain.kiosk.candidates import search_candidates
from domain.kiosk.policy import default_catalog_repo
from domain.kiosk.reconciler import need_details_plan, reconcile, terminal_plan
from domain.kiosk.upsell import suggest_upsell
from domain.kiosk.verticals.loader import load_vertical
from nlu.intent import classify_intent
from nlu.llm_client import propose_plan
from nlu.normalizer import normalize_query
from utils.logging import log_event
from utils.trace_utils import cart_summary, plan_summary

router = APIRouter()


def _exc_info(e: Exception) -> Dict[str, Any]:
    return {"error_type": type(e).__name__, "error_message": str(e)}


def _kiosk_type(req: AgentRequest) -> Optional[str]:
    return getattr(req.meta, "kiosk_type", None) if req.meta is not None else None


@router.post("/agent", response_model=AgentResponse)
def agent(req: AgentRequest, debug: int = 0):
    trace_id = uuid.uuid4().hex[:12]
    t0 = time.perf_counter()

    q = req.q or ""

    log_event(
        trace_id,
        "request_in",
        {
            "q_len": len(q),
            "q_preview": q[:200],
            "history_turns": len(req.history),
            "cart": cart_summary(req.cart),
            "meta": req.meta,
        },
    )

    stage = "start"
    plan: Optional[Plan] = None
    candidate_count: Optional[int] = None

    try:
        stage = "intent"
        intent = classify_intent(q)
        log_event(trace_id, "intent", intent.as_dict())

        suggestions: List[UpsellSuggestion] = []

        if intent.end:
            # terminal: no search, no model call
            plan, reply = terminal_plan()
        else:
            stage = "candidates"
            catalog = default_catalog_repo()
            vertical = load_vertical(_kiosk_type(req))
            candidates = search_candidates(catalog, q, req.cart, vertical, trace_id=trace_id)
            candidate_count = len(candidates)

            if not candidates:
                plan, reply = need_details_plan()
            else:
                stage = "propose"
                raw = propose_plan(
                    utterance=q,
                    history=req.history,
                    client_cart=req.cart,
                    candidates=candidates,
                    intent=intent,
                    trace_id=trace_id,
                )

                stage = "reconcile"
                plan, reply = reconcile(
                    q,
                    req.history,
                    req.cart,
                    candidates,
                    raw,
                    catalog=catalog,
                    vertical=vertical,
                    trace_id=trace_id,
                )

                stage = "upsell"
                suggestions = suggest_upsell(plan.basket_skus(), vertical.get("upsell_rules") or [])

        stage = "response_out"
        dbg = None
        if debug:
            dbg = {
                "intent": intent.as_dict(),
                "q_norm": normalize_query(q),
                "candidate_count": candidate_count,
            }

        log_event(
            trace_id,
            "response_out",
            {
                "plan": plan_summary(plan),
                "reply_preview": reply[:200],
                "suggestions": [s.sku for s in suggestions],
                "duration_ms": int((time.perf_counter() - t0) * 1000),
            },
        )

        return AgentResponse(trace_id=trace_id, plan=plan, reply=reply, suggestions=suggestions, debug=dbg)

    except HTTPException as e:
        log_event(
            trace_id,
            "error",
            {
                "stage": stage,
                "duration_ms": int((time.perf_counter() - t0) * 1000),
                "http_status": e.status_code,
                "detail": e.detail,
            },
        )
        raise

    except CatalogUnavailable as e:
        log_event(
            trace_id,
            "error",
            {
                "stage": stage,
                "duration_ms": int((time.perf_counter() - t0) * 1000),
                **_exc_info(e),
            },
        )
        raise HTTPException(status_code=503, detail={"message": "catalog_unavailable", "trace_id": trace_id})

    except Exception as e:
        log_event(
            trace_id,
            "error",
            {
                "stage": stage,
                "duration_ms": int((time.perf_counter() - t0) * 1000),
                "plan": plan_summary(plan),
                **_exc_info(e),
            },
        )
        raise HTTPException(status_code=500, detail={"message": "internal_error", "trace_id": trace_id})

    finally:
        log_event(
            trace_id,
            "request_done",
            {
                "stage": stage,
                "duration_ms": int((time.perf_counter() - t0) * 1000),
            },
        )
