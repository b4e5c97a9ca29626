# nlu/llm_client.py
from __future__ import annotations

import os
import json
from typing import Any, Dict, List, Optional, Sequence

import requests

from domain import SCHEMAS
from domain.kiosk.catalog_repo import CandidateSet
from models.plan import CartItem, ConversationTurn
from nlu.intent import Intent
from utils.logging import log_event

OPENAI_API_URL = "https://api.openai.com/v1/responses"

MAX_HISTORY_TURNS = 8

# what the deterministic repair runs on when the model is switched off
EMPTY_PROPOSAL = json.dumps({"plan": {}, "reply": ""})

SYSTEM_PROMPT = """Eres un asistente de kiosko para ferretería.

REGLAS:
- Mantén una conversación breve y clara en español.
- Usa SOLO productos en CANDIDATES (no inventes SKUs).
- CLIENT_CART: si el usuario NO pide cambios, respeta y conserva su canasta y cantidades.
- REEMPLAZO: si el usuario expresa cambio explícito (p. ej., "mejor", "prefiero", "cámbialo por", "en lugar de"), ACTUALIZA la canasta acorde y **no** conserves los ítems reemplazados.
- Si el mejor producto no tiene stock, adviértelo explícitamente y ofrece una alternativa EN STOCK.
- "plan.steps" tiene de 3 a 5 pasos cortos.
- "reply" es un mensaje natural (máx. 2 frases), con **negritas** para nombres/cantidades. Si la charla va cerrando (p.ej., el usuario dice "no", "eso es todo"), indícale: "Pulsa **Confirmar e imprimir** para finalizar."
"""


def llm_enabled() -> bool:
    enable_llm = os.getenv("OPENAI_ENABLE_LLM", "").strip() == "1"
    has_key = bool(os.getenv("OPENAI_API_KEY", "").strip())
    return enable_llm and has_key


def _plan_model() -> str:
    return (
        os.getenv("OPENAI_PLAN_MODEL", "").strip()
        or os.getenv("OPENAI_NLU_MODEL", "").strip()
        or "gpt-4o-mini"
    )


def _plan_timeout() -> float:
    try:
        return float(os.getenv("OPENAI_PLAN_TIMEOUT", "30"))
    except ValueError:
        return 30.0


def _speaker(role: str) -> str:
    return "Usuario" if role == "user" else "Asistente"


def build_prompt(
    *,
    utterance: str,
    history: Sequence[ConversationTurn],
    client_cart: Sequence[CartItem],
    candidates: CandidateSet,
    intent: Intent,
) -> str:
    """
    User message for the proposal call. Only the last 8 turns are sent.
    """
    turns = list(history or [])[-MAX_HISTORY_TURNS:]
    convo = "\n".join(f"{_speaker(t.role)}: {t.text}" for t in turns)

    cart = [{"sku": c.sku, "qty": c.qty} for c in client_cart or []]
    cands = [p.to_dict() for p in candidates.values()]

    parts: List[str] = []
    if convo:
        parts.append(f"CONVERSACIÓN:\n{convo}\n")
    parts.append(f"MENSAJE ACTUAL:\n{utterance}\n")
    parts.append(f"INTENCIÓN: {intent.prompt_label}")
    parts.append(
        "CLIENT_CART (respeta cantidades; no elimines sin instrucción explícita):\n"
        f"{json.dumps(cart, ensure_ascii=False)}\n"
    )
    parts.append(f"CANDIDATES (usa solo estos):\n{json.dumps(cands, ensure_ascii=False)}\n")
    parts.append('Responde SOLO con JSON { "plan": {...}, "reply": "..." }')
    return "\n".join(parts)


def _extract_output_text(resp_json: Dict[str, Any]) -> str:
    """
    Raw JSON text of a Responses API result. Not parsed here: the validator
    decides whether it is a usable proposal.
    """
    if isinstance(resp_json.get("output_text"), str) and resp_json["output_text"].strip():
        return resp_json["output_text"].strip()

    output = resp_json.get("output")
    if isinstance(output, list):
        for item in output:
            if not isinstance(item, dict):
                continue
            content = item.get("content")
            if not isinstance(content, list):
                continue
            for c in content:
                if not isinstance(c, dict):
                    continue
                if isinstance(c.get("text"), str) and c["text"].strip():
                    return c["text"].strip()

    raise ValueError("Could not find Responses output text")


def _openai_call_json_schema(
    *,
    model: str,
    system: str,
    user_text: str,
    schema_name: str,
    json_schema: Dict[str, Any],
    api_key: str,
    timeout: float = 30,
) -> str:
    payload = {
        "model": model,
        "input": [
            {"role": "system", "content": system},
            {"role": "user", "content": user_text},
        ],
        "temperature": 0.35,
        "text": {
            "format": {
                "type": "json_schema",
                "name": schema_name,
                "strict": True,
                "schema": json_schema,
            }
        },
        "store": False,
    }

    r = requests.post(
        OPENAI_API_URL,
        headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
        data=json.dumps(payload),
        timeout=timeout,
    )
    if r.status_code >= 400:
        raise RuntimeError(f"OpenAI error {r.status_code}: {r.text[:1200]}")
    return _extract_output_text(r.json())


def propose_plan(
    *,
    utterance: str,
    history: Sequence[ConversationTurn],
    client_cart: Sequence[CartItem],
    candidates: CandidateSet,
    intent: Intent,
    trace_id: Optional[str] = None,
) -> Optional[str]:
    """
    Untrusted {plan, reply} JSON text.
    - model disabled (OPENAI_ENABLE_LLM != 1 or no key) -> empty but valid proposal
    - transport/HTTP/output failure -> None (reconciler treats it as malformed)
    """
    if not llm_enabled():
        log_event(trace_id, "llm_propose_disabled", {})
        return EMPTY_PROPOSAL

    model = _plan_model()
    user_text = build_prompt(
        utterance=utterance,
        history=history,
        client_cart=client_cart,
        candidates=candidates,
        intent=intent,
    )

    try:
        out = _openai_call_json_schema(
            model=model,
            system=SYSTEM_PROMPT,
            user_text=user_text,
            schema_name="kiosk_plan",
            json_schema=SCHEMAS["kiosk"],
            api_key=os.getenv("OPENAI_API_KEY", "").strip(),
            timeout=_plan_timeout(),
        )
    except (requests.RequestException, RuntimeError, ValueError) as e:
        log_event(trace_id, "llm_propose_fail", {"model": model, "error": e})
        return None

    log_event(trace_id, "llm_propose_ok", {"model": model, "chars": len(out)})
    return out
