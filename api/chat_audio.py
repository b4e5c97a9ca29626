# api/chat_audio.py
from __future__ import annotations

import os
import json
import requests
from fastapi import APIRouter, UploadFile, File, Form, HTTPException
from pydantic import ValidationError

from models.api_models import AgentRequest, Meta
from api.chat import agent  # same turn logic as /agent
from utils.logging import log_event

router = APIRouter()

OPENAI_TRANSCRIBE_URL = "https://api.openai.com/v1/audio/transcriptions"


def transcribe(audio: bytes, filename: str, content_type: str) -> str:
    """
    Speech-to-text via the OpenAI transcriptions endpoint (multipart).
    """
    api_key = os.getenv("OPENAI_API_KEY", "").strip()
    if not api_key:
        raise HTTPException(status_code=500, detail="OPENAI_API_KEY is not set")

    model = os.getenv("OPENAI_STT_MODEL", "gpt-4o-mini-transcribe").strip()

    files = {"file": (filename, audio, content_type)}
    data = {"model": model, "language": "es"}

    try:
        r = requests.post(
            OPENAI_TRANSCRIBE_URL,
            headers={"Authorization": f"Bearer {api_key}"},
            files=files,
            data=data,
            timeout=30,
        )
    except requests.RequestException as e:
        log_event(None, "stt_fail", {"model": model, "error": e})
        raise HTTPException(status_code=502, detail="stt_unavailable")

    if r.status_code >= 400:
        raise HTTPException(status_code=502, detail=r.text[:800])

    return (r.json().get("text") or "").strip()


@router.post("/agent_audio")
async def agent_audio(
    audio_file: UploadFile = File(...),
    payload_json: str = Form("{}"),
    debug: int = 0,
):
    # history/cart/meta travel as JSON next to the clip
    try:
        payload = json.loads(payload_json or "{}")
    except ValueError:
        raise HTTPException(status_code=422, detail="payload_json is not valid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=422, detail="payload_json must be an object")

    text = transcribe(
        await audio_file.read(),
        audio_file.filename or "audio",
        audio_file.content_type or "application/octet-stream",
    )
    if not text:
        raise HTTPException(status_code=400, detail="empty_transcript")

    try:
        meta = Meta(**(payload.get("meta") or {}))
        req = AgentRequest(
            q=text,
            history=payload.get("history") or [],
            cart=payload.get("cart") or [],
            meta=meta.model_copy(update={"input_type": "stt"}),
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False, include_input=False))

    return agent(req, debug=debug)
