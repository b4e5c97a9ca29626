"""
HTTP tests for /api/agent, /api/agent_audio, /api/search, /api/get and /health.
The catalog factory and the model call are replaced per test.
"""

import json

import pytest
from fastapi.testclient import TestClient

import api.catalog
import api.chat
import api.chat_audio
from domain.kiosk.catalog_sqlite import SQLiteCatalogRepo
from main import app

client = TestClient(app)


@pytest.fixture
def use_catalog(monkeypatch):
    def _use(catalog):
        monkeypatch.setattr(api.chat, "default_catalog_repo", lambda *a, **k: catalog)
        monkeypatch.setattr(api.catalog, "default_catalog_repo", lambda *a, **k: catalog)
    return _use


@pytest.fixture
def model_returns(monkeypatch):
    calls = []

    def _set(raw):
        def fake(**kwargs):
            calls.append(kwargs)
            if isinstance(raw, Exception):
                raise raw
            return raw
        monkeypatch.setattr(api.chat, "propose_plan", fake)
        return calls

    return _set


def _no_catalog(*a, **k):
    raise AssertionError("catalog must not be touched")


class TestHealth:
    def test_ok(self):
        assert client.get("/health").json() == {"ok": True}


class TestAgent:
    def test_end_skips_search_and_model(self, monkeypatch, model_returns):
        monkeypatch.setattr(api.chat, "default_catalog_repo", _no_catalog)
        calls = model_returns("{}")
        r = client.post("/api/agent", json={"q": "No, gracias", "cart": [{"sku": "PTF-12", "qty": 2}]})
        assert r.status_code == 200
        body = r.json()
        assert body["plan"]["basket"] == [] and body["plan"]["upsell"] == []
        assert body["suggestions"] == []
        assert len(body["trace_id"]) == 12
        assert calls == []

    def test_basket_and_rule_suggestions(self, use_catalog, memory_catalog, model_returns, make_proposal):
        use_catalog(memory_catalog)
        model_returns(make_proposal(basket=["PVC-GLUE-240", "INVENTADO-1"], reply="Aquí tienes."))
        r = client.post("/api/agent", json={"q": "necesito pegamento para pvc"})
        assert r.status_code == 200
        body = r.json()
        assert [it["sku"] for it in body["plan"]["basket"]] == ["PVC-GLUE-240"]
        assert [s["sku"] for s in body["suggestions"]] == ["PTF-12", "WR-8IN"]
        assert body["reply"] == "Aquí tienes."
        assert body["debug"] is None

    def test_model_sees_intent_and_candidates(self, use_catalog, memory_catalog, model_returns, make_proposal):
        use_catalog(memory_catalog)
        calls = model_returns(make_proposal())
        client.post(
            "/api/agent",
            json={
                "q": "mejor la unión de pvc",
                "history": [{"role": "user", "text": "hola"}],
                "cart": [{"sku": "PTF-12", "qty": "3"}],
            },
        )
        (kw,) = calls
        assert kw["intent"].label == "Replace"
        assert "PTF-12" in kw["candidates"]
        assert kw["client_cart"][0].qty == 3

    def test_infinite_cart_qty_is_floored(self, use_catalog, memory_catalog, model_returns, make_proposal):
        use_catalog(memory_catalog)
        model_returns(make_proposal(basket=["PTF-12"]))
        r = client.post("/api/agent", json={"q": "necesito teflón", "cart": [{"sku": "PTF-12", "qty": "Infinity"}]})
        assert r.status_code == 200
        assert [(it["sku"], it["qty"]) for it in r.json()["plan"]["basket"]] == [("PTF-12", 1)]

    def test_empty_candidates_asks_for_details(self, use_catalog, memory_catalog, model_returns):
        use_catalog(memory_catalog)
        calls = model_returns("{}")
        r = client.post("/api/agent", json={"q": "xyz123"})
        assert r.status_code == 200
        assert r.json()["plan"]["title"] == "Necesito más detalles"
        assert calls == []

    def test_model_failure_is_fallback_plan(self, use_catalog, memory_catalog, model_returns):
        use_catalog(memory_catalog)
        model_returns(None)
        r = client.post("/api/agent", json={"q": "necesito teflón"})
        assert r.status_code == 200
        assert r.json()["plan"]["confirm"] == "¿Deseas confirmar ahora?"

    def test_debug(self, use_catalog, memory_catalog, model_returns, make_proposal):
        use_catalog(memory_catalog)
        model_returns(make_proposal())
        r = client.post("/api/agent?debug=1", json={"q": "tubo pvc de media"})
        dbg = r.json()["debug"]
        assert dbg["intent"]["label"] == "Normal"
        assert dbg["q_norm"] == "pvc 1/2"
        assert dbg["candidate_count"] > 0

    def test_catalog_unavailable_is_503(self, use_catalog, tmp_path, model_returns):
        use_catalog(SQLiteCatalogRepo(str(tmp_path / "empty.db")))
        model_returns("{}")
        r = client.post("/api/agent", json={"q": "necesito teflón"})
        assert r.status_code == 503
        detail = r.json()["detail"]
        assert detail["message"] == "catalog_unavailable"
        assert len(detail["trace_id"]) == 12

    def test_unexpected_error_is_500(self, use_catalog, memory_catalog, model_returns):
        use_catalog(memory_catalog)
        model_returns(RuntimeError("boom"))
        r = client.post("/api/agent", json={"q": "necesito teflón"})
        assert r.status_code == 500
        assert r.json()["detail"]["message"] == "internal_error"

    @pytest.mark.parametrize(
        "payload",
        [
            {"q": ""},
            {"q": "   "},
            {},
            {"q": "hola", "cart": [{"sku": ""}]},
            {"q": "hola", "history": [{"role": "system", "text": "x"}]},
        ],
    )
    def test_validation_422(self, payload):
        assert client.post("/api/agent", json=payload).status_code == 422


class TestAgentAudio:
    def test_transcript_feeds_agent(self, monkeypatch, model_returns):
        monkeypatch.setattr(api.chat, "default_catalog_repo", _no_catalog)
        monkeypatch.setattr(api.chat_audio, "transcribe", lambda audio, filename, content_type: "eso es todo")
        model_returns("{}")
        r = client.post(
            "/api/agent_audio",
            files={"audio_file": ("clip.webm", b"\x00\x01", "audio/webm")},
            data={"payload_json": json.dumps({"cart": [{"sku": "PTF-12", "qty": 1}], "meta": {"kiosk_type": "Hardware"}})},
        )
        assert r.status_code == 200
        assert r.json()["plan"]["basket"] == []

    def test_bad_payload_json(self, monkeypatch):
        monkeypatch.setattr(api.chat_audio, "transcribe", lambda *a: "hola")
        r = client.post(
            "/api/agent_audio",
            files={"audio_file": ("clip.webm", b"\x00", "audio/webm")},
            data={"payload_json": "{nope"},
        )
        assert r.status_code == 422

    def test_empty_transcript(self, monkeypatch):
        monkeypatch.setattr(api.chat_audio, "transcribe", lambda *a: "")
        r = client.post("/api/agent_audio", files={"audio_file": ("clip.webm", b"\x00", "audio/webm")})
        assert r.status_code == 400


class TestCatalogRoutes:
    def test_search_uses_synonyms(self, use_catalog, memory_catalog):
        use_catalog(memory_catalog)
        r = client.post("/api/search", json={"q": "cinta para rosca"})
        assert [p["sku"] for p in r.json()["candidates"]] == ["PTF-12"]

    def test_search_capped(self, use_catalog, memory_catalog):
        use_catalog(memory_catalog)
        r = client.post("/api/search", json={"q": "a"})
        assert len(r.json()["candidates"]) <= 20

    def test_get_in_request_order(self, use_catalog, sqlite_catalog):
        use_catalog(sqlite_catalog)
        r = client.post("/api/get", json={"skus": ["WR-8IN", "NOPE", "PTF-12"]})
        assert [p["sku"] for p in r.json()["products"]] == ["WR-8IN", "PTF-12"]

    def test_get_catalog_unavailable(self, use_catalog, tmp_path):
        use_catalog(SQLiteCatalogRepo(str(tmp_path / "empty.db")))
        r = client.post("/api/get", json={"skus": ["PTF-12"]})
        assert r.status_code == 503
