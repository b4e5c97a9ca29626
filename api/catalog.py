# api/catalog.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, HTTPException

from models.api_models import GetRequest, GetResponse, ProductOut, SearchRequest, SearchResponse
from domain.kiosk.catalog_repo import CandidateSet, CatalogUnavailable
from domain.kiosk.policy import default_catalog_repo
from nlu.normalizer import normalize_query
from utils.logging import log_event

router = APIRouter()

SEARCH_LIMIT = 20


@router.post("/search", response_model=SearchResponse)
def search(req: SearchRequest):
    """
    Phrase + normalized phrase + synonym search, for the kiosk search box.
    """
    trace_id = uuid.uuid4().hex[:12]
    q = req.q.strip()
    q_norm = normalize_query(q)

    try:
        catalog = default_catalog_repo()
        found: CandidateSet = {}
        for p in catalog.search_text([q, q_norm], limit=SEARCH_LIMIT):
            found[p.sku] = p
        syn = [s for s in catalog.find_synonym_skus([q, q_norm]) if s not in found]
        for p in catalog.get_by_skus(syn):
            found[p.sku] = p
    except CatalogUnavailable as e:
        log_event(trace_id, "error", {"stage": "search", "error": str(e)})
        raise HTTPException(status_code=503, detail={"message": "catalog_unavailable", "trace_id": trace_id})

    products = list(found.values())[:SEARCH_LIMIT]
    log_event(trace_id, "search", {"q_norm": q_norm, "count": len(products)})
    return SearchResponse(candidates=[ProductOut.from_product(p) for p in products])


@router.post("/get", response_model=GetResponse)
def get_products(req: GetRequest):
    trace_id = uuid.uuid4().hex[:12]
    try:
        products = default_catalog_repo().get_by_skus(req.skus)
    except CatalogUnavailable as e:
        log_event(trace_id, "error", {"stage": "get", "error": str(e)})
        raise HTTPException(status_code=503, detail={"message": "catalog_unavailable", "trace_id": trace_id})

    return GetResponse(products=[ProductOut.from_product(p) for p in products])
