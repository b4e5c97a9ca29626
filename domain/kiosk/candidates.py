# domain/kiosk/candidates.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

from domain.kiosk.catalog_repo import CandidateSet, CatalogRepo, Product
from domain.kiosk.verticals.loader import load_vertical
from models.plan import CartItem
from nlu.normalizer import normalize_query, tokenize
from utils.logging import log_event

PHRASE_LIMIT = 50
TOKEN_LIMIT = 50


def whitelisted_tokens(q: str, vertical: Optional[Dict[str, Any]] = None) -> List[str]:
    allowed = set((vertical or {}).get("token_whitelist") or [])
    return [t for t in tokenize(q, min_len=3) if t in allowed]


def _merge(into: CandidateSet, products: Iterable[Product]) -> None:
    # first insertion keeps the position, the later record wins
    for p in products:
        into[p.sku] = p


def search_candidates(
    catalog: CatalogRepo,
    q: str,
    cart: Sequence[CartItem] = (),
    vertical: Optional[Dict[str, Any]] = None,
    trace_id: Optional[str] = None,
) -> CandidateSet:
    """
    Closed set of offerable products for one turn, merged in order:
      1) phrase search on q
      2) phrase search on normalize_query(q)
      3) whitelisted single tokens (pulls spares/tape/etc in)
      4) synonym terms matching q / q_norm
      5) every SKU already in the client cart

    CatalogUnavailable propagates: without a catalog the turn cannot be served.
    """
    if vertical is None:
        vertical = load_vertical()

    q = (q or "").strip()
    q_norm = normalize_query(q)
    out: CandidateSet = {}

    _merge(out, catalog.search_text([q], limit=PHRASE_LIMIT))
    _merge(out, catalog.search_text([q_norm], limit=PHRASE_LIMIT))

    tokens = whitelisted_tokens(q, vertical)
    if tokens:
        _merge(out, catalog.search_text(tokens, limit=TOKEN_LIMIT))

    syn_skus = catalog.find_synonym_skus([q, q_norm])
    if syn_skus:
        _merge(out, catalog.get_by_skus(syn_skus))

    cart_skus = list(dict.fromkeys(c.sku for c in cart or []))
    if cart_skus:
        _merge(out, catalog.get_by_skus(cart_skus))

    log_event(
        trace_id,
        "candidates",
        {
            "q_norm": q_norm,
            "tokens": tokens,
            "synonym_skus": syn_skus,
            "cart_skus": cart_skus,
            "count": len(out),
        },
    )
    return out
