# domain/kiosk/policy.py
from __future__ import annotations

import os
import re
from typing import Any, Dict, List, Optional, Sequence

from domain.kiosk.catalog_repo import CandidateSet, CatalogRepo, CatalogUnavailable, Product
from domain.kiosk.catalog_sqlite import SQLiteCatalogRepo
from models.plan import BasketLine
from nlu.normalizer import normalize_text
from utils.logging import log_event

WHY_KEPT = "Conservado de tu selección previa."
WHY_PRIOR_ORDER = "Pedido previo del cliente."
WHY_PREFERENCE = "Seleccionado según tu preferencia."


# ----------------------------
# helpers
# ----------------------------

def _safe_str(x: Any) -> str:
    return x if isinstance(x, str) else "" if x is None else str(x)


def text_matches(pattern: Optional[str], text: str) -> bool:
    """
    pattern is matched against normalize_text(text). Empty pattern never matches.
    """
    if not pattern:
        return False
    return bool(re.search(pattern, normalize_text(text)))


def product_text(p: Product) -> str:
    return normalize_text(p.search_text)


def line_text(line: BasketLine) -> str:
    # loose "already present" checks look at name + sku
    return f"{line.name} {line.sku}"


def line_from_product(p: Product, qty: int, why: str) -> BasketLine:
    """
    Basket lines are always rebuilt from catalog data; only qty/why come from outside.
    """
    return BasketLine(
        sku=p.sku,
        name=p.name,
        qty=max(1, int(qty)),
        price=p.price,
        currency=p.currency,
        stock=p.stock,
        image_url=p.image_url,
        why=why,
    )


# ----------------------------
# Repo factory (default)
# ----------------------------

def default_catalog_repo(db_path: Optional[str] = None) -> CatalogRepo:
    """
    SQLite by default.
    - db_path: argument, or env KIOSK_CATALOG_DB_PATH, or data/catalog.db (seed_catalog_db.py)
    """
    if not db_path:
        db_path = os.getenv("KIOSK_CATALOG_DB_PATH", "data/catalog.db")

    return SQLiteCatalogRepo(db_path=db_path)


def _pinned_fetch_attempts() -> int:
    try:
        return max(1, int(os.getenv("KIOSK_PINNED_FETCH_ATTEMPTS", "2")))
    except ValueError:
        return 2


# ----------------------------
# Policy: pinned SKU backfill
# ----------------------------

def resolve_skus(
    skus: Sequence[str],
    *,
    candidates: CandidateSet,
    catalog: Optional[CatalogRepo],
    trace_id: Optional[str] = None,
    reason: str = "",
) -> List[Product]:
    """
    Products for `skus`, in order. Candidates are used first; the rest is a
    read-only point lookup against the catalog (retried, side-effect free).
    Fetched products are admitted into `candidates` so the turn's membership
    check keeps holding.

    A miss (unknown SKU, no catalog, or lookup failure) is logged and skipped.
    """
    wanted = [s for s in dict.fromkeys(_safe_str(s).strip() for s in skus or []) if s]
    missing = [s for s in wanted if s not in candidates]

    fetched: Dict[str, Product] = {}
    if missing and catalog is not None:
        attempts = _pinned_fetch_attempts()
        for attempt in range(1, attempts + 1):
            try:
                fetched = {p.sku: p for p in catalog.get_by_skus(missing)}
                break
            except CatalogUnavailable as e:
                log_event(
                    trace_id,
                    "pinned_backfill_retry",
                    {"reason": reason, "skus": missing, "attempt": attempt, "error": str(e)},
                )

    out: List[Product] = []
    for s in wanted:
        p = candidates.get(s) or fetched.get(s)
        if p is None:
            log_event(trace_id, "pinned_backfill_miss", {"reason": reason, "sku": s})
            continue
        if s not in candidates:
            candidates[s] = p
            log_event(trace_id, "pinned_backfill_admitted", {"reason": reason, "sku": s})
        out.append(p)
    return out


def first_stocked(products: Sequence[Product]) -> Optional[Product]:
    for p in products:
        if p.in_stock:
            return p
    return None
