"""
Shared fixtures: the demo hardware catalog (in-memory and SQLite), the
hardware vertical tables and a builder for raw model proposals.
"""

import json

import pytest

from domain.kiosk.catalog_memory import InMemoryCatalogRepo
from domain.kiosk.catalog_repo import Product
from domain.kiosk.catalog_sqlite import SQLiteCatalogRepo
from domain.kiosk.verticals.loader import load_vertical
from seed_catalog_db import seed, seed_products, seed_synonyms


def _product(row) -> Product:
    sku, name, brand, category, subcategory, description, price, currency, stock, image_url = row
    return Product(
        sku=sku,
        name=name,
        brand=brand,
        category=category,
        subcategory=subcategory,
        description=description,
        price=price,
        currency=currency,
        stock=stock,
        image_url=image_url,
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """No test ever talks to the real model or picks up a local vertical."""
    for key in ("OPENAI_ENABLE_LLM", "OPENAI_API_KEY", "OPENAI_PLAN_MODEL", "OPENAI_NLU_MODEL",
                "KIOSK_VERTICAL", "KIOSK_PINNED_FETCH_ATTEMPTS"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def catalog_products():
    return [_product(r) for r in seed_products()]


@pytest.fixture
def by_sku(catalog_products):
    return {p.sku: p for p in catalog_products}


@pytest.fixture
def candidates_of(by_sku):
    """candidates_of("A", "B") -> ordered CandidateSet."""
    def _make(*skus):
        return {s: by_sku[s] for s in skus}
    return _make


@pytest.fixture
def memory_catalog(catalog_products):
    synonyms = {}
    for sku, term in seed_synonyms():
        synonyms.setdefault(term, []).append(sku)
    return InMemoryCatalogRepo(catalog_products, synonyms)


@pytest.fixture
def sqlite_catalog(tmp_path):
    db_path = str(tmp_path / "catalog.db")
    seed(db_path)
    return SQLiteCatalogRepo(db_path)


@pytest.fixture
def hardware():
    return load_vertical("hardware")


@pytest.fixture
def make_proposal():
    """Raw model output text for the given basket/upsell SKUs."""
    def _line(item):
        if isinstance(item, str):
            item = {"sku": item}
        base = {
            "sku": "",
            "name": "nombre inventado",
            "qty": 1,
            "price": 0.01,
            "currency": "USD",
            "stock": 999,
            "image_url": None,
            "why": "",
        }
        base.update(item)
        return base

    def _make(basket=(), upsell=(), reply="", confirm="", title="Plan", steps=None):
        return json.dumps(
            {
                "plan": {
                    "title": title,
                    "steps": steps if steps is not None else ["Paso 1", "Paso 2", "Paso 3"],
                    "basket": [_line(x) for x in basket],
                    "upsell": [_line(x) for x in upsell],
                    "confirm": confirm,
                },
                "reply": reply,
            },
            ensure_ascii=False,
        )

    return _make
