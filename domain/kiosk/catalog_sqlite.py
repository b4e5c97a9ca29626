# domain/kiosk/catalog_sqlite.py
from __future__ import annotations

import sqlite3
from typing import Any, List, Sequence

from domain.kiosk.catalog_repo import CatalogRepo, CatalogUnavailable, Product
from nlu.normalizer import like_needle

PRODUCT_COLUMNS = (
    "sku, name, brand, category, subcategory, description, price, currency, stock, image_url"
)

SEARCH_FIELDS = ("name", "description", "category", "subcategory")


def _safe_str(x: Any) -> str:
    return x if isinstance(x, str) else "" if x is None else str(x)


class SQLiteCatalogRepo(CatalogRepo):
    """
    SQLite catalog.
    - products(sku PK, ...) + synonyms(product_sku, term)
    - LIKE is case-insensitive for ASCII only; accents must match as stored.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _query(self, sql: str, params: Sequence[Any]) -> List[sqlite3.Row]:
        try:
            with self._conn() as conn:
                return conn.execute(sql, list(params)).fetchall()
        except sqlite3.Error as e:
            raise CatalogUnavailable(f"catalog query failed: {e}") from e

    def search_text(self, needles: Sequence[str], *, limit: int = 50) -> List[Product]:
        clean = [like_needle(n) for n in needles or []]
        clean = [n for n in clean if n]
        if not clean:
            return []

        where: List[str] = []
        params: List[Any] = []
        for n in clean:
            for f in SEARCH_FIELDS:
                where.append(f"{f} LIKE ?")
                params.append(f"%{n}%")

        # ORDER BY keeps LIMIT stable across runs
        sql = f"""
        SELECT {PRODUCT_COLUMNS}
        FROM products
        WHERE {" OR ".join(where)}
        ORDER BY rowid ASC
        LIMIT ?
        """
        params.append(max(1, int(limit)))

        rows = self._query(sql, params)
        return [self._row_to_product(r) for r in rows]

    def find_synonym_skus(self, needles: Sequence[str]) -> List[str]:
        clean = [like_needle(n) for n in needles or []]
        clean = [n for n in clean if n]
        if not clean:
            return []

        where = " OR ".join(["term LIKE ?"] * len(clean))
        sql = f"""
        SELECT product_sku, MIN(rowid) AS first_row
        FROM synonyms
        WHERE {where}
        GROUP BY product_sku
        ORDER BY first_row ASC
        """
        rows = self._query(sql, [f"%{n}%" for n in clean])
        return [_safe_str(r["product_sku"]) for r in rows]

    def get_by_skus(self, skus: Sequence[str]) -> List[Product]:
        wanted = [s for s in dict.fromkeys(_safe_str(s).strip() for s in skus or []) if s]
        if not wanted:
            return []

        marks = ", ".join(["?"] * len(wanted))
        sql = f"SELECT {PRODUCT_COLUMNS} FROM products WHERE sku IN ({marks})"
        rows = self._query(sql, wanted)

        by_sku = {r["sku"]: self._row_to_product(r) for r in rows}
        return [by_sku[s] for s in wanted if s in by_sku]

    def _row_to_product(self, row: sqlite3.Row) -> Product:
        return Product(
            sku=_safe_str(row["sku"]),
            name=_safe_str(row["name"]),
            brand=_safe_str(row["brand"]) or None,
            category=_safe_str(row["category"]),
            subcategory=_safe_str(row["subcategory"]),
            description=_safe_str(row["description"]),
            price=float(row["price"]) if row["price"] is not None else 0.0,
            currency=_safe_str(row["currency"]) or "MXN",
            stock=int(row["stock"] or 0),
            image_url=_safe_str(row["image_url"]) or None,
        )


DDL = """
CREATE TABLE IF NOT EXISTS products (
    sku TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    brand TEXT,
    category TEXT,
    subcategory TEXT,
    description TEXT,
    price REAL NOT NULL DEFAULT 0 CHECK (price >= 0),
    currency TEXT NOT NULL DEFAULT 'MXN',
    stock INTEGER NOT NULL DEFAULT 0 CHECK (stock >= 0),
    image_url TEXT
);

CREATE TABLE IF NOT EXISTS synonyms (
    product_sku TEXT NOT NULL REFERENCES products(sku),
    term TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_synonyms_sku ON synonyms(product_sku);
"""


def init_sqlite_schema(db_path: str) -> None:
    """
    Create the catalog tables (idempotent).
    """
    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(DDL)
        conn.commit()
    finally:
        conn.close()
