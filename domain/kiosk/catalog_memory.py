# domain/kiosk/catalog_memory.py
from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from domain.kiosk.catalog_repo import CatalogRepo, Product
from nlu.normalizer import like_needle


class InMemoryCatalogRepo(CatalogRepo):
    """
    In-memory catalog for tests/dev.
    Same matching semantics as the SQLite repo: case-insensitive substring,
    accents must match as stored.
    """

    def __init__(
        self,
        products: Iterable[Product],
        synonyms: Optional[Mapping[str, Sequence[str]]] = None,
    ):
        self._products: Dict[str, Product] = {}
        for p in products:
            self._products[p.sku] = p
        # term -> [sku, ...]
        self._synonyms: Dict[str, List[str]] = {
            str(term).lower(): list(skus) for term, skus in (synonyms or {}).items()
        }

    def search_text(self, needles: Sequence[str], *, limit: int = 50) -> List[Product]:
        clean = [like_needle(n).lower() for n in needles or []]
        clean = [n for n in clean if n]
        if not clean:
            return []

        out: List[Product] = []
        for p in self._products.values():
            fields = [p.name, p.description, p.category, p.subcategory]
            hay = [(f or "").lower() for f in fields]
            if any(n in h for n in clean for h in hay):
                out.append(p)
            if len(out) >= max(1, int(limit)):
                break
        return out

    def find_synonym_skus(self, needles: Sequence[str]) -> List[str]:
        clean = [like_needle(n).lower() for n in needles or []]
        clean = [n for n in clean if n]

        out: List[str] = []
        for term, skus in self._synonyms.items():
            if any(n in term for n in clean):
                for s in skus:
                    if s not in out:
                        out.append(s)
        return out

    def get_by_skus(self, skus: Sequence[str]) -> List[Product]:
        out: List[Product] = []
        for s in dict.fromkeys(skus or []):
            p = self._products.get(s)
            if p is not None:
                out.append(p)
        return out
