# domain/kiosk/catalog_repo.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence


@dataclass(frozen=True)
class Product:
    sku: str
    name: str
    price: float = 0.0
    currency: str = "MXN"
    stock: int = 0
    image_url: Optional[str] = None
    brand: Optional[str] = None

    # free text, only used for keyword matching
    category: str = ""
    subcategory: str = ""
    description: str = ""

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    @property
    def search_text(self) -> str:
        return " ".join([self.name, self.description, self.category, self.subcategory])

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# sku -> Product, insertion ordered. The only authority on "is this SKU offerable"
CandidateSet = Dict[str, Product]


class CatalogUnavailable(RuntimeError):
    """Catalog backend failed. Fatal for the turn."""


class CatalogRepo:
    """
    Product catalog read layer.
    - SQLite in dev/small stores; swap for Postgres/POS API without touching
      the reconciler.
    - All methods are read-only point/range lookups.
    """

    def search_text(self, needles: Sequence[str], *, limit: int = 50) -> List[Product]:
        """
        Products whose name/description/category/subcategory contains ANY needle
        (case-insensitive).
        """
        raise NotImplementedError

    def find_synonym_skus(self, needles: Sequence[str]) -> List[str]:
        """
        SKUs whose synonym term contains ANY needle.
        """
        raise NotImplementedError

    def get_by_skus(self, skus: Sequence[str]) -> List[Product]:
        """
        Products for the given SKUs, in request order. Unknown SKUs are skipped.
        """
        raise NotImplementedError
