# models/plan.py
from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def coerce_qty(v: Any) -> int:
    """
    Quantities are whole units >= 1. Missing/garbage -> 1.
    """
    try:
        n = int(float(v))
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, n)


class CartItem(BaseModel):
    """Item held by the kiosk client. Its qty is authoritative."""

    sku: str = Field(..., min_length=1)
    qty: int = 1

    @field_validator("sku", mode="before")
    @classmethod
    def strip_sku(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("qty", mode="before")
    @classmethod
    def floor_qty(cls, v):
        return coerce_qty(v)


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    text: str = ""


class BasketLine(BaseModel):
    """UI-ready projection of a catalog product plus qty and justification."""

    model_config = ConfigDict(extra="ignore")

    sku: str
    name: str
    qty: int = 1
    price: float = 0.0
    currency: str = "MXN"
    stock: int = 0
    image_url: Optional[str] = None
    why: str = ""


class Plan(BaseModel):
    title: str = ""
    steps: List[str] = Field(default_factory=list)
    basket: List[BasketLine] = Field(default_factory=list)
    upsell: List[BasketLine] = Field(default_factory=list)
    confirm: str = ""

    def basket_skus(self) -> List[str]:
        return [it.sku for it in self.basket]


class UpsellSuggestion(BaseModel):
    sku: str
    name: str
