# models/api_models.py
from __future__ import annotations

from typing import Dict, Any, Optional, Literal, List
from pydantic import BaseModel, Field, ConfigDict, field_validator

from domain.kiosk.catalog_repo import Product
from models.plan import CartItem, ConversationTurn, Plan, UpsellSuggestion


class Meta(BaseModel):
    model_config = ConfigDict(extra="allow")

    client_session_id: Optional[str] = None

    device_type: str = "kiosk"
    locale: str = "es-MX"
    timezone: str = "America/Mexico_City"

    input_type: Literal["text", "stt", "voice"] = "text"

    store_id: Optional[str] = None
    # vertical registry key (domain/kiosk/verticals); None -> KIOSK_VERTICAL env
    kiosk_type: Optional[str] = None

    @field_validator("input_type", "kiosk_type", mode="before")
    @classmethod
    def normalize_lowercase(cls, v):
        if isinstance(v, str):
            return v.lower().strip()
        return v


class AgentRequest(BaseModel):
    q: str = Field(..., min_length=1)
    history: List[ConversationTurn] = Field(default_factory=list)
    cart: List[CartItem] = Field(default_factory=list)
    meta: Optional[Meta] = None

    @field_validator("q", mode="before")
    @classmethod
    def strip_q(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("history", "cart", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return [] if v is None else v


class AgentResponse(BaseModel):
    trace_id: str
    plan: Plan
    reply: str
    suggestions: List[UpsellSuggestion] = Field(default_factory=list)
    debug: Optional[Dict[str, Any]] = None


class ProductOut(BaseModel):
    sku: str
    name: str
    price: float = 0.0
    currency: str = "MXN"
    stock: int = 0
    image_url: Optional[str] = None
    brand: Optional[str] = None
    category: str = ""
    subcategory: str = ""
    description: str = ""

    @classmethod
    def from_product(cls, p: Product) -> "ProductOut":
        return cls(**p.to_dict())


class SearchRequest(BaseModel):
    q: str = Field(..., min_length=1)


class SearchResponse(BaseModel):
    candidates: List[ProductOut]


class GetRequest(BaseModel):
    skus: List[str] = Field(default_factory=list)


class GetResponse(BaseModel):
    products: List[ProductOut]
