"""Pydantic v2 schemas for Catalog API endpoints."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ProductCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    sku: str = Field("", max_length=100)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    quantity: int = Field(0, ge=0)


class InventoryAdjustment(BaseModel):
    inventory_item_id: str = Field(..., min_length=1)
    location_id: str = Field(..., min_length=1)
    delta: int


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class VariantResponse(BaseModel):
    id: str
    title: str
    sku: str
    price: Decimal | None = None
    product_title: str


class VariantListResponse(BaseModel):
    items: list[VariantResponse]


class InventoryRowResponse(BaseModel):
    id: str
    inventory_item_id: str | None = None
    location_id: str | None = None
    product_title: str
    sku: str
    image_url: str | None = None
    on_hand: int
    incoming: int


class PageInfoResponse(BaseModel):
    has_next_page: bool
    has_previous_page: bool
    start_cursor: str | None = None
    end_cursor: str | None = None


class InventoryListResponse(BaseModel):
    rows: list[InventoryRowResponse]
    page_info: PageInfoResponse


class AdjustmentResponse(BaseModel):
    success: bool = True
