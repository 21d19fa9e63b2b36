"""Pydantic v2 schemas for Purchase Order API endpoints."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import LineItemSource, PurchaseOrderStatus
from src.models.purchase_order import PurchaseOrder
from src.modules.purchase_order.constants import PO_NUMBER_MAX_LENGTH, VENDOR_MAX_LENGTH
from src.modules.purchase_order.reconciliation import summarize
from src.schemas.responses import PageMeta

# ---------------------------------------------------------------------------
# Item source: tagged union of catalog and manual lines
# ---------------------------------------------------------------------------


class CatalogSource(BaseModel):
    kind: Literal["catalog"] = "catalog"
    variant_id: str = Field(..., min_length=1, max_length=255)


class ManualSource(BaseModel):
    kind: Literal["manual"] = "manual"


ItemSource = Annotated[CatalogSource | ManualSource, Field(discriminator="kind")]


def source_columns(source: CatalogSource | ManualSource) -> dict:
    """Flatten an item source into the ``source`` / ``variant_id`` columns."""
    if isinstance(source, CatalogSource):
        return {"source": LineItemSource.CATALOG, "variant_id": source.variant_id}
    return {"source": LineItemSource.MANUAL, "variant_id": None}


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class LineItemCreate(BaseModel):
    source: ItemSource = Field(default_factory=ManualSource)
    title: str = Field(..., min_length=1, max_length=255)
    sku: str | None = Field(None, max_length=100)
    quantity: int = Field(..., ge=0)
    cost: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)

    def to_service_kwargs(self) -> dict:
        return {
            **source_columns(self.source),
            "title": self.title,
            "sku": self.sku,
            "quantity": self.quantity,
            "cost": self.cost,
        }


class PurchaseOrderCreate(BaseModel):
    po_number: str = Field(..., min_length=1, max_length=PO_NUMBER_MAX_LENGTH)
    vendor: str = Field(..., min_length=1, max_length=VENDOR_MAX_LENGTH)
    ready_date: date
    order_date: date | None = None
    due_date: date | None = None
    shipping: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    note: str | None = None
    items: list[LineItemCreate] = Field(..., min_length=1)
    initial_payment: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)


class PurchaseOrderDetailsUpdate(BaseModel):
    po_number: str = Field(..., min_length=1, max_length=PO_NUMBER_MAX_LENGTH)
    status: PurchaseOrderStatus
    ready_date: date | None = None
    order_date: date | None = None


class ShippingUpdate(BaseModel):
    shipping: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class DueDateUpdate(BaseModel):
    due_date: date


class LineItemUpdate(BaseModel):
    quantity: int = Field(..., ge=0)
    cost: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class ReceiveRequest(BaseModel):
    receive_qty: int


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)


class PaymentDateUpdate(BaseModel):
    paid_at: datetime


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LineItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    purchase_order_id: uuid.UUID
    source: LineItemSource
    variant_id: str | None = None
    title: str
    sku: str
    quantity: int
    cost: Decimal
    subtotal: Decimal
    received_qty: int
    outstanding_qty: int
    created_at: datetime
    updated_at: datetime


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    purchase_order_id: uuid.UUID
    amount: Decimal
    paid_at: datetime


class OrderSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_quantity: int
    received_quantity: int
    on_order: int
    items_total: Decimal
    shipping: Decimal
    grand_total: Decimal
    total_paid: Decimal
    balance: Decimal
    payment_status: PurchaseOrderStatus


class PurchaseOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    po_number: str
    vendor: str
    order_date: date
    ready_date: date
    due_date: date | None = None
    shipping: Decimal
    note: str | None = None
    attachment: str | None = None
    status: PurchaseOrderStatus
    items: list[LineItemResponse] = Field(default_factory=list)
    payments: list[PaymentResponse] = Field(default_factory=list)
    summary: OrderSummaryResponse
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order: PurchaseOrder) -> PurchaseOrderResponse:
        """Build the response with the summary recomputed from loaded rows."""
        data = {name: getattr(order, name) for name in cls.model_fields if name != "summary"}
        data["summary"] = summarize(order.items, order.payments, order.shipping)
        return cls.model_validate(data)


class PurchaseOrderListResponse(BaseModel):
    items: list[PurchaseOrderResponse]
    pagination: PageMeta
