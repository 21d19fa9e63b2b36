"""Purchase Order API router — 15 endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.database.session import get_db
from src.modules.purchase_order.attachments import (
    LocalAttachmentStorage,
    get_attachment_storage,
)
from src.modules.purchase_order.schemas import (
    DueDateUpdate,
    LineItemCreate,
    LineItemResponse,
    LineItemUpdate,
    PaymentCreate,
    PaymentDateUpdate,
    PaymentResponse,
    PurchaseOrderCreate,
    PurchaseOrderDetailsUpdate,
    PurchaseOrderListResponse,
    PurchaseOrderResponse,
    ReceiveRequest,
    ShippingUpdate,
)
from src.modules.purchase_order.service import PurchaseOrderService
from src.schemas.responses import ERROR_RESPONSES, PageMeta

router = APIRouter(prefix="/purchase-orders", tags=["purchase-orders"], responses=ERROR_RESPONSES)


# ---------------------------------------------------------------------------
# Order CRUD
# ---------------------------------------------------------------------------


async def _create_order(
    db: AsyncSession, body: PurchaseOrderCreate, attachment: str | None = None
):
    svc = PurchaseOrderService(db)
    return await svc.create_order(
        po_number=body.po_number,
        vendor=body.vendor,
        ready_date=body.ready_date,
        items=[item.to_service_kwargs() for item in body.items],
        initial_payment=body.initial_payment,
        order_date=body.order_date,
        due_date=body.due_date,
        shipping=body.shipping,
        note=body.note,
        attachment=attachment,
    )


@router.post("/", response_model=PurchaseOrderResponse, status_code=201)
async def create_purchase_order(
    body: PurchaseOrderCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a purchase order with its line items and optional first payment."""
    order = await _create_order(db, body)
    return PurchaseOrderResponse.from_order(order)


@router.post("/with-attachment", response_model=PurchaseOrderResponse, status_code=201)
async def create_purchase_order_with_attachment(
    order: str = Form(...),
    attachment: UploadFile | None = File(None),
    storage: LocalAttachmentStorage = Depends(get_attachment_storage),
    db: AsyncSession = Depends(get_db),
):
    """Multipart create: ``order`` holds the JSON order, ``attachment`` an optional file."""
    try:
        body = PurchaseOrderCreate.model_validate_json(order)
    except ValidationError as exc:
        raise RequestValidationError(
            [{**err, "loc": ("body", "order", *err["loc"])} for err in exc.errors()]
        ) from exc

    attachment_path = None
    if attachment is not None and attachment.filename:
        attachment_path = storage.save(attachment.filename, await attachment.read())

    try:
        created = await _create_order(db, body, attachment=attachment_path)
    except Exception:
        if attachment_path:
            storage.discard(attachment_path)
        raise
    return PurchaseOrderResponse.from_order(created)


@router.get("/", response_model=PurchaseOrderListResponse)
async def list_purchase_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
):
    """List purchase orders newest first with recomputed totals."""
    svc = PurchaseOrderService(db)
    orders, total = await svc.list_orders(page=page, page_size=page_size)
    return PurchaseOrderListResponse(
        items=[PurchaseOrderResponse.from_order(o) for o in orders],
        pagination=PageMeta.build(page=page, page_size=page_size, total_count=total),
    )


@router.get("/{order_id}", response_model=PurchaseOrderResponse)
async def get_purchase_order(
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a purchase order with items, payments and balance."""
    svc = PurchaseOrderService(db)
    order = await svc.get_order(order_id)
    return PurchaseOrderResponse.from_order(order)


@router.put("/{order_id}", response_model=PurchaseOrderResponse)
async def update_purchase_order_details(
    order_id: uuid.UUID,
    body: PurchaseOrderDetailsUpdate,
    db: AsyncSession = Depends(get_db),
):
    svc = PurchaseOrderService(db)
    order = await svc.update_order_details(
        order_id=order_id,
        po_number=body.po_number,
        status=body.status,
        ready_date=body.ready_date,
        order_date=body.order_date,
    )
    return PurchaseOrderResponse.from_order(order)


@router.put("/{order_id}/shipping", response_model=PurchaseOrderResponse)
async def update_shipping(
    order_id: uuid.UUID,
    body: ShippingUpdate,
    db: AsyncSession = Depends(get_db),
):
    svc = PurchaseOrderService(db)
    order = await svc.update_shipping(order_id, body.shipping)
    return PurchaseOrderResponse.from_order(order)


@router.put("/{order_id}/due-date", response_model=PurchaseOrderResponse)
async def update_due_date(
    order_id: uuid.UUID,
    body: DueDateUpdate,
    db: AsyncSession = Depends(get_db),
):
    svc = PurchaseOrderService(db)
    order = await svc.update_due_date(order_id, body.due_date)
    return PurchaseOrderResponse.from_order(order)


@router.put("/{order_id}/note", response_model=PurchaseOrderResponse)
async def update_note(
    order_id: uuid.UUID,
    note: str = Form(""),
    attachment: UploadFile | None = File(None),
    storage: LocalAttachmentStorage = Depends(get_attachment_storage),
    db: AsyncSession = Depends(get_db),
):
    """Replace the order note, optionally storing a new attachment."""
    svc = PurchaseOrderService(db)
    # Fail on a missing order before anything is written to disk
    await svc.get_order(order_id)

    attachment_path = None
    if attachment is not None and attachment.filename:
        attachment_path = storage.save(attachment.filename, await attachment.read())

    order = await svc.update_note(order_id, note=note, attachment=attachment_path)
    return PurchaseOrderResponse.from_order(order)


@router.delete("/{order_id}", status_code=204)
async def delete_purchase_order(
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Delete an order with all of its items and payments."""
    svc = PurchaseOrderService(db)
    await svc.delete_order(order_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------


@router.post("/{order_id}/items", response_model=LineItemResponse, status_code=201)
async def add_item(
    order_id: uuid.UUID,
    body: LineItemCreate,
    db: AsyncSession = Depends(get_db),
):
    """Add a catalog or manual line to an order."""
    svc = PurchaseOrderService(db)
    item = await svc.add_item(order_id, **body.to_service_kwargs())
    return LineItemResponse.model_validate(item)


@router.put("/{order_id}/items/{item_id}", response_model=LineItemResponse)
async def update_item(
    order_id: uuid.UUID,
    item_id: uuid.UUID,
    body: LineItemUpdate,
    db: AsyncSession = Depends(get_db),
):
    svc = PurchaseOrderService(db)
    item = await svc.update_item(
        item_id, quantity=body.quantity, cost=body.cost, order_id=order_id
    )
    return LineItemResponse.model_validate(item)


@router.post("/{order_id}/items/{item_id}/receive", response_model=LineItemResponse)
async def receive_item(
    order_id: uuid.UUID,
    item_id: uuid.UUID,
    body: ReceiveRequest,
    db: AsyncSession = Depends(get_db),
):
    """Record received units against a line item."""
    svc = PurchaseOrderService(db)
    item = await svc.receive(item_id, body.receive_qty, order_id=order_id)
    return LineItemResponse.model_validate(item)


@router.delete("/{order_id}/items/{item_id}", response_model=PurchaseOrderResponse)
async def remove_item(
    order_id: uuid.UUID,
    item_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Remove a line item and return the re-totalled order."""
    svc = PurchaseOrderService(db)
    order = await svc.remove_item(item_id, order_id=order_id)
    return PurchaseOrderResponse.from_order(order)


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


@router.post("/{order_id}/payments", response_model=PaymentResponse, status_code=201)
async def record_payment(
    order_id: uuid.UUID,
    body: PaymentCreate,
    db: AsyncSession = Depends(get_db),
):
    svc = PurchaseOrderService(db)
    payment = await svc.record_payment(order_id, body.amount)
    return PaymentResponse.model_validate(payment)


@router.put("/{order_id}/payments/{payment_id}", response_model=PaymentResponse)
async def update_payment_date(
    order_id: uuid.UUID,
    payment_id: uuid.UUID,
    body: PaymentDateUpdate,
    db: AsyncSession = Depends(get_db),
):
    svc = PurchaseOrderService(db)
    payment = await svc.update_payment_date(payment_id, body.paid_at, order_id=order_id)
    return PaymentResponse.model_validate(payment)
