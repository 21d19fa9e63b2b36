"""Purchase-order service — order aggregate, item ledger, payment ledger.

Every mutation that touches more than one row (item + order totals, payment +
order status) is flushed inside the caller's transaction; the request-scoped
session commits or rolls back the whole unit.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.exceptions import (
    DuplicateIdentifierException,
    NotFoundException,
    OverReceiptException,
    ValidationException,
)
from src.models.enums import LineItemSource, PurchaseOrderStatus
from src.models.payment import Payment
from src.models.purchase_order import PurchaseOrder
from src.models.purchase_order_item import PurchaseOrderItem
from src.modules.purchase_order import reconciliation
from src.modules.purchase_order.constants import (
    EVENT_ITEM_ADDED,
    EVENT_ITEM_RECEIVED,
    EVENT_ITEM_REMOVED,
    EVENT_ITEM_UPDATED,
    EVENT_ORDER_CREATED,
    EVENT_ORDER_DELETED,
    EVENT_ORDER_UPDATED,
    EVENT_PAYMENT_RECORDED,
    ZERO,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------


def _require_text(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationException(
            f"{field} is required", details=[{"field": field, "message": "required"}]
        )
    return str(value).strip()


def _coerce_quantity(value: Any, field: str = "quantity") -> int:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationException(
            f"{field} must be a number", details=[{"field": field, "message": "not a number"}]
        ) from exc
    if not number.is_finite() or number != number.to_integral_value():
        raise ValidationException(
            f"{field} must be a whole number",
            details=[{"field": field, "message": "not an integer"}],
        )
    if number < 0:
        raise ValidationException(
            f"{field} cannot be negative", details=[{"field": field, "message": "negative"}]
        )
    return int(number)


def _coerce_money(value: Any, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationException(
            f"{field} must be a number", details=[{"field": field, "message": "not a number"}]
        ) from exc
    if not amount.is_finite():
        raise ValidationException(
            f"{field} must be a finite number", details=[{"field": field, "message": "not finite"}]
        )
    if amount < 0:
        raise ValidationException(
            f"{field} cannot be negative", details=[{"field": field, "message": "negative"}]
        )
    return reconciliation.to_money(amount)


def _coerce_source(source: LineItemSource | str, variant_id: str | None) -> tuple[LineItemSource, str | None]:
    try:
        source = LineItemSource(source)
    except ValueError as exc:
        raise ValidationException(f"Unknown item source '{source}'") from exc
    if source == LineItemSource.CATALOG:
        return source, _require_text(variant_id, "variant_id")
    if variant_id:
        raise ValidationException("Manual items cannot reference a catalog variant")
    return source, None


class PurchaseOrderService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_order(self, order_id: uuid.UUID) -> PurchaseOrder:
        """Get an order with its items and payments freshly loaded."""
        result = await self.db.execute(
            select(PurchaseOrder)
            .options(
                selectinload(PurchaseOrder.items),
                selectinload(PurchaseOrder.payments),
            )
            .where(PurchaseOrder.id == order_id)
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundException(f"Purchase order {order_id} not found")
        return order

    async def list_orders(
        self,
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[list[PurchaseOrder], int]:
        """List orders newest first with items and payments loaded."""
        if page < 1:
            raise ValidationException("page must be at least 1")
        if page_size < 1:
            raise ValidationException("page_size must be at least 1")

        total_result = await self.db.execute(
            select(func.count()).select_from(PurchaseOrder)
        )
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(PurchaseOrder)
            .options(
                selectinload(PurchaseOrder.items),
                selectinload(PurchaseOrder.payments),
            )
            .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.po_number.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all()), total

    # ------------------------------------------------------------------
    # Order aggregate
    # ------------------------------------------------------------------

    async def create_order(
        self,
        po_number: str,
        vendor: str,
        ready_date: date | None,
        items: Iterable[Mapping[str, Any]],
        initial_payment: Decimal | int | str | None = None,
        order_date: date | None = None,
        due_date: date | None = None,
        shipping: Decimal | int | str = ZERO,
        note: str | None = None,
        attachment: str | None = None,
    ) -> PurchaseOrder:
        """Create an order with its items and an optional first payment."""
        po_number = _require_text(po_number, "po_number")
        vendor = _require_text(vendor, "vendor")
        if ready_date is None:
            raise ValidationException(
                "ready_date is required", details=[{"field": "ready_date", "message": "required"}]
            )
        item_rows = [self._build_item(data) for data in items]
        if not item_rows:
            raise ValidationException(
                "A purchase order needs at least one line item",
                details=[{"field": "items", "message": "empty"}],
            )
        shipping = _coerce_money(shipping, "shipping")
        payment_amount = ZERO
        if initial_payment is not None:
            payment_amount = _coerce_money(initial_payment, "initial_payment")

        await self._ensure_po_number_free(po_number)

        totals = reconciliation.sum_items(item_rows)
        order = PurchaseOrder(
            po_number=po_number,
            vendor=vendor,
            order_date=order_date or date.today(),
            ready_date=ready_date,
            due_date=due_date,
            shipping=shipping,
            note=note,
            attachment=attachment,
            total_quantity=totals.total_quantity,
            total_amount=totals.total_amount,
            status=reconciliation.derive_status(totals.total_amount + shipping, payment_amount),
        )
        self.db.add(order)
        await self._flush_header(po_number)

        for item in item_rows:
            item.purchase_order_id = order.id
            self.db.add(item)
        if payment_amount > ZERO:
            self.db.add(Payment(purchase_order_id=order.id, amount=payment_amount))
        await self.db.flush()

        logger.info(
            "%s %s (%s): %d items, total %s, paid %s, status %s",
            EVENT_ORDER_CREATED,
            order.id,
            po_number,
            len(item_rows),
            totals.total_amount,
            payment_amount,
            order.status.value,
        )
        return await self.get_order(order.id)

    async def update_order_details(
        self,
        order_id: uuid.UUID,
        po_number: str,
        status: PurchaseOrderStatus,
        ready_date: date | None = None,
        order_date: date | None = None,
    ) -> PurchaseOrder:
        """Edit header fields; dates are only touched when provided."""
        order = await self._get_order_row(order_id)
        po_number = _require_text(po_number, "po_number")
        if po_number != order.po_number:
            await self._ensure_po_number_free(po_number)

        order.po_number = po_number
        order.status = PurchaseOrderStatus(status)
        if ready_date is not None:
            order.ready_date = ready_date
        if order_date is not None:
            order.order_date = order_date
        await self._flush_header(po_number)

        logger.info("%s %s: details (status %s)", EVENT_ORDER_UPDATED, order_id, order.status.value)
        return await self.get_order(order_id)

    async def update_shipping(
        self, order_id: uuid.UUID, shipping: Decimal | int | str
    ) -> PurchaseOrder:
        order = await self._get_order_row(order_id)
        order.shipping = _coerce_money(shipping, "shipping")
        await self._rederive_status(order)
        await self.db.flush()

        logger.info("%s %s: shipping %s", EVENT_ORDER_UPDATED, order_id, order.shipping)
        return await self.get_order(order_id)

    async def update_due_date(self, order_id: uuid.UUID, due_date: date) -> PurchaseOrder:
        order = await self._get_order_row(order_id)
        order.due_date = due_date
        await self.db.flush()

        logger.info("%s %s: due date %s", EVENT_ORDER_UPDATED, order_id, due_date)
        return await self.get_order(order_id)

    async def update_note(
        self,
        order_id: uuid.UUID,
        note: str | None,
        attachment: str | None = None,
    ) -> PurchaseOrder:
        """Replace the note; the attachment is only replaced when a new one is given."""
        order = await self._get_order_row(order_id)
        order.note = note
        if attachment:
            order.attachment = attachment
        await self.db.flush()

        logger.info("%s %s: note", EVENT_ORDER_UPDATED, order_id)
        return await self.get_order(order_id)

    async def delete_order(self, order_id: uuid.UUID) -> None:
        """Delete payments, then items, then the header."""
        await self._get_order_row(order_id)

        await self.db.execute(delete(Payment).where(Payment.purchase_order_id == order_id))
        await self.db.execute(
            delete(PurchaseOrderItem).where(PurchaseOrderItem.purchase_order_id == order_id)
        )
        await self.db.execute(delete(PurchaseOrder).where(PurchaseOrder.id == order_id))
        await self.db.flush()

        logger.info("%s %s", EVENT_ORDER_DELETED, order_id)

    # ------------------------------------------------------------------
    # Line item ledger
    # ------------------------------------------------------------------

    async def add_item(
        self,
        order_id: uuid.UUID,
        title: str,
        quantity: int | str,
        cost: Decimal | int | str,
        sku: str | None = None,
        source: LineItemSource | str = LineItemSource.MANUAL,
        variant_id: str | None = None,
    ) -> PurchaseOrderItem:
        order = await self._get_order_row(order_id)
        item = self._build_item(
            {
                "source": source,
                "variant_id": variant_id,
                "title": title,
                "sku": sku,
                "quantity": quantity,
                "cost": cost,
            }
        )
        item.purchase_order_id = order.id
        self.db.add(item)
        await self.db.flush()

        await self.recalculate_totals(order.id)
        await self._rederive_status(order)
        await self.db.flush()

        logger.info(
            "%s %s on %s: qty %d @ %s", EVENT_ITEM_ADDED, item.id, order.id, item.quantity, item.cost
        )
        return item

    async def update_item(
        self,
        item_id: uuid.UUID,
        quantity: int | str,
        cost: Decimal | int | str,
        order_id: uuid.UUID | None = None,
    ) -> PurchaseOrderItem:
        item = await self._get_item(item_id, order_id)
        quantity = _coerce_quantity(quantity)
        cost = _coerce_money(cost, "cost")
        if quantity < item.received_qty:
            raise ValidationException(
                f"quantity cannot be below the {item.received_qty} already received",
                details=[{"field": "quantity", "message": f"min={item.received_qty}"}],
            )

        item.quantity = quantity
        item.cost = cost
        item.subtotal = reconciliation.line_subtotal(quantity, cost)
        await self.db.flush()

        order = await self.recalculate_totals(item.purchase_order_id)
        await self._rederive_status(order)
        await self.db.flush()

        logger.info("%s %s: qty %d @ %s", EVENT_ITEM_UPDATED, item_id, quantity, cost)
        return item

    async def receive(
        self,
        item_id: uuid.UUID,
        receive_qty: int | str,
        order_id: uuid.UUID | None = None,
    ) -> PurchaseOrderItem:
        """Increment the received quantity; never exceeds what is outstanding."""
        item = await self._get_item(item_id, order_id)
        try:
            receive_qty = _coerce_quantity(receive_qty, "receive_qty")
        except ValidationException as exc:
            raise ValidationException("Invalid receive quantity", details=exc.details) from exc
        if receive_qty <= 0:
            raise ValidationException(
                "Invalid receive quantity",
                details=[{"field": "receive_qty", "message": "must be positive"}],
            )

        remaining = item.outstanding_qty
        if receive_qty > remaining:
            raise OverReceiptException(max_receivable=remaining)

        # Increment in SQL, guarded by quantity
        result = await self.db.execute(
            update(PurchaseOrderItem)
            .where(
                PurchaseOrderItem.id == item.id,
                PurchaseOrderItem.received_qty + receive_qty <= PurchaseOrderItem.quantity,
            )
            .values(received_qty=PurchaseOrderItem.received_qty + receive_qty)
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(item)
        if result.rowcount == 0:
            raise OverReceiptException(max_receivable=item.outstanding_qty)

        logger.info(
            "%s %s: +%d (%d/%d)",
            EVENT_ITEM_RECEIVED,
            item_id,
            receive_qty,
            item.received_qty,
            item.quantity,
        )
        return item

    async def remove_item(
        self, item_id: uuid.UUID, order_id: uuid.UUID | None = None
    ) -> PurchaseOrder:
        """Delete a line item and re-sum the owning order."""
        item = await self._get_item(item_id, order_id)
        order_id = item.purchase_order_id
        await self.db.delete(item)
        await self.db.flush()

        order = await self.recalculate_totals(order_id)
        await self._rederive_status(order)
        await self.db.flush()

        logger.info("%s %s from %s", EVENT_ITEM_REMOVED, item_id, order_id)
        return await self.get_order(order_id)

    async def recalculate_totals(self, order_id: uuid.UUID) -> PurchaseOrder:
        """Re-derive the cached totals from every current item of the order."""
        order = await self._get_order_row(order_id)
        items = await self._load_items(order_id)
        totals = reconciliation.sum_items(items)
        order.total_quantity = totals.total_quantity
        order.total_amount = totals.total_amount
        await self.db.flush()
        return order

    # ------------------------------------------------------------------
    # Payment ledger
    # ------------------------------------------------------------------

    async def record_payment(
        self, order_id: uuid.UUID, amount: Decimal | int | str
    ) -> Payment:
        order = await self._get_order_row(order_id)
        amount = _coerce_money(amount, "amount")
        if amount <= ZERO:
            raise ValidationException(
                "Enter valid amount", details=[{"field": "amount", "message": "must be positive"}]
            )

        payment = Payment(purchase_order_id=order.id, amount=amount)
        self.db.add(payment)
        await self.db.flush()

        await self._rederive_status(order)
        await self.db.flush()

        logger.info(
            "%s %s on %s: %s (status %s)",
            EVENT_PAYMENT_RECORDED,
            payment.id,
            order.id,
            amount,
            order.status.value,
        )
        return payment

    async def update_payment_date(
        self,
        payment_id: uuid.UUID,
        paid_at: datetime,
        order_id: uuid.UUID | None = None,
    ) -> Payment:
        payment = await self.db.get(Payment, payment_id)
        if payment is None or (order_id is not None and payment.purchase_order_id != order_id):
            raise NotFoundException(f"Payment {payment_id} not found")
        payment.paid_at = paid_at
        await self.db.flush()

        logger.info("%s %s: paid_at %s", EVENT_ORDER_UPDATED, payment.purchase_order_id, paid_at)
        return payment

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_item(self, data: Mapping[str, Any]) -> PurchaseOrderItem:
        source, variant_id = _coerce_source(
            data.get("source") or LineItemSource.MANUAL, data.get("variant_id")
        )
        quantity = _coerce_quantity(data.get("quantity"))
        cost = _coerce_money(data.get("cost"), "cost")
        return PurchaseOrderItem(
            source=source,
            variant_id=variant_id,
            title=_require_text(data.get("title"), "title"),
            sku=(data.get("sku") or "").strip(),
            quantity=quantity,
            cost=cost,
            subtotal=reconciliation.line_subtotal(quantity, cost),
            received_qty=0,
        )

    async def _ensure_po_number_free(self, po_number: str) -> None:
        result = await self.db.execute(
            select(func.count())
            .select_from(PurchaseOrder)
            .where(PurchaseOrder.po_number == po_number)
        )
        if (result.scalar() or 0) > 0:
            raise DuplicateIdentifierException(f"PO Number {po_number} already exists")

    async def _flush_header(self, po_number: str) -> None:
        """Flush a new or renamed header; a concurrent claim on the PO number is a conflict."""
        try:
            await self.db.flush()
        except IntegrityError as exc:
            logger.info("PO number %s taken concurrently: %s", po_number, exc.orig)
            raise DuplicateIdentifierException(f"PO Number {po_number} already exists") from exc

    async def _get_order_row(self, order_id: uuid.UUID) -> PurchaseOrder:
        order = await self.db.get(PurchaseOrder, order_id)
        if order is None:
            raise NotFoundException(f"Purchase order {order_id} not found")
        return order

    async def _get_item(
        self, item_id: uuid.UUID, order_id: uuid.UUID | None = None
    ) -> PurchaseOrderItem:
        item = await self.db.get(PurchaseOrderItem, item_id)
        if item is None or (order_id is not None and item.purchase_order_id != order_id):
            raise NotFoundException(f"Item {item_id} not found")
        return item

    async def _load_items(self, order_id: uuid.UUID) -> list[PurchaseOrderItem]:
        result = await self.db.execute(
            select(PurchaseOrderItem).where(PurchaseOrderItem.purchase_order_id == order_id)
        )
        return list(result.scalars().all())

    async def _load_payments(self, order_id: uuid.UUID) -> list[Payment]:
        result = await self.db.execute(
            select(Payment).where(Payment.purchase_order_id == order_id)
        )
        return list(result.scalars().all())

    async def _rederive_status(self, order: PurchaseOrder) -> None:
        """Recompute status from the stored items, payments and shipping."""
        summary = reconciliation.summarize(
            await self._load_items(order.id),
            await self._load_payments(order.id),
            order.shipping,
        )
        order.status = summary.payment_status
