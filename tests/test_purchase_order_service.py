"""Service tests for PurchaseOrderService — orders, items, receipts, payments."""

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select, update

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
from src.modules.purchase_order.reconciliation import summarize
from src.modules.purchase_order.service import PurchaseOrderService

READY = date(2026, 11, 1)


def _items():
    return [
        {"title": "Widget", "sku": "W-1", "quantity": 2, "cost": "10"},
        {
            "title": "Gadget",
            "source": LineItemSource.CATALOG,
            "variant_id": "gid://shop/ProductVariant/1",
            "quantity": 3,
            "cost": "5",
        },
    ]


async def _create(service: PurchaseOrderService, po_number: str = "PO-1", **kwargs):
    return await service.create_order(
        po_number=po_number,
        vendor="Acme Supply",
        ready_date=READY,
        items=kwargs.pop("items", _items()),
        **kwargs,
    )


async def _count(session, model, order_id) -> int:
    result = await session.execute(
        select(func.count()).select_from(model).where(model.purchase_order_id == order_id)
    )
    return result.scalar()


class TestCreateOrder:
    """Tests for PurchaseOrderService.create_order."""

    @pytest.mark.asyncio
    async def test_create_computes_totals(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        order = await _create(service)

        assert order.total_quantity == 5
        assert order.total_amount == Decimal("35")
        assert order.status == PurchaseOrderStatus.PENDING
        assert order.order_date == date.today()
        assert len(order.items) == 2
        assert order.payments == []
        assert {i.subtotal for i in order.items} == {Decimal("20"), Decimal("15")}
        assert all(i.received_qty == 0 for i in order.items)

    @pytest.mark.asyncio
    async def test_create_keeps_catalog_variant(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        order = await _create(service)

        catalog = [i for i in order.items if i.source == LineItemSource.CATALOG]
        manual = [i for i in order.items if i.source == LineItemSource.MANUAL]
        assert catalog[0].variant_id == "gid://shop/ProductVariant/1"
        assert manual[0].variant_id is None

    @pytest.mark.asyncio
    async def test_create_with_initial_payment_sets_status(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        order = await _create(service, initial_payment="20")

        assert len(order.payments) == 1
        assert order.payments[0].amount == Decimal("20")
        assert order.status == PurchaseOrderStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_zero_initial_payment_records_nothing(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        order = await _create(service, initial_payment=0)

        assert order.payments == []
        assert order.status == PurchaseOrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_full_initial_payment_with_shipping(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        order = await _create(service, shipping="5", initial_payment="40")

        assert order.status == PurchaseOrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_duplicate_po_number_rejected(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        await _create(service, po_number="PO-DUP")

        with pytest.raises(DuplicateIdentifierException) as exc_info:
            await _create(service, po_number="PO-DUP")

        assert "already exists" in exc_info.value.message
        result = await async_test_session.execute(select(func.count()).select_from(PurchaseOrder))
        assert result.scalar() == 1

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_insert_is_conflict(self, async_test_session, monkeypatch):
        service = PurchaseOrderService(async_test_session)
        await _create(service, po_number="PO-RACE")
        # Both creates passed the lookup before either row was written
        monkeypatch.setattr(service, "_ensure_po_number_free", AsyncMock())

        with pytest.raises(DuplicateIdentifierException) as exc_info:
            await _create(service, po_number="PO-RACE")

        assert exc_info.value.code == "DUPLICATE_IDENTIFIER"
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_concurrent_rename_is_conflict(self, async_test_session, monkeypatch):
        service = PurchaseOrderService(async_test_session)
        await _create(service, po_number="PO-A")
        order = await _create(service, po_number="PO-B")
        monkeypatch.setattr(service, "_ensure_po_number_free", AsyncMock())

        with pytest.raises(DuplicateIdentifierException):
            await service.update_order_details(
                order.id, po_number="PO-A", status=PurchaseOrderStatus.PENDING
            )

    @pytest.mark.asyncio
    async def test_missing_vendor_rejected(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        with pytest.raises(ValidationException):
            await service.create_order(
                po_number="PO-1", vendor="  ", ready_date=READY, items=_items()
            )

    @pytest.mark.asyncio
    async def test_missing_ready_date_rejected(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        with pytest.raises(ValidationException):
            await service.create_order(
                po_number="PO-1", vendor="Acme", ready_date=None, items=_items()
            )

    @pytest.mark.asyncio
    async def test_empty_items_rejected(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        with pytest.raises(ValidationException):
            await _create(service, items=[])

    @pytest.mark.asyncio
    async def test_non_numeric_quantity_rejected(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        with pytest.raises(ValidationException):
            await _create(service, items=[{"title": "Widget", "quantity": "abc", "cost": "1"}])

    @pytest.mark.asyncio
    async def test_catalog_item_without_variant_rejected(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        with pytest.raises(ValidationException):
            await _create(
                service,
                items=[{"title": "W", "source": "CATALOG", "quantity": 1, "cost": "1"}],
            )


class TestListAndGet:
    """Tests for get_order / list_orders."""

    @pytest.mark.asyncio
    async def test_get_missing_order(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        with pytest.raises(NotFoundException):
            await service.get_order(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_pagination_over_23_orders(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        for n in range(1, 24):
            await _create(service, po_number=f"PO-{n:03d}")

        first, total = await service.list_orders(page=1, page_size=10)
        third, _ = await service.list_orders(page=3, page_size=10)

        assert total == 23
        assert len(first) == 10
        assert len(third) == 3
        assert first[0].po_number == "PO-023"
        assert third[-1].po_number == "PO-001"
        assert all(len(o.items) == 2 for o in first)

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        await _create(service)

        orders, total = await service.list_orders(page=5, page_size=10)

        assert orders == []
        assert total == 1

    @pytest.mark.asyncio
    async def test_invalid_page_rejected(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        with pytest.raises(ValidationException):
            await service.list_orders(page=0)


class TestOrderEdits:
    """Tests for header edits and deletion."""

    @pytest.mark.asyncio
    async def test_update_details_only_touches_given_dates(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service, order_date=date(2026, 10, 1))

        updated = await service.update_order_details(
            order.id, po_number="PO-1B", status=PurchaseOrderStatus.IN_PROGRESS
        )

        assert updated.po_number == "PO-1B"
        assert updated.status == PurchaseOrderStatus.IN_PROGRESS
        assert updated.ready_date == READY
        assert updated.order_date == date(2026, 10, 1)

    @pytest.mark.asyncio
    async def test_update_details_rejects_taken_po_number(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        await _create(service, po_number="PO-A")
        order = await _create(service, po_number="PO-B")

        with pytest.raises(DuplicateIdentifierException):
            await service.update_order_details(
                order.id, po_number="PO-A", status=PurchaseOrderStatus.PENDING
            )

    @pytest.mark.asyncio
    async def test_update_due_date_and_note(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)

        await service.update_due_date(order.id, date(2026, 12, 24))
        await service.update_note(order.id, "first", attachment="/uploads/1-a.pdf")
        updated = await service.update_note(order.id, "second")

        assert updated.due_date == date(2026, 12, 24)
        assert updated.note == "second"
        assert updated.attachment == "/uploads/1-a.pdf"

    @pytest.mark.asyncio
    async def test_delete_leaves_no_orphans(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service, initial_payment="10")
        await service.record_payment(order.id, "5")

        await service.delete_order(order.id)

        assert await _count(async_test_session, PurchaseOrderItem, order.id) == 0
        assert await _count(async_test_session, Payment, order.id) == 0
        with pytest.raises(NotFoundException):
            await service.get_order(order.id)

    @pytest.mark.asyncio
    async def test_delete_missing_order(self, async_test_session):
        service = PurchaseOrderService(async_test_session)

        with pytest.raises(NotFoundException):
            await service.delete_order(uuid.uuid4())


class TestItemLedger:
    """Tests for add / update / remove / receive."""

    @pytest.mark.asyncio
    async def test_add_item_resums_totals(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)

        item = await service.add_item(order.id, title="Bolt", quantity=1, cost="20")
        refreshed = await service.get_order(order.id)

        assert item.subtotal == Decimal("20")
        assert item.source == LineItemSource.MANUAL
        assert refreshed.total_quantity == 6
        assert refreshed.total_amount == Decimal("55")

    @pytest.mark.asyncio
    async def test_update_and_remove_keep_totals_equal_to_items(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)
        widget = next(i for i in order.items if i.title == "Widget")
        gadget = next(i for i in order.items if i.title == "Gadget")

        updated = await service.update_item(widget.id, quantity=4, cost="2.50")
        assert updated.subtotal == Decimal("10")

        refreshed = await service.get_order(order.id)
        assert refreshed.total_quantity == sum(i.quantity for i in refreshed.items) == 7
        assert refreshed.total_amount == Decimal("25")

        after_remove = await service.remove_item(gadget.id)
        assert after_remove.total_quantity == 4
        assert after_remove.total_amount == Decimal("10")
        assert [i.title for i in after_remove.items] == ["Widget"]

    @pytest.mark.asyncio
    async def test_update_below_received_rejected(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)
        gadget = next(i for i in order.items if i.title == "Gadget")
        await service.receive(gadget.id, 2)

        with pytest.raises(ValidationException):
            await service.update_item(gadget.id, quantity=1, cost="5")

    @pytest.mark.asyncio
    async def test_receive_accumulates(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)
        gadget = next(i for i in order.items if i.title == "Gadget")

        await service.receive(gadget.id, 1)
        item = await service.receive(gadget.id, 2)

        assert item.received_qty == 3
        assert item.outstanding_qty == 0

    @pytest.mark.asyncio
    async def test_over_receipt_leaves_row_unchanged(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)
        gadget = next(i for i in order.items if i.title == "Gadget")
        await service.receive(gadget.id, 1)

        with pytest.raises(OverReceiptException) as exc_info:
            await service.receive(gadget.id, 3)

        assert exc_info.value.max_receivable == 2
        assert exc_info.value.message == "You can receive only 2"
        refreshed = await service.get_order(order.id)
        assert next(i for i in refreshed.items if i.id == gadget.id).received_qty == 1

    @pytest.mark.asyncio
    async def test_receive_increments_stored_value_not_loaded_copy(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)
        gadget = next(i for i in order.items if i.title == "Gadget")
        # Another transaction received one unit after this session loaded the row
        await async_test_session.execute(
            update(PurchaseOrderItem)
            .where(PurchaseOrderItem.id == gadget.id)
            .values(received_qty=1)
            .execution_options(synchronize_session=False)
        )
        assert gadget.received_qty == 0

        item = await service.receive(gadget.id, 1)

        assert item.received_qty == 2

    @pytest.mark.asyncio
    async def test_receive_guard_uses_stored_quantity(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)
        gadget = next(i for i in order.items if i.title == "Gadget")
        await async_test_session.execute(
            update(PurchaseOrderItem)
            .where(PurchaseOrderItem.id == gadget.id)
            .values(received_qty=2)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(OverReceiptException) as exc_info:
            await service.receive(gadget.id, 2)

        assert exc_info.value.max_receivable == 1
        assert gadget.received_qty == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("qty", [0, -1, "x"])
    async def test_invalid_receive_quantity(self, async_test_session, qty):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)

        with pytest.raises(ValidationException) as exc_info:
            await service.receive(order.items[0].id, qty)

        assert exc_info.value.message == "Invalid receive quantity"

    @pytest.mark.asyncio
    async def test_item_of_another_order_not_found(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        first = await _create(service, po_number="PO-A")
        second = await _create(service, po_number="PO-B")

        with pytest.raises(NotFoundException):
            await service.receive(first.items[0].id, 1, order_id=second.id)

    @pytest.mark.asyncio
    async def test_adding_item_reopens_completed_order(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service, initial_payment="35")
        assert order.status == PurchaseOrderStatus.COMPLETED

        await service.add_item(order.id, title="Extra", quantity=1, cost="10")
        refreshed = await service.get_order(order.id)

        assert refreshed.status == PurchaseOrderStatus.IN_PROGRESS


class TestPaymentLedger:
    """Tests for record_payment / update_payment_date."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, "-5"])
    async def test_non_positive_payment_creates_no_row(self, async_test_session, amount):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)

        with pytest.raises(ValidationException):
            await service.record_payment(order.id, amount)

        assert await _count(async_test_session, Payment, order.id) == 0

    @pytest.mark.asyncio
    async def test_shipping_and_overpayment_balance(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)
        await service.add_item(order.id, title="Bolt", quantity=1, cost="20")
        await service.update_shipping(order.id, "10")

        await service.record_payment(order.id, "65")
        paid = await service.get_order(order.id)
        summary = summarize(paid.items, paid.payments, paid.shipping)
        assert summary.grand_total == Decimal("65")
        assert summary.balance == Decimal("0")
        assert paid.status == PurchaseOrderStatus.COMPLETED

        await service.record_payment(order.id, "5")
        overpaid = await service.get_order(order.id)
        summary = summarize(overpaid.items, overpaid.payments, overpaid.shipping)
        assert summary.balance == Decimal("-5")
        assert overpaid.status == PurchaseOrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_partial_payment_is_in_progress(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)

        await service.record_payment(order.id, "10")
        refreshed = await service.get_order(order.id)

        assert refreshed.status == PurchaseOrderStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_update_payment_date(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)
        payment = await service.record_payment(order.id, "10")
        when = datetime(2026, 9, 1, 12, 0, tzinfo=UTC)

        updated = await service.update_payment_date(payment.id, when, order_id=order.id)

        assert updated.paid_at == when
        assert updated.amount == Decimal("10")

    @pytest.mark.asyncio
    async def test_update_payment_date_wrong_order(self, async_test_session):
        service = PurchaseOrderService(async_test_session)
        order = await _create(service)
        payment = await service.record_payment(order.id, "10")

        with pytest.raises(NotFoundException):
            await service.update_payment_date(
                payment.id, datetime(2026, 9, 1, tzinfo=UTC), order_id=uuid.uuid4()
            )
