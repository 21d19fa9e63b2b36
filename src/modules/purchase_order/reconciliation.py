"""Pure purchase-order arithmetic: subtotals, totals, balance and status.

Everything here is a function of raw rows (items, payments, shipping) so the
read path can recompute every derived figure on each fetch instead of trusting
the cached ``total_quantity`` / ``total_amount`` columns.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from src.models.enums import PurchaseOrderStatus
from src.modules.purchase_order.constants import MONEY_QUANTUM, ZERO

if TYPE_CHECKING:
    from src.models.payment import Payment
    from src.models.purchase_order_item import PurchaseOrderItem


def to_money(value: Decimal | int | str) -> Decimal:
    return Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def line_subtotal(quantity: int, cost: Decimal) -> Decimal:
    return to_money(Decimal(quantity) * cost)


def derive_status(grand_total: Decimal, total_paid: Decimal) -> PurchaseOrderStatus:
    """Map payment progress onto an order status.

    Nothing paid is always PENDING, even for a zero-value order.
    """
    if total_paid <= ZERO:
        return PurchaseOrderStatus.PENDING
    if total_paid >= grand_total:
        return PurchaseOrderStatus.COMPLETED
    return PurchaseOrderStatus.IN_PROGRESS


@dataclass(frozen=True)
class ItemTotals:
    total_quantity: int
    total_amount: Decimal


def sum_items(items: Iterable[PurchaseOrderItem]) -> ItemTotals:
    """Full re-sum over the current item rows."""
    total_quantity = 0
    total_amount = ZERO
    for item in items:
        total_quantity += item.quantity
        total_amount += Decimal(item.quantity) * item.cost
    return ItemTotals(total_quantity=total_quantity, total_amount=to_money(total_amount))


def sum_payments(payments: Iterable[Payment]) -> Decimal:
    return to_money(sum((p.amount for p in payments), ZERO))


@dataclass(frozen=True)
class OrderSummary:
    total_quantity: int
    received_quantity: int
    on_order: int
    items_total: Decimal
    shipping: Decimal
    grand_total: Decimal
    total_paid: Decimal
    balance: Decimal
    payment_status: PurchaseOrderStatus


def summarize(
    items: Iterable[PurchaseOrderItem],
    payments: Iterable[Payment],
    shipping: Decimal,
) -> OrderSummary:
    items = list(items)
    totals = sum_items(items)
    received = sum(item.received_qty for item in items)
    shipping = to_money(shipping or ZERO)
    grand_total = totals.total_amount + shipping
    total_paid = sum_payments(payments)
    return OrderSummary(
        total_quantity=totals.total_quantity,
        received_quantity=received,
        on_order=totals.total_quantity - received,
        items_total=totals.total_amount,
        shipping=shipping,
        grand_total=grand_total,
        total_paid=total_paid,
        balance=grand_total - total_paid,
        payment_status=derive_status(grand_total, total_paid),
    )
