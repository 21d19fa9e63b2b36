"""Purchase-order limits and log event names."""

from __future__ import annotations

from decimal import Decimal

MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0")

PO_NUMBER_MAX_LENGTH = 50
VENDOR_MAX_LENGTH = 255

# ---------------------------------------------------------------------------
# Event names written to the service log
# ---------------------------------------------------------------------------

EVENT_ORDER_CREATED = "purchase_order.created"
EVENT_ORDER_UPDATED = "purchase_order.updated"
EVENT_ORDER_DELETED = "purchase_order.deleted"
EVENT_ITEM_ADDED = "purchase_order.item_added"
EVENT_ITEM_UPDATED = "purchase_order.item_updated"
EVENT_ITEM_RECEIVED = "purchase_order.item_received"
EVENT_ITEM_REMOVED = "purchase_order.item_removed"
EVENT_PAYMENT_RECORDED = "purchase_order.payment_recorded"
