"""PurchaseOrderItem model — catalog or manual line within a purchase order."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import LineItemSource

if TYPE_CHECKING:
    from src.models.purchase_order import PurchaseOrder


class PurchaseOrderItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "purchase_order_items"

    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Source: storefront variant, or a manually entered line with no variant
    source: Mapped[LineItemSource] = mapped_column(nullable=False)
    variant_id: Mapped[str | None] = mapped_column(String(255))

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    received_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    purchase_order: Mapped[PurchaseOrder] = relationship(
        "PurchaseOrder", back_populates="items", lazy="noload"
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_purchase_order_items_quantity"),
        CheckConstraint("cost >= 0", name="ck_purchase_order_items_cost"),
        CheckConstraint(
            "received_qty >= 0 AND received_qty <= quantity",
            name="ck_purchase_order_items_received_qty",
        ),
        CheckConstraint(
            "(source = 'CATALOG') = (variant_id IS NOT NULL)",
            name="ck_purchase_order_items_source_variant",
        ),
        Index("ix_purchase_order_items_purchase_order_id", "purchase_order_id"),
    )

    @property
    def outstanding_qty(self) -> int:
        return max(self.quantity - self.received_qty, 0)
