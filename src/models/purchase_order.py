"""PurchaseOrder model — order header owning line items and payments."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import PurchaseOrderStatus

if TYPE_CHECKING:
    from src.models.payment import Payment
    from src.models.purchase_order_item import PurchaseOrderItem


class PurchaseOrder(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "purchase_orders"

    po_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    vendor: Mapped[str] = mapped_column(String(255), nullable=False)

    # Dates
    order_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    ready_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date)

    shipping: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    note: Mapped[str | None] = mapped_column(Text)
    attachment: Mapped[str | None] = mapped_column(String(500))

    status: Mapped[PurchaseOrderStatus] = mapped_column(
        nullable=False, default=PurchaseOrderStatus.PENDING
    )

    # Display cache, rewritten from the items on every item mutation
    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0")
    )

    # Relationships
    items: Mapped[list[PurchaseOrderItem]] = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        lazy="noload",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.created_at",
    )
    payments: Mapped[list[Payment]] = relationship(
        "Payment",
        back_populates="purchase_order",
        lazy="noload",
        cascade="all, delete-orphan",
        order_by="Payment.paid_at",
    )

    __table_args__ = (
        CheckConstraint("shipping >= 0", name="ck_purchase_orders_shipping_non_negative"),
        Index("ix_purchase_orders_created_at", "created_at"),
        Index("ix_purchase_orders_status", "status"),
    )
