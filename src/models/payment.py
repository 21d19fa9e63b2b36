"""Payment model — append-only payment events against a purchase order."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from src.models.purchase_order import PurchaseOrder


class Payment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "purchase_order_payments"

    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Relationships
    purchase_order: Mapped[PurchaseOrder] = relationship(
        "PurchaseOrder", back_populates="payments", lazy="noload"
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_purchase_order_payments_amount_positive"),
        Index("ix_purchase_order_payments_purchase_order_id", "purchase_order_id"),
    )
