"""Create purchase order tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# --- Enum types ---
purchase_order_status_enum = sa.Enum(
    "PENDING", "IN_PROGRESS", "COMPLETED", name="purchaseorderstatus", create_type=True
)
line_item_source_enum = sa.Enum(
    "CATALOG", "MANUAL", name="lineitemsource", create_type=True
)


def upgrade() -> None:
    purchase_order_status_enum.create(op.get_bind(), checkfirst=True)
    line_item_source_enum.create(op.get_bind(), checkfirst=True)

    # 1. purchase_orders
    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("po_number", sa.String(50), nullable=False),
        sa.Column("vendor", sa.String(255), nullable=False),
        sa.Column("order_date", sa.Date, server_default=sa.text("CURRENT_DATE"), nullable=False),
        sa.Column("ready_date", sa.Date, nullable=False),
        sa.Column("due_date", sa.Date, nullable=True),
        sa.Column("shipping", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("attachment", sa.String(500), nullable=True),
        sa.Column("status", purchase_order_status_enum, server_default="PENDING", nullable=False),
        sa.Column("total_quantity", sa.Integer, server_default="0", nullable=False),
        sa.Column("total_amount", sa.Numeric(15, 2), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("po_number", name="uq_purchase_orders_po_number"),
        sa.CheckConstraint("shipping >= 0", name="ck_purchase_orders_shipping_non_negative"),
    )
    op.create_index("ix_purchase_orders_created_at", "purchase_orders", ["created_at"])
    op.create_index("ix_purchase_orders_status", "purchase_orders", ["status"])

    # 2. purchase_order_items
    op.create_table(
        "purchase_order_items",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "purchase_order_id",
            sa.Uuid,
            sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("source", line_item_source_enum, nullable=False),
        sa.Column("variant_id", sa.String(255), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(100), server_default="", nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("subtotal", sa.Numeric(15, 2), nullable=False),
        sa.Column("received_qty", sa.Integer, server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_purchase_order_items_quantity"),
        sa.CheckConstraint("cost >= 0", name="ck_purchase_order_items_cost"),
        sa.CheckConstraint(
            "received_qty >= 0 AND received_qty <= quantity",
            name="ck_purchase_order_items_received_qty",
        ),
        sa.CheckConstraint(
            "(source = 'CATALOG') = (variant_id IS NOT NULL)",
            name="ck_purchase_order_items_source_variant",
        ),
    )
    op.create_index(
        "ix_purchase_order_items_purchase_order_id",
        "purchase_order_items",
        ["purchase_order_id"],
    )

    # 3. purchase_order_payments
    op.create_table(
        "purchase_order_payments",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "purchase_order_id",
            sa.Uuid,
            sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_purchase_order_payments_amount_positive"),
    )
    op.create_index(
        "ix_purchase_order_payments_purchase_order_id",
        "purchase_order_payments",
        ["purchase_order_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_purchase_order_payments_purchase_order_id", table_name="purchase_order_payments")
    op.drop_table("purchase_order_payments")
    op.drop_index("ix_purchase_order_items_purchase_order_id", table_name="purchase_order_items")
    op.drop_table("purchase_order_items")
    op.drop_index("ix_purchase_orders_status", table_name="purchase_orders")
    op.drop_index("ix_purchase_orders_created_at", table_name="purchase_orders")
    op.drop_table("purchase_orders")

    line_item_source_enum.drop(op.get_bind(), checkfirst=True)
    purchase_order_status_enum.drop(op.get_bind(), checkfirst=True)
