# Import all models so SQLAlchemy metadata is populated for Alembic and create_all
from src.models.enums import LineItemSource, PurchaseOrderStatus
from src.models.payment import Payment
from src.models.purchase_order import PurchaseOrder
from src.models.purchase_order_item import PurchaseOrderItem

__all__ = [
    "LineItemSource",
    "Payment",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "PurchaseOrderStatus",
]
