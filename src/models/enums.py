import enum


class PurchaseOrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class LineItemSource(str, enum.Enum):
    CATALOG = "CATALOG"
    MANUAL = "MANUAL"
