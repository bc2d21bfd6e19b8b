# app/models/enums/purchase_order_status.py
import enum

class PurchaseOrderStatus(str, enum.Enum):
    pending = "pending"
    received = "received"
    cancelled = "cancelled"
