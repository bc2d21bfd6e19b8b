# app/models/enums/delivery_order_status.py
import enum

class DeliveryOrderStatus(str, enum.Enum):
    pending = "pending"
    delivered = "delivered"
    cancelled = "cancelled"
