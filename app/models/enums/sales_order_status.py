# app/models/enums/sales_order_status.py
import enum

class SalesOrderStatus(str, enum.Enum):
    draft = "draft"
    confirmed = "confirmed"
    cancelled = "cancelled"
