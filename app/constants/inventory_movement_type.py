# app/constants/inventory_movement_type.py

from enum import Enum


class InventoryMovementType(str, Enum):
    RESERVE = "RESERVE"
    RELEASE = "RELEASE"
    RECEIPT = "RECEIPT"
    ADJUSTMENT = "ADJUSTMENT"


class StockReferenceType(str, Enum):
    SALES_ORDER_ITEM = "SALES_ORDER_ITEM"
    PURCHASE_ORDER_ITEM = "PURCHASE_ORDER_ITEM"
    ADJUSTMENT = "ADJUSTMENT"
