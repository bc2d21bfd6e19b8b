# app/schemas/purchasing/purchase_order_schemas.py

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from app.models.enums.purchase_order_status import PurchaseOrderStatus


class PurchaseOrderItemCreate(BaseModel):
    description: str = Field(min_length=1, max_length=500)
    received_quantity: int = Field(gt=0)


class PurchaseOrderCreate(BaseModel):
    po_number: Optional[str] = Field(default=None, max_length=50)
    supplier_name: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    items: List[PurchaseOrderItemCreate]


class PurchaseOrderItemOut(BaseModel):
    id: int
    description: str
    received_quantity: int

    class Config:
        from_attributes = True


class PurchaseOrderOut(BaseModel):
    id: int
    po_number: Optional[str]
    supplier_name: Optional[str]
    notes: Optional[str]
    status: PurchaseOrderStatus
    received_at: Optional[datetime]
    version: int
    created_at: datetime
    created_by: Optional[str]
    updated_by: Optional[str]
    items: List[PurchaseOrderItemOut]

    class Config:
        from_attributes = True


class PurchaseOrderListData(BaseModel):
    total: int
    items: List[PurchaseOrderOut]


class BackorderClearanceOut(BaseModel):
    sales_order_item_id: int
    sales_order_id: int
    cleared_quantity: int
    backordered_quantity: int


class ReceiptLineOut(BaseModel):
    purchase_order_item_id: int
    description: str
    matched_description: str
    item_id: Optional[int]
    received_quantity: int
    cleared_quantity: int
    left_on_hand: int
    clearances: List[BackorderClearanceOut]


class ReceiptResult(BaseModel):
    purchase_order_id: int
    po_number: Optional[str]
    status: PurchaseOrderStatus
    updated_items: int
    cleared_backorders: int
    lines: List[ReceiptLineOut]
