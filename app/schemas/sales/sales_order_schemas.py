# app/schemas/sales/sales_order_schemas.py

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from app.models.enums.sales_order_status import SalesOrderStatus


# ==============================
# INPUT
# ==============================
class SalesOrderItemCreate(BaseModel):
    description: str = Field(min_length=1, max_length=500)
    ordered_quantity: int = Field(gt=0)
    item_id: Optional[int] = Field(default=None, description="Known catalog item; skips text matching")


class SalesOrderCreate(BaseModel):
    order_number: Optional[str] = Field(default=None, max_length=50)
    customer_name: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    items: List[SalesOrderItemCreate]


# ==============================
# OUTPUT
# ==============================
class SalesOrderItemOut(BaseModel):
    id: int
    item_id: Optional[int]
    description: str
    ordered_quantity: int
    reserved_quantity: int
    backordered_quantity: int
    created_at: datetime

    class Config:
        from_attributes = True


class SalesOrderOut(BaseModel):
    id: int
    order_number: Optional[str]
    customer_name: Optional[str]
    notes: Optional[str]
    status: SalesOrderStatus
    version: int

    created_at: datetime
    created_by: Optional[str]
    updated_by: Optional[str]

    items: List[SalesOrderItemOut]

    class Config:
        from_attributes = True


class SalesOrderListData(BaseModel):
    total: int
    items: List[SalesOrderOut]


# ==============================
# RESERVATION RESULTS
# ==============================
class LineReservationOut(BaseModel):
    sales_order_item_id: int
    description: str
    item_id: Optional[int]
    stock_tracked: bool
    ordered_quantity: int
    reserved_quantity: int
    backordered_quantity: int


class ConfirmationResult(BaseModel):
    sales_order_id: int
    order_number: Optional[str]
    status: SalesOrderStatus
    processed_items: int
    total_backordered: int
    lines: List[LineReservationOut]


class RevertResult(BaseModel):
    sales_order_id: int
    order_number: Optional[str]
    status: SalesOrderStatus
    restored_items: int
    restored_quantity: int


class StockShortfallOut(BaseModel):
    sales_order_item_id: int
    description: str
    item_id: Optional[int]
    required_quantity: int
    available_stock: int
    shortfall: int
