# app/schemas/sales/delivery_order_schemas.py

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime

from app.models.enums.delivery_order_status import DeliveryOrderStatus


class DeliveryOrderItemCreate(BaseModel):
    sales_order_item_id: int
    quantity: int = Field(gt=0, description="Quantity shipped on this document")


class DeliveryOrderCreate(BaseModel):
    sales_order_id: int
    delivery_number: Optional[str] = Field(default=None, max_length=50)
    delivery_date: Optional[date] = None
    notes: Optional[str] = None
    items: List[DeliveryOrderItemCreate]


class DeliveryOrderUpdate(BaseModel):
    delivery_date: Optional[date] = None
    notes: Optional[str] = None
    items: Optional[List[DeliveryOrderItemCreate]] = None

    # optimistic locking
    version: int


class DeliveryOrderItemOut(BaseModel):
    id: int
    sales_order_item_id: Optional[int]
    description: str
    shipped_quantity: int

    class Config:
        from_attributes = True


class DeliveryOrderOut(BaseModel):
    id: int
    delivery_number: Optional[str]
    sales_order_id: int
    status: DeliveryOrderStatus
    delivery_date: Optional[date]
    notes: Optional[str]
    version: int
    created_at: datetime
    created_by: Optional[str]
    updated_by: Optional[str]
    items: List[DeliveryOrderItemOut]

    class Config:
        from_attributes = True


class DeliverableLineOut(BaseModel):
    sales_order_item_id: int
    description: str
    ordered_quantity: int
    assigned_quantity: int
    remaining_quantity: int


class DeliveryProgressOut(BaseModel):
    sales_order_id: int
    total_so_items: int
    delivered_items: int
    items_delivered_percentage: float
    total_quantity: int
    assigned_quantity: int
    delivered_quantity: int
    quantity_delivered_percentage: float
    delivery_status: str
    do_count: int
