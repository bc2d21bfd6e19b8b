from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class BacklogItemOut(BaseModel):
    id: int
    sales_order_id: int
    order_number: str
    item_id: Optional[int]
    description: str
    backordered_quantity: int
    created_at: datetime


class BacklogSelection(BaseModel):
    sales_order_item_id: int
    quantity: Optional[int] = Field(default=None, gt=0, description="Defaults to the full backorder")


class PurchaseOrderFromBacklogCreate(BaseModel):
    po_number: Optional[str] = Field(default=None, max_length=50)
    supplier_name: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    items: List[BacklogSelection]
