# app/schemas/masters/item_schemas.py

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.models.enums.item_category import ItemCategory


class ItemCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    category: ItemCategory = ItemCategory.goods
    on_hand: int = Field(default=0, ge=0, description="Opening stock")


class ItemOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    category: ItemCategory
    on_hand: int
    version: int

    created_by: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ItemListData(BaseModel):
    total: int
    items: List[ItemOut]


class StockAdjustmentCreate(BaseModel):
    quantity_change: int = Field(description="Signed delta applied to on-hand stock")
    reason: str = Field(default="manual adjustment", max_length=255)
