from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from app.constants.inventory_movement_type import InventoryMovementType


class StockMovementOut(BaseModel):
    id: int
    item_id: int
    movement_type: InventoryMovementType
    quantity_change: int
    balance_after: int
    reference_type: str
    reference_id: int
    created_by: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class StockMovementListData(BaseModel):
    total: int
    items: List[StockMovementOut]
