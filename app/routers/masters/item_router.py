import logging

from fastapi import APIRouter, Depends, Query
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.item_category import ItemCategory
from app.schemas.masters.item_schemas import (
    ItemCreate,
    ItemOut,
    ItemListData,
    StockAdjustmentCreate,
)
from app.schemas.inventory.stock_movement_schemas import (
    StockMovementOut,
    StockMovementListData,
)
from app.services.masters.item_service import (
    create_item,
    get_item,
    list_items,
    adjust_stock,
    list_item_movements,
)
from app.utils.get_actor import get_actor
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/items", tags=["Items"])
logger = logging.getLogger(__name__)


@router.post("/", response_model=APIResponse[ItemOut])
async def create_item_api(
    payload: ItemCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    logger.info("Create item %s", payload.name)

    item = await create_item(db, payload, actor)
    return success_response("Item created successfully", item)


@router.get("/", response_model=APIResponse[ItemListData])
async def list_items_api(
    db: AsyncSession = Depends(get_db),

    search: Optional[str] = Query(None),
    category: Optional[ItemCategory] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),

    sort_by: str = Query("name"),
    order: str = Query("asc"),
):
    data = await list_items(
        db,
        search=search,
        category=category,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order,
    )
    return success_response("Items fetched successfully", data)


@router.get("/{item_id}", response_model=APIResponse[ItemOut])
async def get_item_api(
    item_id: int,
    db: AsyncSession = Depends(get_db),
):
    item = await get_item(db, item_id)
    return success_response("Item fetched successfully", item)


@router.post("/{item_id}/adjust-stock", response_model=APIResponse[StockMovementOut])
async def adjust_stock_api(
    item_id: int,
    payload: StockAdjustmentCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    logger.info("Adjust stock of item %s by %s", item_id, payload.quantity_change)

    movement = await adjust_stock(db, item_id, payload, actor)
    return success_response("Stock adjusted successfully", movement)


@router.get("/{item_id}/movements", response_model=APIResponse[StockMovementListData])
async def list_item_movements_api(
    item_id: int,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    data = await list_item_movements(db, item_id, page=page, page_size=page_size)
    return success_response("Stock movements fetched successfully", data)
