# app/services/masters/item_service.py

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, asc, desc, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import raiseload

from app.models.masters.item_models import CatalogItem
from app.models.inventory.stock_movement_models import StockMovement
from app.models.enums.item_category import ItemCategory

from app.constants.inventory_movement_type import (
    InventoryMovementType,
    StockReferenceType,
)
from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode

from app.core.exceptions import AppException
from app.services.inventory.stock_movement_service import apply_stock_movement
from app.utils.activity_helpers import emit_activity

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

logger = logging.getLogger(__name__)

ALLOWED_SORT_FIELDS = {
    "name": CatalogItem.name,
    "on_hand": CatalogItem.on_hand,
    "created_at": CatalogItem.created_at,
    "id": CatalogItem.id,
}


async def _get_item_or_404(db: AsyncSession, item_id: int) -> CatalogItem:
    item = await db.scalar(
        select(CatalogItem)
        .options(raiseload("*"))
        .where(CatalogItem.id == item_id, CatalogItem.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    if not item:
        raise AppException(404, "Item not found", ErrorCode.ITEM_NOT_FOUND)
    return item


# ---------------- CREATE ----------------
async def create_item(db: AsyncSession, payload: ItemCreate, actor: str) -> ItemOut:
    name = payload.name.strip()

    exists = await db.scalar(
        select(CatalogItem.id).where(func.lower(CatalogItem.name) == name.lower())
    )
    if exists:
        raise AppException(409, "Item name already exists", ErrorCode.ITEM_NAME_EXISTS)

    if payload.category == ItemCategory.service and payload.on_hand:
        raise AppException(
            400,
            "Service items do not carry stock",
            ErrorCode.VALIDATION_ERROR,
        )

    item = CatalogItem(
        name=name,
        description=payload.description,
        category=payload.category,
        on_hand=0,
        created_by=actor,
    )
    db.add(item)

    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise AppException(409, "Item name already exists", ErrorCode.ITEM_NAME_EXISTS)

    # opening stock goes through the ledger like any other change
    if payload.on_hand:
        await apply_stock_movement(
            db,
            item_id=item.id,
            quantity_change=payload.on_hand,
            movement_type=InventoryMovementType.ADJUSTMENT,
            reference_type=StockReferenceType.ADJUSTMENT,
            reference_id=item.id,
            actor=actor,
        )

    await emit_activity(
        db=db,
        actor=actor,
        code=ActivityCode.CREATE_ITEM,
        category=payload.category.value,
        target_name=name,
    )

    await db.commit()

    logger.info("Item %s created with opening stock %s", name, payload.on_hand)
    return ItemOut.model_validate(await _get_item_or_404(db, item.id))


# ---------------- GET ----------------
async def get_item(db: AsyncSession, item_id: int) -> ItemOut:
    return ItemOut.model_validate(await _get_item_or_404(db, item_id))


# ---------------- LIST ----------------
async def list_items(
    db: AsyncSession,
    *,
    search: str | None,
    category: ItemCategory | None,
    page: int,
    page_size: int,
    sort_by: str,
    order: str,
) -> ItemListData:
    filters = [CatalogItem.is_deleted.is_(False)]

    if search:
        filters.append(
            or_(
                CatalogItem.name.icontains(search, autoescape=True),
                CatalogItem.description.icontains(search, autoescape=True),
            )
        )
    if category:
        filters.append(CatalogItem.category == category)

    sort_col = ALLOWED_SORT_FIELDS.get(sort_by)
    if sort_col is None:
        raise AppException(400, "Invalid sort field", ErrorCode.VALIDATION_ERROR)

    order_by = desc(sort_col) if order == "desc" else asc(sort_col)

    total = await db.scalar(select(func.count(CatalogItem.id)).where(*filters))

    rows = await db.execute(
        select(CatalogItem)
        .options(raiseload("*"))
        .where(*filters)
        .order_by(order_by, CatalogItem.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    return ItemListData(
        total=total or 0,
        items=[ItemOut.model_validate(i) for i in rows.scalars().all()],
    )


# ---------------- ADJUST STOCK ----------------
async def adjust_stock(
    db: AsyncSession,
    item_id: int,
    payload: StockAdjustmentCreate,
    actor: str,
) -> StockMovementOut:
    item = await _get_item_or_404(db, item_id)

    if not item.is_stock_tracked:
        raise AppException(
            400,
            "Service items do not carry stock",
            ErrorCode.INVALID_MOVEMENT,
        )

    try:
        movement = await apply_stock_movement(
            db,
            item_id=item.id,
            quantity_change=payload.quantity_change,
            movement_type=InventoryMovementType.ADJUSTMENT,
            reference_type=StockReferenceType.ADJUSTMENT,
            reference_id=item.id,
            actor=actor,
        )

        await emit_activity(
            db=db,
            actor=actor,
            code=ActivityCode.ADJUST_STOCK,
            target_name=item.name,
            quantity_change=payload.quantity_change,
            reason=payload.reason,
        )

        await db.commit()

    except AppException:
        await db.rollback()
        raise

    logger.info(
        "Stock of item %s adjusted by %+d (%s)",
        item.id,
        payload.quantity_change,
        payload.reason,
    )
    return StockMovementOut.model_validate(movement)


# ---------------- MOVEMENTS ----------------
async def list_item_movements(
    db: AsyncSession,
    item_id: int,
    *,
    page: int,
    page_size: int,
) -> StockMovementListData:
    await _get_item_or_404(db, item_id)

    total = await db.scalar(
        select(func.count(StockMovement.id)).where(StockMovement.item_id == item_id)
    )

    rows = await db.execute(
        select(StockMovement)
        .options(raiseload("*"))
        .where(StockMovement.item_id == item_id)
        .order_by(StockMovement.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    return StockMovementListData(
        total=total or 0,
        items=[StockMovementOut.model_validate(m) for m in rows.scalars().all()],
    )
