import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import raiseload

from app.models.masters.item_models import CatalogItem
from app.models.inventory.stock_movement_models import StockMovement
from app.constants.inventory_movement_type import (
    InventoryMovementType,
    StockReferenceType,
)
from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.core.exceptions import AppException
from app.utils.activity_helpers import emit_activity

logger = logging.getLogger(__name__)


POSITIVE_MOVEMENTS = {
    InventoryMovementType.RELEASE,
    InventoryMovementType.RECEIPT,
}

NEGATIVE_MOVEMENTS = {
    InventoryMovementType.RESERVE,
}


async def lock_items(db: AsyncSession, item_ids) -> dict[int, CatalogItem]:
    """Lock catalog rows in ascending id order so concurrent callers queue instead of deadlocking."""
    ids = sorted(set(i for i in item_ids if i is not None))
    if not ids:
        return {}

    result = await db.execute(
        select(CatalogItem)
        .options(raiseload("*"))
        .where(CatalogItem.id.in_(ids))
        .order_by(CatalogItem.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return {item.id: item for item in result.scalars().all()}


async def apply_stock_movement(
    db: AsyncSession,
    *,
    item_id: int,
    quantity_change: int,
    movement_type: InventoryMovementType,
    reference_type: StockReferenceType,
    reference_id: int,
    actor: str,
) -> StockMovement:
    # ------------------------------------
    # 0. Basic validations
    # ------------------------------------
    if quantity_change == 0:
        raise AppException(
            400,
            "Stock movement quantity cannot be zero",
            ErrorCode.INVALID_MOVEMENT,
        )

    if movement_type in POSITIVE_MOVEMENTS and quantity_change < 0:
        raise AppException(
            400,
            f"{movement_type.value} must have positive quantity",
            ErrorCode.INVALID_MOVEMENT,
        )

    if movement_type in NEGATIVE_MOVEMENTS and quantity_change > 0:
        raise AppException(
            400,
            f"{movement_type.value} must have negative quantity",
            ErrorCode.INVALID_MOVEMENT,
        )

    try:
        # ------------------------------------
        # 1. Lock item row (NO JOINS)
        # ------------------------------------
        result = await db.execute(
            select(CatalogItem)
            .options(raiseload("*"))
            .where(
                CatalogItem.id == item_id,
                CatalogItem.is_deleted.is_(False),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        item = result.scalar_one_or_none()

        if not item:
            raise AppException(404, "Item not found", ErrorCode.ITEM_NOT_FOUND)

        # ------------------------------------
        # 2. Validate non-negative stock
        # ------------------------------------
        new_quantity = item.on_hand + quantity_change
        if new_quantity < 0:
            raise AppException(
                409,
                f"Insufficient stock for {item.name}",
                ErrorCode.INSUFFICIENT_STOCK,
                details={"item_id": item.id, "on_hand": item.on_hand},
            )

        # ------------------------------------
        # 3. Insert movement (ledger)
        # ------------------------------------
        movement = StockMovement(
            item_id=item.id,
            movement_type=movement_type,
            quantity_change=quantity_change,
            balance_after=new_quantity,
            reference_type=reference_type.value,
            reference_id=reference_id,
            created_by=actor,
        )
        db.add(movement)

        # ------------------------------------
        # 4. Update balance (derived)
        # ------------------------------------
        item.on_hand = new_quantity
        item.version += 1
        item.updated_by = actor

        await db.flush()

        logger.debug(
            "Stock movement %s %+d on item %s -> %s (ref %s:%s)",
            movement_type.value,
            quantity_change,
            item.id,
            new_quantity,
            reference_type.value,
            reference_id,
        )

        # ------------------------------------
        # 5. Activity log (NO COMMIT HERE)
        # ------------------------------------
        await emit_activity(
            db,
            actor=actor,
            code=ActivityCode.STOCK_MOVEMENT,
            movement_type=movement_type.value,
            quantity_change=quantity_change,
            item_id=item.id,
            balance_after=new_quantity,
            reference_type=reference_type.value,
            reference_id=reference_id,
        )

        return movement

    except IntegrityError:
        raise AppException(
            409,
            "Concurrent stock update detected",
            ErrorCode.CONCURRENT_UPDATE,
        )


async def get_net_reserved(
    db: AsyncSession,
    sales_order_item_id: int,
) -> dict[int, int]:
    """Units currently held against a sales order line, per item, as recorded by the ledger."""
    rows = await db.execute(
        select(
            StockMovement.item_id,
            func.coalesce(func.sum(StockMovement.quantity_change), 0),
        )
        .where(
            StockMovement.reference_type == StockReferenceType.SALES_ORDER_ITEM.value,
            StockMovement.reference_id == sales_order_item_id,
        )
        .group_by(StockMovement.item_id)
    )
    # reservations are negative deltas
    return {item_id: -int(total) for item_id, total in rows.all() if total}
