"""
Stock reservation for sales orders.

Confirming an order reserves on-hand stock line by line, in declared order,
and records any shortage as a backorder. Reverting releases whatever the
stock ledger holds against each line and discards backorder bookkeeping, so
re-confirming after stock levels changed may produce a different split.
An order with pending or delivered deliveries cannot be reverted.

Every confirm/revert runs in one transaction: the order row, its lines and
all matched catalog rows are locked up front (in that order), every line is planned before the first
write, and a failure on any write rolls the whole operation back.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import raiseload

from app.models.sales.sales_order_models import SalesOrder, SalesOrderItem
from app.models.sales.delivery_order_models import DeliveryOrder
from app.models.masters.item_models import CatalogItem
from app.models.enums.sales_order_status import SalesOrderStatus
from app.models.enums.delivery_order_status import DeliveryOrderStatus

from app.constants.inventory_movement_type import (
    InventoryMovementType,
    StockReferenceType,
)
from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode

from app.core.exceptions import AppException, InvalidTransition, PartialFailure, failure_reason
from app.services.inventory.item_matcher import (
    Matcher,
    match_catalog_item,
    resolve_line_item,
    ensure_matched,
)
from app.services.inventory.stock_movement_service import (
    apply_stock_movement,
    get_net_reserved,
    lock_items,
)
from app.utils.activity_helpers import emit_activity

from app.schemas.sales.sales_order_schemas import (
    ConfirmationResult,
    LineReservationOut,
    RevertResult,
    StockShortfallOut,
)

logger = logging.getLogger(__name__)


@dataclass
class LinePlan:
    line: SalesOrderItem
    item: CatalogItem | None
    reserved: int
    backordered: int

    @property
    def stock_tracked(self) -> bool:
        return self.item is not None and self.item.is_stock_tracked


# =====================================================
# SHARED LOCK + FETCH
# =====================================================
async def _lock_sales_order(db: AsyncSession, so_id: int) -> SalesOrder:
    result = await db.execute(
        select(SalesOrder)
        .options(raiseload("*"))
        .where(
            SalesOrder.id == so_id,
            SalesOrder.is_deleted.is_(False),
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    so = result.scalar_one_or_none()

    if not so:
        raise AppException(404, "Sales order not found", ErrorCode.SALES_ORDER_NOT_FOUND)

    return so


async def _fetch_lines(db: AsyncSession, so_id: int) -> list[SalesOrderItem]:
    rows = await db.execute(
        select(SalesOrderItem)
        .options(raiseload("*"))
        .where(SalesOrderItem.sales_order_id == so_id)
        .order_by(SalesOrderItem.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return list(rows.scalars().all())


def _require_status(so: SalesOrder, expected: SalesOrderStatus, action: str):
    if so.status != expected:
        raise InvalidTransition("sales order", so.id, so.status, action, expected=expected)


async def _require_no_open_deliveries(db: AsyncSession, so: SalesOrder):
    # reserved units on a pending or delivered document have left (or are leaving) the shelf
    rows = await db.execute(
        select(DeliveryOrder.id)
        .where(
            DeliveryOrder.sales_order_id == so.id,
            DeliveryOrder.status != DeliveryOrderStatus.cancelled,
            DeliveryOrder.is_deleted.is_(False),
        )
        .order_by(DeliveryOrder.id)
    )
    open_ids = list(rows.scalars().all())

    if open_ids:
        raise AppException(
            409,
            "Cannot revert a sales order with pending or delivered delivery orders; cancel them first",
            ErrorCode.INVALID_TRANSITION,
            details={"sales_order_id": so.id, "delivery_order_ids": open_ids},
        )


# =====================================================
# PLANNING
# =====================================================
def plan_reservations(
    lines: list[SalesOrderItem],
    items: dict[int, CatalogItem | None],
) -> list[LinePlan]:
    """
    Decide every line's reserved/backordered split without touching stock.

    ``items`` maps line id -> resolved catalog item (or None). Lines sharing
    an item draw from the same running balance, in line order.
    """
    available: dict[int, int] = {}
    plans: list[LinePlan] = []

    for line in lines:
        item = items.get(line.id)
        ordered = line.ordered_quantity

        if item is None or not item.is_stock_tracked:
            plans.append(LinePlan(line, item, reserved=ordered, backordered=0))
            continue

        on_hand = available.setdefault(item.id, item.on_hand)

        if on_hand >= ordered:
            reserved = ordered
            available[item.id] = on_hand - ordered
        else:
            reserved = max(on_hand, 0)
            available[item.id] = 0

        plans.append(LinePlan(line, item, reserved=reserved, backordered=ordered - reserved))

    return plans


# =====================================================
# CONFIRM
# =====================================================
async def confirm_sales_order(
    db: AsyncSession,
    so_id: int,
    actor: str,
    matcher: Matcher = match_catalog_item,
) -> ConfirmationResult:

    so = await _lock_sales_order(db, so_id)
    _require_status(so, SalesOrderStatus.draft, "confirm")

    lines = await _fetch_lines(db, so.id)
    if not lines:
        raise AppException(
            400,
            "Sales order has no items",
            ErrorCode.SALES_ORDER_EMPTY_ITEMS,
        )

    # -------------------------
    # RESOLVE + LOCK (no writes yet)
    # -------------------------
    resolved: dict[int, CatalogItem | None] = {}
    try:
        for line in lines:
            item = await resolve_line_item(db, line, matcher)
            ensure_matched(item, line.description, line_id=line.id)
            resolved[line.id] = item
    except AppException:
        await db.rollback()
        raise

    locked = await lock_items(
        db,
        [i.id for i in resolved.values() if i is not None and i.is_stock_tracked],
    )
    for line_id, item in resolved.items():
        if item is not None and item.id in locked:
            resolved[line_id] = locked[item.id]

    plans = plan_reservations(lines, resolved)

    # -------------------------
    # APPLY
    # -------------------------
    applied: list[int] = []
    current_line = None
    try:
        for plan in plans:
            current_line = plan.line.id

            if plan.stock_tracked and plan.reserved > 0:
                await apply_stock_movement(
                    db,
                    item_id=plan.item.id,
                    quantity_change=-plan.reserved,
                    movement_type=InventoryMovementType.RESERVE,
                    reference_type=StockReferenceType.SALES_ORDER_ITEM,
                    reference_id=plan.line.id,
                    actor=actor,
                )

            plan.line.reserved_quantity = plan.reserved
            plan.line.backordered_quantity = plan.backordered
            await db.flush()

            applied.append(plan.line.id)

    except (SQLAlchemyError, AppException) as exc:
        await db.rollback()
        logger.exception(
            "Confirmation of sales order %s failed on line %s; rolled back",
            so_id,
            current_line,
        )
        raise PartialFailure(
            "Sales order confirmation failed; no stock was reserved. Retry is safe.",
            sales_order_id=so_id,
            applied_lines=applied,
            failed_line=current_line,
            reason=failure_reason(exc),
        ) from exc

    total_backordered = sum(p.backordered for p in plans)

    so.status = SalesOrderStatus.confirmed
    so.version += 1
    so.updated_by = actor

    await emit_activity(
        db=db,
        actor=actor,
        code=ActivityCode.CONFIRM_SALES_ORDER,
        target_name=so.order_number,
        processed_items=len(plans),
        total_backordered=total_backordered,
    )

    await db.commit()

    logger.info(
        "Sales order %s confirmed: %s line(s), %s unit(s) backordered",
        so.order_number,
        len(plans),
        total_backordered,
    )

    return ConfirmationResult(
        sales_order_id=so.id,
        order_number=so.order_number,
        status=so.status,
        processed_items=len(plans),
        total_backordered=total_backordered,
        lines=[
            LineReservationOut(
                sales_order_item_id=p.line.id,
                description=p.line.description,
                item_id=p.item.id if p.item is not None else None,
                stock_tracked=p.stock_tracked,
                ordered_quantity=p.line.ordered_quantity,
                reserved_quantity=p.reserved,
                backordered_quantity=p.backordered,
            )
            for p in plans
        ],
    )


# =====================================================
# REVERT
# =====================================================
async def revert_sales_order(
    db: AsyncSession,
    so_id: int,
    actor: str,
) -> RevertResult:

    so = await _lock_sales_order(db, so_id)
    _require_status(so, SalesOrderStatus.confirmed, "revert")
    await _require_no_open_deliveries(db, so)

    lines = await _fetch_lines(db, so.id)

    holdings = {line.id: await get_net_reserved(db, line.id) for line in lines}
    await lock_items(db, [i for held in holdings.values() for i in held])

    restored_items = 0
    restored_quantity = 0
    current_line = None

    try:
        for line in lines:
            current_line = line.id
            for item_id, quantity in holdings[line.id].items():
                if quantity <= 0:
                    continue

                await apply_stock_movement(
                    db,
                    item_id=item_id,
                    quantity_change=quantity,
                    movement_type=InventoryMovementType.RELEASE,
                    reference_type=StockReferenceType.SALES_ORDER_ITEM,
                    reference_id=line.id,
                    actor=actor,
                )
                restored_items += 1
                restored_quantity += quantity

            line.reserved_quantity = 0
            line.backordered_quantity = 0

        so.status = SalesOrderStatus.draft
        so.version += 1
        so.updated_by = actor

        await emit_activity(
            db=db,
            actor=actor,
            code=ActivityCode.REVERT_SALES_ORDER,
            target_name=so.order_number,
            restored_quantity=restored_quantity,
        )

        await db.commit()

    except (SQLAlchemyError, AppException) as exc:
        await db.rollback()
        logger.exception("Revert of sales order %s failed on line %s; rolled back", so_id, current_line)
        raise PartialFailure(
            "Sales order revert failed; no stock was released. Retry is safe.",
            sales_order_id=so_id,
            failed_line=current_line,
            reason=failure_reason(exc),
        ) from exc

    logger.info(
        "Sales order %s reverted to draft: %s unit(s) released",
        so.order_number,
        restored_quantity,
    )

    return RevertResult(
        sales_order_id=so.id,
        order_number=so.order_number,
        status=so.status,
        restored_items=restored_items,
        restored_quantity=restored_quantity,
    )


# =====================================================
# STOCK CHECK (READ ONLY)
# =====================================================
async def check_stock_for_sales_order(
    db: AsyncSession,
    so_id: int,
    matcher: Matcher = match_catalog_item,
) -> list[StockShortfallOut]:
    so = await db.scalar(
        select(SalesOrder)
        .options(raiseload("*"))
        .where(SalesOrder.id == so_id, SalesOrder.is_deleted.is_(False))
    )
    if not so:
        raise AppException(404, "Sales order not found", ErrorCode.SALES_ORDER_NOT_FOUND)

    rows = await db.execute(
        select(SalesOrderItem)
        .options(raiseload("*"))
        .where(SalesOrderItem.sales_order_id == so.id)
        .order_by(SalesOrderItem.id)
        .execution_options(populate_existing=True)
    )
    lines = list(rows.scalars().all())

    # reservations are already booked; what is still missing is the persisted backorder
    if so.status != SalesOrderStatus.draft:
        shortfalls = []
        for line in lines:
            if line.item_id is None or line.backordered_quantity <= 0:
                continue
            item = await db.get(
                CatalogItem, line.item_id, options=[raiseload("*")], populate_existing=True
            )
            shortfalls.append(
                StockShortfallOut(
                    sales_order_item_id=line.id,
                    description=line.description,
                    item_id=line.item_id,
                    required_quantity=line.ordered_quantity,
                    available_stock=item.on_hand,
                    shortfall=line.backordered_quantity,
                )
            )
        return shortfalls

    items: dict[int, CatalogItem | None] = {}
    for line in lines:
        if line.item_id is not None:
            items[line.id] = await db.get(
                CatalogItem, line.item_id, options=[raiseload("*")], populate_existing=True
            )
        else:
            items[line.id] = await matcher(db, line.description)

    # planned against current stock; nothing is persisted
    plans = plan_reservations(lines, items)

    return [
        StockShortfallOut(
            sales_order_item_id=p.line.id,
            description=p.line.description,
            item_id=p.item.id,
            required_quantity=p.line.ordered_quantity,
            available_stock=p.item.on_hand,
            shortfall=p.backordered,
        )
        for p in plans
        if p.stock_tracked and p.backordered > 0
    ]
