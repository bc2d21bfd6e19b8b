"""
Delivery composition against sales order lines.

A line's remaining quantity is what has not yet been placed on any
non-cancelled delivery order of the same sales order. Every delivery write is
validated against it first and persisted second, with the sales order row
locked so two compositions for one order cannot both pass validation.
"""

import logging
from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_, or_, delete
from sqlalchemy.orm import raiseload

from app.models.sales.sales_order_models import SalesOrder, SalesOrderItem
from app.models.sales.delivery_order_models import DeliveryOrder, DeliveryOrderItem
from app.models.enums.sales_order_status import SalesOrderStatus
from app.models.enums.delivery_order_status import DeliveryOrderStatus

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode

from app.core.exceptions import AppException, InvalidTransition
from app.services.sales.sales_order_service import generate_document_number
from app.utils.activity_helpers import emit_activity

from app.schemas.sales.delivery_order_schemas import (
    DeliveryOrderCreate,
    DeliveryOrderUpdate,
    DeliveryOrderOut,
    DeliveryOrderItemCreate,
    DeliverableLineOut,
    DeliveryProgressOut,
)

logger = logging.getLogger(__name__)


# =====================================================
# REMAINING QUANTITY
# =====================================================
def _line_match(line: SalesOrderItem):
    # linked rows match by id; legacy unlinked rows by description
    return or_(
        DeliveryOrderItem.sales_order_item_id == line.id,
        and_(
            DeliveryOrderItem.sales_order_item_id.is_(None),
            func.lower(DeliveryOrderItem.description) == line.description.lower(),
        ),
    )


async def get_assigned_quantity(
    db: AsyncSession,
    line: SalesOrderItem,
    exclude_delivery_order_id: int | None = None,
    statuses: set[DeliveryOrderStatus] | None = None,
) -> int:
    statuses = statuses or {DeliveryOrderStatus.pending, DeliveryOrderStatus.delivered}

    query = (
        select(func.coalesce(func.sum(DeliveryOrderItem.shipped_quantity), 0))
        .join(DeliveryOrder, DeliveryOrder.id == DeliveryOrderItem.delivery_order_id)
        .where(
            DeliveryOrder.sales_order_id == line.sales_order_id,
            DeliveryOrder.status.in_(statuses),
            DeliveryOrder.is_deleted.is_(False),
            _line_match(line),
        )
    )
    if exclude_delivery_order_id is not None:
        query = query.where(DeliveryOrder.id != exclude_delivery_order_id)

    return int(await db.scalar(query) or 0)


async def get_remaining_quantity(
    db: AsyncSession,
    line: SalesOrderItem,
    exclude_delivery_order_id: int | None = None,
) -> int:
    assigned = await get_assigned_quantity(db, line, exclude_delivery_order_id)
    return max(line.ordered_quantity - assigned, 0)


async def _fetch_sales_order(db: AsyncSession, so_id: int, *, lock: bool = False) -> SalesOrder:
    query = (
        select(SalesOrder)
        .options(raiseload("*"))
        .where(SalesOrder.id == so_id, SalesOrder.is_deleted.is_(False))
    )
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)

    so = (await db.execute(query)).scalar_one_or_none()
    if not so:
        raise AppException(404, "Sales order not found", ErrorCode.SALES_ORDER_NOT_FOUND)
    return so


async def _fetch_lines(db: AsyncSession, so_id: int) -> list[SalesOrderItem]:
    rows = await db.execute(
        select(SalesOrderItem)
        .options(raiseload("*"))
        .where(SalesOrderItem.sales_order_id == so_id)
        .order_by(SalesOrderItem.id)
    )
    return list(rows.scalars().all())


async def list_deliverable_lines(
    db: AsyncSession,
    so_id: int,
    exclude_delivery_order_id: int | None = None,
) -> list[DeliverableLineOut]:
    """Lines still open for delivery; fully assigned lines are left out."""
    await _fetch_sales_order(db, so_id)

    out = []
    for line in await _fetch_lines(db, so_id):
        assigned = await get_assigned_quantity(db, line, exclude_delivery_order_id)
        remaining = max(line.ordered_quantity - assigned, 0)
        if remaining <= 0:
            continue
        out.append(
            DeliverableLineOut(
                sales_order_item_id=line.id,
                description=line.description,
                ordered_quantity=line.ordered_quantity,
                assigned_quantity=assigned,
                remaining_quantity=remaining,
            )
        )
    return out


async def validate_delivery_quantities(
    db: AsyncSession,
    so: SalesOrder,
    requested: list[DeliveryOrderItemCreate],
    exclude_delivery_order_id: int | None = None,
) -> dict[int, SalesOrderItem]:
    if not requested:
        raise AppException(
            400,
            "Delivery order must contain at least one item",
            ErrorCode.DELIVERY_ORDER_EMPTY_ITEMS,
        )

    lines = {line.id: line for line in await _fetch_lines(db, so.id)}

    totals: dict[int, int] = defaultdict(int)
    for req in requested:
        if req.sales_order_item_id not in lines:
            raise AppException(
                400,
                f"Sales order item {req.sales_order_item_id} does not belong to {so.order_number}",
                ErrorCode.DELIVERY_ORDER_INVALID_LINE,
            )
        totals[req.sales_order_item_id] += req.quantity

    for line_id, quantity in totals.items():
        remaining = await get_remaining_quantity(db, lines[line_id], exclude_delivery_order_id)
        if quantity > remaining:
            raise AppException(
                422,
                f"Only {remaining} unit(s) of '{lines[line_id].description}' remain to deliver",
                ErrorCode.QUANTITY_VIOLATION,
                details={
                    "sales_order_item_id": line_id,
                    "requested": quantity,
                    "remaining": remaining,
                },
            )

    return lines


def _build_delivery_items(
    requested: list[DeliveryOrderItemCreate],
    lines: dict[int, SalesOrderItem],
    delivery_order_id: int,
) -> list[DeliveryOrderItem]:
    totals: dict[int, int] = defaultdict(int)
    for req in requested:
        totals[req.sales_order_item_id] += req.quantity

    return [
        DeliveryOrderItem(
            delivery_order_id=delivery_order_id,
            sales_order_item_id=line_id,
            description=lines[line_id].description,
            shipped_quantity=quantity,
        )
        for line_id, quantity in totals.items()
    ]


# =====================================================
# CREATE
# =====================================================
async def create_delivery_order(
    db: AsyncSession,
    payload: DeliveryOrderCreate,
    actor: str,
) -> DeliveryOrderOut:

    so = await _fetch_sales_order(db, payload.sales_order_id, lock=True)

    if so.status != SalesOrderStatus.confirmed:
        raise InvalidTransition(
            "sales order", so.id, so.status, "deliver from", expected=SalesOrderStatus.confirmed
        )

    # validate, then write
    lines = await validate_delivery_quantities(db, so, payload.items)

    do = DeliveryOrder(
        delivery_number=payload.delivery_number,
        sales_order_id=so.id,
        status=DeliveryOrderStatus.pending,
        delivery_date=payload.delivery_date,
        notes=payload.notes,
        created_by=actor,
    )
    db.add(do)
    await db.flush()

    if not do.delivery_number:
        do.delivery_number = generate_document_number("DO", do.id)

    db.add_all(_build_delivery_items(payload.items, lines, do.id))

    await emit_activity(
        db=db,
        actor=actor,
        code=ActivityCode.CREATE_DELIVERY_ORDER,
        target_name=do.delivery_number,
        order_number=so.order_number,
    )

    await db.commit()

    logger.info("Delivery order %s created for %s", do.delivery_number, so.order_number)

    return await get_delivery_order(db, do.id)


# =====================================================
# GET
# =====================================================
async def get_delivery_order(db: AsyncSession, do_id: int) -> DeliveryOrderOut:
    do = await db.scalar(
        select(DeliveryOrder)
        .where(DeliveryOrder.id == do_id, DeliveryOrder.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    if not do:
        raise AppException(404, "Delivery order not found", ErrorCode.DELIVERY_ORDER_NOT_FOUND)

    return DeliveryOrderOut.model_validate(do)


async def _lock_delivery_order(db: AsyncSession, do_id: int) -> DeliveryOrder:
    result = await db.execute(
        select(DeliveryOrder)
        .options(raiseload("*"))
        .where(DeliveryOrder.id == do_id, DeliveryOrder.is_deleted.is_(False))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    do = result.scalar_one_or_none()
    if not do:
        raise AppException(404, "Delivery order not found", ErrorCode.DELIVERY_ORDER_NOT_FOUND)
    return do


def _require_pending(do: DeliveryOrder, action: str):
    if do.status != DeliveryOrderStatus.pending:
        raise InvalidTransition("delivery order", do.id, do.status, action)


# =====================================================
# UPDATE (PENDING ONLY)
# =====================================================
async def update_delivery_order(
    db: AsyncSession,
    do_id: int,
    payload: DeliveryOrderUpdate,
    actor: str,
) -> DeliveryOrderOut:

    do = await _lock_delivery_order(db, do_id)

    if do.version != payload.version:
        raise AppException(
            409,
            "Delivery order modified by another process",
            ErrorCode.CONCURRENT_UPDATE,
        )

    _require_pending(do, "update")

    changes: list[str] = []

    if payload.delivery_date is not None and payload.delivery_date != do.delivery_date:
        do.delivery_date = payload.delivery_date
        changes.append("delivery_date")

    if payload.notes is not None and payload.notes != do.notes:
        do.notes = payload.notes
        changes.append("notes")

    if payload.items is not None:
        so = await _fetch_sales_order(db, do.sales_order_id, lock=True)
        # this document's own lines no longer count against the limit
        lines = await validate_delivery_quantities(
            db, so, payload.items, exclude_delivery_order_id=do.id
        )

        await db.execute(
            delete(DeliveryOrderItem).where(DeliveryOrderItem.delivery_order_id == do.id)
        )
        db.add_all(_build_delivery_items(payload.items, lines, do.id))
        changes.append("items")

    if not changes:
        raise AppException(400, "No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    do.version += 1
    do.updated_by = actor

    await emit_activity(
        db=db,
        actor=actor,
        code=ActivityCode.UPDATE_DELIVERY_ORDER,
        target_name=do.delivery_number,
        changes=", ".join(changes),
    )

    await db.commit()

    return await get_delivery_order(db, do.id)


# =====================================================
# STATUS TRANSITIONS
# =====================================================
async def mark_delivery_order_delivered(
    db: AsyncSession,
    do_id: int,
    actor: str,
) -> DeliveryOrderOut:
    do = await _lock_delivery_order(db, do_id)
    _require_pending(do, "deliver")

    do.status = DeliveryOrderStatus.delivered
    do.version += 1
    do.updated_by = actor

    await emit_activity(
        db=db,
        actor=actor,
        code=ActivityCode.DELIVER_DELIVERY_ORDER,
        target_name=do.delivery_number,
    )

    await db.commit()
    return await get_delivery_order(db, do.id)


async def cancel_delivery_order(
    db: AsyncSession,
    do_id: int,
    actor: str,
) -> DeliveryOrderOut:
    do = await _lock_delivery_order(db, do_id)
    _require_pending(do, "cancel")

    do.status = DeliveryOrderStatus.cancelled
    do.version += 1
    do.updated_by = actor

    await emit_activity(
        db=db,
        actor=actor,
        code=ActivityCode.CANCEL_DELIVERY_ORDER,
        target_name=do.delivery_number,
    )

    await db.commit()

    logger.info("Delivery order %s cancelled; its quantities are open again", do.delivery_number)
    return await get_delivery_order(db, do.id)


# =====================================================
# PROGRESS
# =====================================================
async def get_delivery_progress(db: AsyncSession, so_id: int) -> DeliveryProgressOut:
    await _fetch_sales_order(db, so_id)
    lines = await _fetch_lines(db, so_id)

    total_quantity = 0
    assigned_quantity = 0
    delivered_quantity = 0
    delivered_items = 0

    for line in lines:
        assigned = min(await get_assigned_quantity(db, line), line.ordered_quantity)
        delivered = min(
            await get_assigned_quantity(db, line, statuses={DeliveryOrderStatus.delivered}),
            line.ordered_quantity,
        )

        total_quantity += line.ordered_quantity
        assigned_quantity += assigned
        delivered_quantity += delivered
        if delivered >= line.ordered_quantity:
            delivered_items += 1

    do_count = await db.scalar(
        select(func.count())
        .select_from(DeliveryOrder)
        .where(
            DeliveryOrder.sales_order_id == so_id,
            DeliveryOrder.status != DeliveryOrderStatus.cancelled,
            DeliveryOrder.is_deleted.is_(False),
        )
    )

    if lines and delivered_items == len(lines):
        status = "Fully Delivered"
    elif delivered_quantity > 0:
        status = "Partially Delivered"
    else:
        status = "Not Delivered"

    return DeliveryProgressOut(
        sales_order_id=so_id,
        total_so_items=len(lines),
        delivered_items=delivered_items,
        items_delivered_percentage=round(100 * delivered_items / len(lines), 2) if lines else 0.0,
        total_quantity=total_quantity,
        assigned_quantity=assigned_quantity,
        delivered_quantity=delivered_quantity,
        quantity_delivered_percentage=(
            round(100 * delivered_quantity / total_quantity, 2) if total_quantity else 0.0
        ),
        delivery_status=status,
        do_count=do_count or 0,
    )
