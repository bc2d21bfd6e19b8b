"""
Purchase order receipt.

Received stock is booked onto the matched catalog item, then used to clear
outstanding backorders for that item oldest first (created_at, then line id).
Each cleared unit moves from backordered to reserved on the sales order line
and is reserved out of on-hand stock again, so whatever remains after clearing
is free for future orders.

Backordered lines are locked before catalog rows, the same order confirm and
revert take their locks in.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import raiseload

from app.models.purchasing.purchase_order_models import PurchaseOrder, PurchaseOrderItem
from app.models.sales.sales_order_models import SalesOrder, SalesOrderItem
from app.models.enums.purchase_order_status import PurchaseOrderStatus
from app.models.enums.sales_order_status import SalesOrderStatus

from app.constants.inventory_movement_type import (
    InventoryMovementType,
    StockReferenceType,
)
from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode

from app.core.exceptions import AppException, InvalidTransition, PartialFailure, failure_reason
from app.services.inventory.item_matcher import (
    Matcher,
    clean_description,
    ensure_matched,
    match_catalog_item,
)
from app.services.inventory.stock_movement_service import apply_stock_movement, lock_items
from app.utils.activity_helpers import emit_activity

from app.schemas.purchasing.purchase_order_schemas import (
    BackorderClearanceOut,
    ReceiptLineOut,
    ReceiptResult,
)

logger = logging.getLogger(__name__)


async def lock_open_backorders(
    db: AsyncSession,
    item_ids,
) -> dict[int, list[SalesOrderItem]]:
    """
    Lock every backordered line of confirmed orders for ``item_ids``.

    Rows are locked in line id order, the same order confirm and revert lock
    their own lines, and always before any catalog row. Each item's list is
    returned oldest shortage first (created_at, then line id).
    """
    ids = sorted(set(item_ids))
    if not ids:
        return {}

    rows = await db.execute(
        select(SalesOrderItem)
        .options(raiseload("*"))
        .join(SalesOrder, SalesOrder.id == SalesOrderItem.sales_order_id)
        .where(
            SalesOrderItem.item_id.in_(ids),
            SalesOrderItem.backordered_quantity > 0,
            SalesOrder.status == SalesOrderStatus.confirmed,
            SalesOrder.is_deleted.is_(False),
        )
        .order_by(SalesOrderItem.id)
        .with_for_update(of=SalesOrderItem)
        .execution_options(populate_existing=True)
    )

    queues: dict[int, list[SalesOrderItem]] = {i: [] for i in ids}
    for line in rows.scalars().all():
        queues[line.item_id].append(line)
    for queue in queues.values():
        queue.sort(key=lambda line: (line.created_at, line.id))
    return queues


async def clear_backorders(
    db: AsyncSession,
    *,
    item_id: int,
    quantity: int,
    queue: list[SalesOrderItem],
    source: str,
    actor: str,
) -> list[BackorderClearanceOut]:
    """Walk ``queue`` (locked, FIFO), clearing up to ``quantity`` units."""
    remaining = quantity
    clearances: list[BackorderClearanceOut] = []

    for line in queue:
        if remaining <= 0:
            break
        if line.backordered_quantity <= 0:
            continue

        clear = min(remaining, line.backordered_quantity)

        await apply_stock_movement(
            db,
            item_id=item_id,
            quantity_change=-clear,
            movement_type=InventoryMovementType.RESERVE,
            reference_type=StockReferenceType.SALES_ORDER_ITEM,
            reference_id=line.id,
            actor=actor,
        )

        line.backordered_quantity -= clear
        line.reserved_quantity += clear
        remaining -= clear

        await emit_activity(
            db=db,
            actor=actor,
            code=ActivityCode.CLEAR_BACKORDER,
            target_name=source,
            quantity=clear,
            sales_order_item_id=line.id,
        )

        clearances.append(
            BackorderClearanceOut(
                sales_order_item_id=line.id,
                sales_order_id=line.sales_order_id,
                cleared_quantity=clear,
                backordered_quantity=line.backordered_quantity,
            )
        )

    await db.flush()
    return clearances


async def _lock_purchase_order(db: AsyncSession, po_id: int) -> PurchaseOrder:
    result = await db.execute(
        select(PurchaseOrder)
        .options(raiseload("*"))
        .where(PurchaseOrder.id == po_id, PurchaseOrder.is_deleted.is_(False))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    po = result.scalar_one_or_none()
    if not po:
        raise AppException(404, "Purchase order not found", ErrorCode.PURCHASE_ORDER_NOT_FOUND)
    return po


# =====================================================
# RECEIVE
# =====================================================
async def receive_purchase_order(
    db: AsyncSession,
    po_id: int,
    actor: str,
    matcher: Matcher = match_catalog_item,
) -> ReceiptResult:

    po = await _lock_purchase_order(db, po_id)

    # a second receipt is refused here, never absorbed downstream
    if po.status != PurchaseOrderStatus.pending:
        raise InvalidTransition("purchase order", po.id, po.status, "receive")

    rows = await db.execute(
        select(PurchaseOrderItem)
        .options(raiseload("*"))
        .where(PurchaseOrderItem.purchase_order_id == po.id)
        .order_by(PurchaseOrderItem.id)
    )
    po_items = list(rows.scalars().all())

    if not po_items:
        raise AppException(400, "Purchase order has no items", ErrorCode.PURCHASE_ORDER_EMPTY_ITEMS)

    # -------------------------
    # RESOLVE (no writes yet)
    # -------------------------
    resolved = []
    for po_item in po_items:
        cleaned = clean_description(po_item.description)
        item = await matcher(db, cleaned)
        ensure_matched(item, cleaned, line_id=po_item.id)
        resolved.append((po_item, cleaned, item))

    # lock order: backordered lines, then catalog rows (as in confirm/revert)
    restocked = [item.id for _, _, item in resolved if item is not None and item.is_stock_tracked]
    queues = await lock_open_backorders(db, restocked)
    await lock_items(db, restocked)

    # -------------------------
    # APPLY
    # -------------------------
    lines: list[ReceiptLineOut] = []
    updated_items = 0
    cleared_backorders = 0
    current_line = None

    try:
        for po_item, cleaned, item in resolved:
            current_line = po_item.id
            clearances: list[BackorderClearanceOut] = []

            if item is not None and item.is_stock_tracked:
                await apply_stock_movement(
                    db,
                    item_id=item.id,
                    quantity_change=po_item.received_quantity,
                    movement_type=InventoryMovementType.RECEIPT,
                    reference_type=StockReferenceType.PURCHASE_ORDER_ITEM,
                    reference_id=po_item.id,
                    actor=actor,
                )
                updated_items += 1

                clearances = await clear_backorders(
                    db,
                    item_id=item.id,
                    quantity=po_item.received_quantity,
                    queue=queues[item.id],
                    source=po.po_number,
                    actor=actor,
                )
                cleared_backorders += len(clearances)

            elif item is not None:
                logger.info("Purchase line %s is a service item; no stock booked", po_item.id)

            cleared = sum(c.cleared_quantity for c in clearances)
            lines.append(
                ReceiptLineOut(
                    purchase_order_item_id=po_item.id,
                    description=po_item.description,
                    matched_description=cleaned,
                    item_id=item.id if item is not None else None,
                    received_quantity=po_item.received_quantity,
                    cleared_quantity=cleared,
                    left_on_hand=(
                        po_item.received_quantity - cleared
                        if item is not None and item.is_stock_tracked
                        else 0
                    ),
                    clearances=clearances,
                )
            )

        po.status = PurchaseOrderStatus.received
        po.received_at = datetime.now(timezone.utc)
        po.version += 1
        po.updated_by = actor

        await emit_activity(
            db=db,
            actor=actor,
            code=ActivityCode.RECEIVE_PURCHASE_ORDER,
            target_name=po.po_number,
            updated_items=updated_items,
            cleared_backorders=cleared_backorders,
        )

        await db.commit()

    except (SQLAlchemyError, AppException) as exc:
        await db.rollback()
        logger.exception(
            "Receipt of purchase order %s failed on line %s; rolled back",
            po_id,
            current_line,
        )
        raise PartialFailure(
            "Purchase order receipt failed; no stock was booked. Retry is safe.",
            purchase_order_id=po_id,
            failed_line=current_line,
            reason=failure_reason(exc),
        ) from exc

    logger.info(
        "Purchase order %s received: %s item(s) restocked, %s backorder(s) cleared",
        po.po_number,
        updated_items,
        cleared_backorders,
    )

    return ReceiptResult(
        purchase_order_id=po.id,
        po_number=po.po_number,
        status=po.status,
        updated_items=updated_items,
        cleared_backorders=cleared_backorders,
        lines=lines,
    )
