# app/services/sales/backlog_service.py

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.models.sales.sales_order_models import SalesOrder, SalesOrderItem
from app.models.enums.sales_order_status import SalesOrderStatus

from app.constants.error_codes import ErrorCode

from app.core.exceptions import AppException
from app.services.inventory.item_matcher import format_backlog_description
from app.services.purchasing.purchase_order_service import (
    get_purchase_order,
    write_purchase_order,
)

from app.schemas.sales.backlog_schemas import (
    BacklogItemOut,
    PurchaseOrderFromBacklogCreate,
)
from app.schemas.purchasing.purchase_order_schemas import (
    PurchaseOrderItemCreate,
    PurchaseOrderOut,
)

logger = logging.getLogger(__name__)


def _backlog_query():
    return (
        select(SalesOrderItem, SalesOrder.order_number)
        .join(SalesOrder, SalesOrder.id == SalesOrderItem.sales_order_id)
        .where(
            SalesOrderItem.backordered_quantity > 0,
            SalesOrder.status == SalesOrderStatus.confirmed,
            SalesOrder.is_deleted.is_(False),
        )
    )


def _to_backlog_item(line: SalesOrderItem, order_number: str) -> BacklogItemOut:
    return BacklogItemOut(
        id=line.id,
        sales_order_id=line.sales_order_id,
        order_number=order_number,
        item_id=line.item_id,
        description=line.description,
        backordered_quantity=line.backordered_quantity,
        created_at=line.created_at,
    )


# ---------------- LIST ----------------
async def list_backlog_items(db: AsyncSession) -> list[BacklogItemOut]:
    """Outstanding backorders in the order receipts will clear them."""
    rows = await db.execute(
        _backlog_query().order_by(SalesOrderItem.created_at.asc(), SalesOrderItem.id.asc())
    )
    return [_to_backlog_item(line, number) for line, number in rows.all()]


# ---------------- COMPOSE PO ----------------
async def create_purchase_order_from_backlog(
    db: AsyncSession,
    payload: PurchaseOrderFromBacklogCreate,
    actor: str,
) -> PurchaseOrderOut:

    if not payload.items:
        raise AppException(
            400,
            "Select at least one backlog item",
            ErrorCode.PURCHASE_ORDER_EMPTY_ITEMS,
        )

    ids = [s.sales_order_item_id for s in payload.items]
    rows = await db.execute(_backlog_query().where(SalesOrderItem.id.in_(ids)))
    backlog = {line.id: (line, number) for line, number in rows.all()}

    if missing := [i for i in ids if i not in backlog]:
        raise AppException(
            400,
            "Selected lines are not outstanding backorders",
            ErrorCode.BACKLOG_ITEM_INVALID,
            details={"sales_order_item_ids": missing},
        )

    po_lines = []
    for selection in payload.items:
        line, number = backlog[selection.sales_order_item_id]
        po_lines.append(
            PurchaseOrderItemCreate(
                description=format_backlog_description(
                    line.description,
                    number,
                    line.backordered_quantity,
                ),
                received_quantity=selection.quantity or line.backordered_quantity,
            )
        )

    try:
        po = await write_purchase_order(
            db,
            po_number=payload.po_number,
            supplier_name=payload.supplier_name,
            notes=payload.notes,
            items=po_lines,
            actor=actor,
        )
        await db.commit()

    except IntegrityError:
        await db.rollback()
        raise AppException(409, "Duplicate purchase order detected", ErrorCode.CONFLICT)

    logger.info("Purchase order %s composed from %s backlog line(s)", po.po_number, len(po_lines))
    return await get_purchase_order(db, po.id)
