# app/services/sales/sales_order_service.py

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, asc, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import raiseload

from app.models.sales.sales_order_models import SalesOrder, SalesOrderItem
from app.models.masters.item_models import CatalogItem
from app.models.enums.sales_order_status import SalesOrderStatus

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode

from app.core.exceptions import AppException, InvalidTransition
from app.utils.activity_helpers import emit_activity

from app.schemas.sales.sales_order_schemas import (
    SalesOrderCreate,
    SalesOrderOut,
    SalesOrderListData,
)

logger = logging.getLogger(__name__)


# =====================================================
# SORT MAP
# =====================================================
ALLOWED_SORT_FIELDS = {
    "created_at": SalesOrder.created_at,
    "status": SalesOrder.status,
    "order_number": SalesOrder.order_number,
    "id": SalesOrder.id,
}


def generate_document_number(prefix: str, doc_id: int) -> str:
    return f"{prefix}-{doc_id:05d}"


# =====================================================
# CREATE
# =====================================================
async def create_sales_order(
    db: AsyncSession,
    payload: SalesOrderCreate,
    actor: str,
) -> SalesOrderOut:

    if not payload.items:
        raise AppException(
            400,
            "Sales order must contain at least one item",
            ErrorCode.SALES_ORDER_EMPTY_ITEMS,
        )

    # -------------------------
    # KNOWN ITEM IDS
    # -------------------------
    item_ids = {i.item_id for i in payload.items if i.item_id is not None}
    if item_ids:
        rows = await db.execute(
            select(CatalogItem.id).where(
                CatalogItem.id.in_(item_ids),
                CatalogItem.is_deleted.is_(False),
            )
        )
        if missing := item_ids - set(rows.scalars().all()):
            raise AppException(
                400,
                f"Invalid item(s): {sorted(missing)}",
                ErrorCode.ITEM_NOT_FOUND,
            )

    if payload.order_number:
        exists = await db.scalar(
            select(SalesOrder.id).where(SalesOrder.order_number == payload.order_number)
        )
        if exists:
            raise AppException(
                409,
                "Sales order number already exists",
                ErrorCode.SALES_ORDER_NUMBER_EXISTS,
            )

    try:
        so = SalesOrder(
            order_number=payload.order_number,
            customer_name=payload.customer_name,
            notes=payload.notes,
            status=SalesOrderStatus.draft,
            created_by=actor,
        )
        db.add(so)
        await db.flush()

        if not so.order_number:
            so.order_number = generate_document_number("SO", so.id)

        # declared order is preserved through ascending ids
        for line in payload.items:
            db.add(
                SalesOrderItem(
                    sales_order_id=so.id,
                    item_id=line.item_id,
                    description=line.description.strip(),
                    ordered_quantity=line.ordered_quantity,
                )
            )
            await db.flush()

        await emit_activity(
            db=db,
            actor=actor,
            code=ActivityCode.CREATE_SALES_ORDER,
            target_name=so.order_number,
            line_count=len(payload.items),
        )

        await db.commit()

    except IntegrityError:
        await db.rollback()
        raise AppException(
            409,
            "Duplicate sales order detected",
            ErrorCode.SALES_ORDER_NUMBER_EXISTS,
        )

    logger.info("Sales order %s created with %s line(s)", so.order_number, len(payload.items))

    return await get_sales_order(db, so.id)


# =====================================================
# GET
# =====================================================
async def get_sales_order(
    db: AsyncSession,
    so_id: int,
) -> SalesOrderOut:

    so = await db.scalar(
        select(SalesOrder)
        .where(
            SalesOrder.id == so_id,
            SalesOrder.is_deleted.is_(False),
        )
        .execution_options(populate_existing=True)
    )

    if not so:
        raise AppException(
            404,
            "Sales order not found",
            ErrorCode.SALES_ORDER_NOT_FOUND,
        )

    return SalesOrderOut.model_validate(so)


# =====================================================
# LIST
# =====================================================
async def list_sales_orders(
    db: AsyncSession,
    *,
    status: SalesOrderStatus | None,
    search: str | None,
    page: int,
    page_size: int,
    sort_by: str,
    order: str,
) -> SalesOrderListData:

    base = select(SalesOrder).where(SalesOrder.is_deleted.is_(False))

    if status:
        base = base.where(SalesOrder.status == status)
    if search:
        base = base.where(
            SalesOrder.order_number.icontains(search, autoescape=True)
            | SalesOrder.customer_name.icontains(search, autoescape=True)
        )

    sort_col = ALLOWED_SORT_FIELDS.get(sort_by, SalesOrder.created_at)
    sort_order = desc(sort_col) if order.lower() == "desc" else asc(sort_col)

    total = await db.scalar(
        select(func.count()).select_from(base.subquery())
    )

    rows = await db.execute(
        base.order_by(sort_order, SalesOrder.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    return SalesOrderListData(
        total=total or 0,
        items=[SalesOrderOut.model_validate(so) for so in rows.scalars().all()],
    )


# =====================================================
# CANCEL (DRAFT ONLY)
# =====================================================
async def cancel_sales_order(
    db: AsyncSession,
    so_id: int,
    actor: str,
) -> SalesOrderOut:

    result = await db.execute(
        select(SalesOrder)
        .options(raiseload("*"))
        .where(SalesOrder.id == so_id, SalesOrder.is_deleted.is_(False))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    so = result.scalar_one_or_none()

    if not so:
        raise AppException(404, "Sales order not found", ErrorCode.SALES_ORDER_NOT_FOUND)

    if so.status != SalesOrderStatus.draft:
        raise InvalidTransition(
            "sales order", so.id, so.status, "cancel", expected=SalesOrderStatus.draft
        )

    so.status = SalesOrderStatus.cancelled
    so.version += 1
    so.updated_by = actor

    await emit_activity(
        db=db,
        actor=actor,
        code=ActivityCode.CANCEL_SALES_ORDER,
        target_name=so.order_number,
    )

    await db.commit()

    return await get_sales_order(db, so.id)
