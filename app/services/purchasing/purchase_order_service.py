# app/services/purchasing/purchase_order_service.py

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, asc, desc, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import raiseload

from app.models.purchasing.purchase_order_models import PurchaseOrder, PurchaseOrderItem
from app.models.enums.purchase_order_status import PurchaseOrderStatus

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode

from app.core.exceptions import AppException, InvalidTransition
from app.services.sales.sales_order_service import generate_document_number
from app.utils.activity_helpers import emit_activity

from app.schemas.purchasing.purchase_order_schemas import (
    PurchaseOrderCreate,
    PurchaseOrderItemCreate,
    PurchaseOrderOut,
    PurchaseOrderListData,
)

logger = logging.getLogger(__name__)

ALLOWED_SORT_FIELDS = {
    "created_at": PurchaseOrder.created_at,
    "status": PurchaseOrder.status,
    "po_number": PurchaseOrder.po_number,
    "id": PurchaseOrder.id,
}


# =====================================================
# CREATE
# =====================================================
async def write_purchase_order(
    db: AsyncSession,
    *,
    po_number: str | None,
    supplier_name: str | None,
    notes: str | None,
    items: list[PurchaseOrderItemCreate],
    actor: str,
) -> PurchaseOrder:
    """Persist a pending purchase order with its lines; the caller commits."""
    if not items:
        raise AppException(
            400,
            "Purchase order must contain at least one item",
            ErrorCode.PURCHASE_ORDER_EMPTY_ITEMS,
        )

    if po_number:
        exists = await db.scalar(
            select(PurchaseOrder.id).where(PurchaseOrder.po_number == po_number)
        )
        if exists:
            raise AppException(409, "Purchase order number already exists", ErrorCode.CONFLICT)

    po = PurchaseOrder(
        po_number=po_number,
        supplier_name=supplier_name,
        notes=notes,
        status=PurchaseOrderStatus.pending,
        created_by=actor,
    )
    db.add(po)
    await db.flush()

    if not po.po_number:
        po.po_number = generate_document_number("PO", po.id)

    for line in items:
        db.add(
            PurchaseOrderItem(
                purchase_order_id=po.id,
                description=line.description.strip(),
                received_quantity=line.received_quantity,
            )
        )
        await db.flush()

    await emit_activity(
        db=db,
        actor=actor,
        code=ActivityCode.CREATE_PURCHASE_ORDER,
        target_name=po.po_number,
        line_count=len(items),
    )

    return po


async def create_purchase_order(
    db: AsyncSession,
    payload: PurchaseOrderCreate,
    actor: str,
) -> PurchaseOrderOut:
    try:
        po = await write_purchase_order(
            db,
            po_number=payload.po_number,
            supplier_name=payload.supplier_name,
            notes=payload.notes,
            items=payload.items,
            actor=actor,
        )
        await db.commit()

    except IntegrityError:
        await db.rollback()
        raise AppException(409, "Duplicate purchase order detected", ErrorCode.CONFLICT)

    logger.info("Purchase order %s created with %s line(s)", po.po_number, len(payload.items))
    return await get_purchase_order(db, po.id)


# =====================================================
# GET
# =====================================================
async def get_purchase_order(db: AsyncSession, po_id: int) -> PurchaseOrderOut:
    po = await db.scalar(
        select(PurchaseOrder)
        .where(PurchaseOrder.id == po_id, PurchaseOrder.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    if not po:
        raise AppException(404, "Purchase order not found", ErrorCode.PURCHASE_ORDER_NOT_FOUND)

    return PurchaseOrderOut.model_validate(po)


# =====================================================
# LIST
# =====================================================
async def list_purchase_orders(
    db: AsyncSession,
    *,
    status: PurchaseOrderStatus | None,
    search: str | None,
    page: int,
    page_size: int,
    sort_by: str,
    order: str,
) -> PurchaseOrderListData:

    base = select(PurchaseOrder).where(PurchaseOrder.is_deleted.is_(False))

    if status:
        base = base.where(PurchaseOrder.status == status)
    if search:
        base = base.where(
            or_(
                PurchaseOrder.po_number.icontains(search, autoescape=True),
                PurchaseOrder.supplier_name.icontains(search, autoescape=True),
            )
        )

    sort_col = ALLOWED_SORT_FIELDS.get(sort_by, PurchaseOrder.created_at)
    sort_order = desc(sort_col) if order.lower() == "desc" else asc(sort_col)

    total = await db.scalar(select(func.count()).select_from(base.subquery()))

    rows = await db.execute(
        base.order_by(sort_order, PurchaseOrder.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    return PurchaseOrderListData(
        total=total or 0,
        items=[PurchaseOrderOut.model_validate(po) for po in rows.scalars().all()],
    )


# =====================================================
# CANCEL
# =====================================================
async def cancel_purchase_order(
    db: AsyncSession,
    po_id: int,
    actor: str,
) -> PurchaseOrderOut:

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

    if po.status != PurchaseOrderStatus.pending:
        raise InvalidTransition("purchase order", po.id, po.status, "cancel")

    po.status = PurchaseOrderStatus.cancelled
    po.version += 1
    po.updated_by = actor

    await emit_activity(
        db=db,
        actor=actor,
        code=ActivityCode.CANCEL_PURCHASE_ORDER,
        target_name=po.po_number,
    )

    await db.commit()

    return await get_purchase_order(db, po.id)
