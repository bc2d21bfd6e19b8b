import logging

from fastapi import APIRouter, Depends, Query
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.purchase_order_status import PurchaseOrderStatus
from app.schemas.purchasing.purchase_order_schemas import (
    PurchaseOrderCreate,
    PurchaseOrderOut,
    PurchaseOrderListData,
    ReceiptResult,
)
from app.schemas.sales.backlog_schemas import PurchaseOrderFromBacklogCreate
from app.services.purchasing.purchase_order_service import (
    create_purchase_order,
    get_purchase_order,
    list_purchase_orders,
    cancel_purchase_order,
)
from app.services.purchasing.receiving_service import receive_purchase_order
from app.services.sales.backlog_service import create_purchase_order_from_backlog
from app.utils.get_actor import get_actor
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/purchase-orders", tags=["Purchase Orders"])
logger = logging.getLogger(__name__)


@router.post("/", response_model=APIResponse[PurchaseOrderOut])
async def create_purchase_order_api(
    payload: PurchaseOrderCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    po = await create_purchase_order(db, payload, actor)
    return success_response("Purchase order created successfully", po)


@router.post("/from-backlog", response_model=APIResponse[PurchaseOrderOut])
async def create_purchase_order_from_backlog_api(
    payload: PurchaseOrderFromBacklogCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    logger.info("Compose purchase order from %s backlog line(s)", len(payload.items))

    po = await create_purchase_order_from_backlog(db, payload, actor)
    return success_response("Purchase order created from backlog", po)


@router.get("/", response_model=APIResponse[PurchaseOrderListData])
async def list_purchase_orders_api(
    db: AsyncSession = Depends(get_db),
    status: Optional[PurchaseOrderStatus] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),
):
    data = await list_purchase_orders(
        db,
        status=status,
        search=search,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order,
    )
    return success_response("Purchase orders fetched successfully", data)


@router.get("/{po_id}", response_model=APIResponse[PurchaseOrderOut])
async def get_purchase_order_api(
    po_id: int,
    db: AsyncSession = Depends(get_db),
):
    po = await get_purchase_order(db, po_id)
    return success_response("Purchase order fetched successfully", po)


@router.post("/{po_id}/receive", response_model=APIResponse[ReceiptResult])
async def receive_purchase_order_api(
    po_id: int,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    logger.info("Receive purchase order %s", po_id)

    result = await receive_purchase_order(db, po_id, actor)
    return success_response("Purchase order received successfully", result)


@router.post("/{po_id}/cancel", response_model=APIResponse[PurchaseOrderOut])
async def cancel_purchase_order_api(
    po_id: int,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    po = await cancel_purchase_order(db, po_id, actor)
    return success_response("Purchase order cancelled successfully", po)
