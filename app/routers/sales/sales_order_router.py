import logging

from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.sales_order_status import SalesOrderStatus
from app.schemas.sales.sales_order_schemas import (
    SalesOrderCreate,
    SalesOrderOut,
    SalesOrderListData,
    ConfirmationResult,
    RevertResult,
    StockShortfallOut,
)
from app.schemas.sales.delivery_order_schemas import (
    DeliverableLineOut,
    DeliveryProgressOut,
)
from app.services.sales.sales_order_service import (
    create_sales_order,
    get_sales_order,
    list_sales_orders,
    cancel_sales_order,
)
from app.services.sales.reservation_service import (
    confirm_sales_order,
    revert_sales_order,
    check_stock_for_sales_order,
)
from app.services.sales.fulfillment_service import (
    list_deliverable_lines,
    get_delivery_progress,
)
from app.utils.get_actor import get_actor
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/sales-orders", tags=["Sales Orders"])
logger = logging.getLogger(__name__)


# =====================================================
# CREATE
# =====================================================
@router.post("/", response_model=APIResponse[SalesOrderOut])
async def create_sales_order_api(
    payload: SalesOrderCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    so = await create_sales_order(db, payload, actor)
    return success_response("Sales order created successfully", so)


# =====================================================
# LIST
# =====================================================
@router.get("/", response_model=APIResponse[SalesOrderListData])
async def list_sales_orders_api(
    db: AsyncSession = Depends(get_db),
    status: Optional[SalesOrderStatus] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),
):
    data = await list_sales_orders(
        db,
        status=status,
        search=search,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order,
    )
    return success_response("Sales orders fetched successfully", data)


# =====================================================
# GET
# =====================================================
@router.get("/{so_id}", response_model=APIResponse[SalesOrderOut])
async def get_sales_order_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
):
    so = await get_sales_order(db, so_id)
    return success_response("Sales order fetched successfully", so)


# =====================================================
# STATUS TRANSITIONS
# =====================================================
@router.post("/{so_id}/confirm", response_model=APIResponse[ConfirmationResult])
async def confirm_sales_order_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    logger.info("Confirm sales order %s", so_id)

    result = await confirm_sales_order(db, so_id, actor)
    return success_response("Sales order confirmed successfully", result)


@router.post("/{so_id}/revert", response_model=APIResponse[RevertResult])
async def revert_sales_order_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    logger.info("Revert sales order %s", so_id)

    result = await revert_sales_order(db, so_id, actor)
    return success_response("Sales order reverted to draft", result)


@router.post("/{so_id}/cancel", response_model=APIResponse[SalesOrderOut])
async def cancel_sales_order_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    so = await cancel_sales_order(db, so_id, actor)
    return success_response("Sales order cancelled successfully", so)


# =====================================================
# READ-ONLY VIEWS
# =====================================================
@router.get("/{so_id}/stock-check", response_model=APIResponse[List[StockShortfallOut]])
async def check_stock_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
):
    shortfalls = await check_stock_for_sales_order(db, so_id)
    message = "Stock is sufficient" if not shortfalls else "Insufficient stock for some items"
    return success_response(message, shortfalls)


@router.get("/{so_id}/deliverable-lines", response_model=APIResponse[List[DeliverableLineOut]])
async def list_deliverable_lines_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
    exclude_delivery_order_id: Optional[int] = Query(
        None, description="Delivery order being edited; its own quantities are not counted"
    ),
):
    lines = await list_deliverable_lines(db, so_id, exclude_delivery_order_id)
    return success_response("Deliverable lines fetched successfully", lines)


@router.get("/{so_id}/delivery-progress", response_model=APIResponse[DeliveryProgressOut])
async def get_delivery_progress_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
):
    progress = await get_delivery_progress(db, so_id)
    return success_response("Delivery progress fetched successfully", progress)
