from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.sales.delivery_order_schemas import (
    DeliveryOrderCreate,
    DeliveryOrderUpdate,
    DeliveryOrderOut,
)
from app.services.sales.fulfillment_service import (
    create_delivery_order,
    get_delivery_order,
    update_delivery_order,
    mark_delivery_order_delivered,
    cancel_delivery_order,
)
from app.utils.get_actor import get_actor
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/delivery-orders", tags=["Delivery Orders"])


@router.post("/", response_model=APIResponse[DeliveryOrderOut])
async def create_delivery_order_api(
    payload: DeliveryOrderCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    do = await create_delivery_order(db, payload, actor)
    return success_response("Delivery order created successfully", do)


@router.get("/{do_id}", response_model=APIResponse[DeliveryOrderOut])
async def get_delivery_order_api(
    do_id: int,
    db: AsyncSession = Depends(get_db),
):
    do = await get_delivery_order(db, do_id)
    return success_response("Delivery order fetched successfully", do)


@router.patch("/{do_id}", response_model=APIResponse[DeliveryOrderOut])
async def update_delivery_order_api(
    do_id: int,
    payload: DeliveryOrderUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    do = await update_delivery_order(db, do_id, payload, actor)
    return success_response("Delivery order updated successfully", do)


@router.post("/{do_id}/deliver", response_model=APIResponse[DeliveryOrderOut])
async def deliver_delivery_order_api(
    do_id: int,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    do = await mark_delivery_order_delivered(db, do_id, actor)
    return success_response("Delivery order marked as delivered", do)


@router.post("/{do_id}/cancel", response_model=APIResponse[DeliveryOrderOut])
async def cancel_delivery_order_api(
    do_id: int,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    do = await cancel_delivery_order(db, do_id, actor)
    return success_response("Delivery order cancelled successfully", do)
