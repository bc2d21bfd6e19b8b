import pytest

from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.models.enums.delivery_order_status import DeliveryOrderStatus
from app.schemas.sales.delivery_order_schemas import (
    DeliveryOrderCreate,
    DeliveryOrderItemCreate,
    DeliveryOrderUpdate,
)
from app.services.sales.fulfillment_service import (
    cancel_delivery_order,
    create_delivery_order,
    get_delivery_progress,
    get_remaining_quantity,
    list_deliverable_lines,
    mark_delivery_order_delivered,
    update_delivery_order,
)
from app.services.sales.reservation_service import confirm_sales_order

from conftest import ACTOR, load_line, make_item, make_sales_order


async def _confirmed(db, *lines):
    so = await make_sales_order(db, *lines)
    await confirm_sales_order(db, so.id, ACTOR)
    return so


async def _deliver(db, so_id, *quantities):
    """``quantities`` are (sales_order_item_id, quantity) pairs."""
    return await create_delivery_order(
        db,
        DeliveryOrderCreate(
            sales_order_id=so_id,
            items=[
                DeliveryOrderItemCreate(sales_order_item_id=line_id, quantity=qty)
                for line_id, qty in quantities
            ],
        ),
        ACTOR,
    )


async def test_remaining_drops_and_over_delivery_is_rejected(db):
    await make_item(db, "Bolt", on_hand=8)
    so = await _confirmed(db, ("Bolt", 8))
    line_id = so.items[0].id

    await _deliver(db, so.id, (line_id, 5))

    assert await get_remaining_quantity(db, await load_line(db, line_id)) == 3

    with pytest.raises(AppException) as exc:
        await _deliver(db, so.id, (line_id, 4))

    assert exc.value.status_code == 422
    assert exc.value.error_code == ErrorCode.QUANTITY_VIOLATION
    assert exc.value.details == {"sales_order_item_id": line_id, "requested": 4, "remaining": 3}


async def test_split_lines_are_aggregated_before_validation(db):
    await make_item(db, "Bolt", on_hand=8)
    so = await _confirmed(db, ("Bolt", 8))
    line_id = so.items[0].id

    with pytest.raises(AppException) as exc:
        await _deliver(db, so.id, (line_id, 5), (line_id, 4))

    assert exc.value.details["requested"] == 9


async def test_cancelled_delivery_frees_its_quantity(db):
    await make_item(db, "Bolt", on_hand=8)
    so = await _confirmed(db, ("Bolt", 8))
    line_id = so.items[0].id

    do = await _deliver(db, so.id, (line_id, 8))
    await cancel_delivery_order(db, do.id, ACTOR)

    assert await get_remaining_quantity(db, await load_line(db, line_id)) == 8


async def test_deliverable_lines_skip_fully_assigned(db):
    await make_item(db, "Bolt", on_hand=10)
    await make_item(db, "Nut", on_hand=10)
    so = await _confirmed(db, ("Bolt", 2), ("Nut", 3))
    bolt_line, nut_line = (line.id for line in so.items)

    await _deliver(db, so.id, (bolt_line, 2), (nut_line, 1))

    lines = await list_deliverable_lines(db, so.id)

    assert [line.sales_order_item_id for line in lines] == [nut_line]
    assert lines[0].remaining_quantity == 2


async def test_editing_excludes_own_quantities(db):
    await make_item(db, "Bolt", on_hand=8)
    so = await _confirmed(db, ("Bolt", 8))
    line_id = so.items[0].id
    do = await _deliver(db, so.id, (line_id, 6))

    editable = await list_deliverable_lines(db, so.id, exclude_delivery_order_id=do.id)
    assert editable[0].remaining_quantity == 8

    updated = await update_delivery_order(
        db,
        do.id,
        DeliveryOrderUpdate(
            items=[DeliveryOrderItemCreate(sales_order_item_id=line_id, quantity=8)],
            version=do.version,
        ),
        ACTOR,
    )

    assert updated.version == do.version + 1
    assert [i.shipped_quantity for i in updated.items] == [8]
    assert await get_remaining_quantity(db, await load_line(db, line_id)) == 0


async def test_update_with_stale_version_is_rejected(db):
    await make_item(db, "Bolt", on_hand=8)
    so = await _confirmed(db, ("Bolt", 8))
    do = await _deliver(db, so.id, (so.items[0].id, 1))

    with pytest.raises(AppException) as exc:
        await update_delivery_order(
            db, do.id, DeliveryOrderUpdate(notes="late", version=do.version + 5), ACTOR
        )

    assert exc.value.error_code == ErrorCode.CONCURRENT_UPDATE


async def test_delivered_document_cannot_be_edited_or_cancelled(db):
    await make_item(db, "Bolt", on_hand=8)
    so = await _confirmed(db, ("Bolt", 8))
    do = await _deliver(db, so.id, (so.items[0].id, 1))

    delivered = await mark_delivery_order_delivered(db, do.id, ACTOR)
    assert delivered.status == DeliveryOrderStatus.delivered

    with pytest.raises(AppException) as exc:
        await cancel_delivery_order(db, do.id, ACTOR)
    assert exc.value.error_code == ErrorCode.INVALID_TRANSITION

    with pytest.raises(AppException):
        await update_delivery_order(
            db, do.id, DeliveryOrderUpdate(notes="x", version=delivered.version), ACTOR
        )


async def test_line_from_another_order_is_rejected(db):
    await make_item(db, "Bolt", on_hand=8)
    first = await _confirmed(db, ("Bolt", 2))
    second = await _confirmed(db, ("Bolt", 2))

    with pytest.raises(AppException) as exc:
        await _deliver(db, first.id, (second.items[0].id, 1))

    assert exc.value.error_code == ErrorCode.DELIVERY_ORDER_INVALID_LINE


async def test_draft_order_cannot_be_delivered(db):
    await make_item(db, "Bolt", on_hand=8)
    so = await make_sales_order(db, ("Bolt", 2))

    with pytest.raises(AppException) as exc:
        await _deliver(db, so.id, (so.items[0].id, 1))

    assert exc.value.error_code == ErrorCode.INVALID_TRANSITION


async def test_delivery_progress(db):
    await make_item(db, "Bolt", on_hand=10)
    await make_item(db, "Nut", on_hand=10)
    so = await _confirmed(db, ("Bolt", 4), ("Nut", 4))
    bolt_line, nut_line = (line.id for line in so.items)

    progress = await get_delivery_progress(db, so.id)
    assert progress.delivery_status == "Not Delivered"

    do = await _deliver(db, so.id, (bolt_line, 4), (nut_line, 2))
    await mark_delivery_order_delivered(db, do.id, ACTOR)
    await _deliver(db, so.id, (nut_line, 2))

    progress = await get_delivery_progress(db, so.id)
    assert progress.delivery_status == "Partially Delivered"
    assert progress.delivered_items == 1
    assert progress.delivered_quantity == 6
    assert progress.assigned_quantity == 8
    assert progress.quantity_delivered_percentage == 75.0
    assert progress.do_count == 2
