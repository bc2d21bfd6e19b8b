from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.models.enums.purchase_order_status import PurchaseOrderStatus
from app.services.purchasing.receiving_service import lock_open_backorders, receive_purchase_order
from app.services.purchasing.purchase_order_service import (
    cancel_purchase_order,
    get_purchase_order,
)
from app.services.sales.reservation_service import confirm_sales_order, revert_sales_order

from conftest import (
    ACTOR,
    backdate_line,
    load_line,
    make_item,
    make_purchase_order,
    make_sales_order,
    on_hand,
)


async def _confirmed_order(db, description, quantity, *, created_at=None):
    so = await make_sales_order(db, (description, quantity))
    if created_at is not None:
        await backdate_line(db, so.items[0].id, created_at)
    await confirm_sales_order(db, so.id, ACTOR)
    return so.items[0].id


async def test_receipt_clears_backorder_and_consumes_stock(db):
    bolt = await make_item(db, "Bolt", on_hand=5)
    line_id = await _confirmed_order(db, "Bolt", 8)
    po = await make_purchase_order(db, ("Bolt", 3))

    result = await receive_purchase_order(db, po.id, ACTOR)

    assert result.status == PurchaseOrderStatus.received
    assert result.updated_items == 1
    assert result.cleared_backorders == 1
    assert result.lines[0].cleared_quantity == 3
    assert result.lines[0].left_on_hand == 0
    assert await on_hand(db, bolt) == 0

    line = await load_line(db, line_id)
    assert (line.reserved_quantity, line.backordered_quantity) == (8, 0)


async def test_leftover_receipt_stays_on_hand(db):
    bolt = await make_item(db, "Bolt", on_hand=0)
    line_id = await _confirmed_order(db, "Bolt", 2)
    po = await make_purchase_order(db, ("Bolt", 10))

    result = await receive_purchase_order(db, po.id, ACTOR)

    assert result.lines[0].left_on_hand == 8
    assert await on_hand(db, bolt) == 8
    assert (await load_line(db, line_id)).backordered_quantity == 0


async def test_clearing_is_fifo_by_creation_time(db):
    await make_item(db, "Bolt", on_hand=0)
    now = datetime.now(timezone.utc)
    # the newer order is created first so ids and timestamps disagree
    newer = await _confirmed_order(db, "Bolt", 3, created_at=now)
    older = await _confirmed_order(db, "Bolt", 3, created_at=now - timedelta(days=1))
    po = await make_purchase_order(db, ("Bolt", 3))

    result = await receive_purchase_order(db, po.id, ACTOR)

    assert [c.sales_order_item_id for c in result.lines[0].clearances] == [older]
    assert (await load_line(db, older)).backordered_quantity == 0
    assert (await load_line(db, newer)).backordered_quantity == 3


async def test_equal_timestamps_clear_in_line_id_order(db):
    await make_item(db, "Bolt", on_hand=0)
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    first = await _confirmed_order(db, "Bolt", 2, created_at=stamp)
    second = await _confirmed_order(db, "Bolt", 2, created_at=stamp)
    po = await make_purchase_order(db, ("Bolt", 2))

    await receive_purchase_order(db, po.id, ACTOR)

    assert (await load_line(db, first)).backordered_quantity == 0
    assert (await load_line(db, second)).backordered_quantity == 2


async def test_two_receipts_clear_across_two_backorders(db):
    await make_item(db, "Bolt", on_hand=0)
    now = datetime.now(timezone.utc)
    first = await _confirmed_order(db, "Bolt", 6, created_at=now - timedelta(hours=2))
    second = await _confirmed_order(db, "Bolt", 4, created_at=now - timedelta(hours=1))

    po_a = await make_purchase_order(db, ("Bolt", 2))
    po_b = await make_purchase_order(db, ("Bolt", 7))
    await receive_purchase_order(db, po_a.id, ACTOR)

    assert (await load_line(db, first)).backordered_quantity == 4
    assert (await load_line(db, second)).backordered_quantity == 4

    await receive_purchase_order(db, po_b.id, ACTOR)

    first_line = await load_line(db, first)
    second_line = await load_line(db, second)
    assert (first_line.reserved_quantity, first_line.backordered_quantity) == (6, 0)
    assert (second_line.reserved_quantity, second_line.backordered_quantity) == (3, 1)


async def test_backorders_of_reverted_orders_are_not_cleared(db):
    bolt = await make_item(db, "Bolt", on_hand=0)
    so = await make_sales_order(db, ("Bolt", 4))
    await confirm_sales_order(db, so.id, ACTOR)
    await revert_sales_order(db, so.id, ACTOR)
    po = await make_purchase_order(db, ("Bolt", 4))

    result = await receive_purchase_order(db, po.id, ACTOR)

    assert result.cleared_backorders == 0
    assert await on_hand(db, bolt) == 4


async def test_backlog_annotations_are_stripped_before_matching(db):
    bolt = await make_item(db, "Bolt", on_hand=0)
    po = await make_purchase_order(db, ("[Sales Backlog] Bolt (SO: SO-00001, Backlog: 3)", 3))

    result = await receive_purchase_order(db, po.id, ACTOR)

    assert result.lines[0].matched_description == "Bolt"
    assert result.lines[0].item_id == bolt
    assert await on_hand(db, bolt) == 3


async def test_unmatched_purchase_line_has_no_stock_effect(db):
    bolt = await make_item(db, "Bolt", on_hand=1)
    po = await make_purchase_order(db, ("Packing foam", 50), ("Bolt", 1))

    result = await receive_purchase_order(db, po.id, ACTOR)

    assert result.updated_items == 1
    assert result.lines[0].item_id is None
    assert result.lines[0].left_on_hand == 0
    assert await on_hand(db, bolt) == 2


async def test_strict_matching_rejects_unmatched_purchase_line(db, strict_matching):
    bolt = await make_item(db, "Bolt", on_hand=0)
    po = await make_purchase_order(db, ("Bolt", 1), ("Packing foam", 50))

    with pytest.raises(AppException) as exc:
        await receive_purchase_order(db, po.id, ACTOR)

    assert exc.value.error_code == ErrorCode.UNMATCHED_LINE
    assert await on_hand(db, bolt) == 0
    assert (await get_purchase_order(db, po.id)).status == PurchaseOrderStatus.pending


async def test_second_receipt_is_rejected_without_double_increment(db):
    bolt = await make_item(db, "Bolt", on_hand=0)
    po = await make_purchase_order(db, ("Bolt", 5))
    await receive_purchase_order(db, po.id, ACTOR)

    with pytest.raises(AppException) as exc:
        await receive_purchase_order(db, po.id, ACTOR)

    assert exc.value.status_code == 409
    assert exc.value.error_code == ErrorCode.INVALID_TRANSITION
    assert await on_hand(db, bolt) == 5


async def test_cancelled_purchase_order_cannot_be_received(db):
    await make_item(db, "Bolt")
    po = await make_purchase_order(db, ("Bolt", 5))
    await cancel_purchase_order(db, po.id, ACTOR)

    with pytest.raises(AppException) as exc:
        await receive_purchase_order(db, po.id, ACTOR)

    assert exc.value.error_code == ErrorCode.INVALID_TRANSITION


async def test_receiving_missing_purchase_order_is_not_found(db):
    with pytest.raises(AppException) as exc:
        await receive_purchase_order(db, 404, ACTOR)

    assert exc.value.status_code == 404
    assert exc.value.error_code == ErrorCode.PURCHASE_ORDER_NOT_FOUND


async def test_open_backorders_are_queued_oldest_first_per_item(db):
    bolt = await make_item(db, "Bolt", on_hand=0)
    nut = await make_item(db, "Nut", on_hand=0)
    now = datetime.now(timezone.utc)

    newer_bolt = await _confirmed_order(db, "Bolt", 2, created_at=now - timedelta(days=1))
    nut_line = await _confirmed_order(db, "Nut", 1)
    older_bolt = await _confirmed_order(db, "Bolt", 3, created_at=now - timedelta(days=5))

    queues = await lock_open_backorders(db, [nut, bolt, bolt])

    assert [line.id for line in queues[bolt]] == [older_bolt, newer_bolt]
    assert [line.id for line in queues[nut]] == [nut_line]


async def test_one_receipt_with_several_items_and_repeated_lines(db):
    bolt = await make_item(db, "Bolt", on_hand=0)
    nut = await make_item(db, "Nut", on_hand=0)
    now = datetime.now(timezone.utc)

    first = await _confirmed_order(db, "Bolt", 6, created_at=now - timedelta(days=2))
    second = await _confirmed_order(db, "Bolt", 4, created_at=now - timedelta(days=1))
    nut_line = await _confirmed_order(db, "Nut", 2)

    po = await make_purchase_order(db, ("Nut", 5), ("Bolt", 2), ("Bolt", 7))
    result = await receive_purchase_order(db, po.id, ACTOR)

    assert [line.cleared_quantity for line in result.lines] == [2, 2, 7]
    assert result.cleared_backorders == 4
    assert await on_hand(db, nut) == 3
    assert await on_hand(db, bolt) == 0

    assert (await load_line(db, first)).backordered_quantity == 0
    assert (await load_line(db, second)).backordered_quantity == 1
    assert (await load_line(db, nut_line)).backordered_quantity == 0
