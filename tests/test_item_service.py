import warnings

import pytest
from sqlalchemy.exc import InvalidRequestError, SADeprecationWarning

from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.inventory_movement_type import InventoryMovementType
from app.models.enums.item_category import ItemCategory
from app.schemas.masters.item_schemas import ItemCreate, StockAdjustmentCreate
from app.services.masters.item_service import (
    adjust_stock,
    create_item,
    list_item_movements,
    list_items,
)
from app.services.inventory.stock_movement_service import lock_items

from conftest import ACTOR, make_item, on_hand


async def test_opening_stock_is_booked_through_the_ledger(db):
    item_id = await make_item(db, "Bolt", on_hand=7)

    movements = await list_item_movements(db, item_id, page=1, page_size=50)

    assert await on_hand(db, item_id) == 7
    assert movements.total == 1
    assert movements.items[0].movement_type == InventoryMovementType.ADJUSTMENT
    assert movements.items[0].balance_after == 7


async def test_duplicate_name_is_rejected(db):
    await make_item(db, "Bolt")

    with pytest.raises(AppException) as exc:
        await create_item(db, ItemCreate(name="bolt"), ACTOR)

    assert exc.value.error_code == ErrorCode.ITEM_NAME_EXISTS


async def test_service_items_cannot_carry_stock(db):
    with pytest.raises(AppException):
        await create_item(
            db, ItemCreate(name="Delivery", category=ItemCategory.service, on_hand=3), ACTOR
        )

    item_id = await make_item(db, "Delivery", category=ItemCategory.service)
    with pytest.raises(AppException) as exc:
        await adjust_stock(db, item_id, StockAdjustmentCreate(quantity_change=1), ACTOR)

    assert exc.value.error_code == ErrorCode.INVALID_MOVEMENT


async def test_adjustment_cannot_drive_stock_negative(db):
    item_id = await make_item(db, "Bolt", on_hand=2)

    with pytest.raises(AppException) as exc:
        await adjust_stock(db, item_id, StockAdjustmentCreate(quantity_change=-3), ACTOR)

    assert exc.value.error_code == ErrorCode.INSUFFICIENT_STOCK
    assert await on_hand(db, item_id) == 2


async def test_adjustment_records_signed_movement(db):
    item_id = await make_item(db, "Bolt", on_hand=2)

    movement = await adjust_stock(
        db, item_id, StockAdjustmentCreate(quantity_change=-2, reason="damaged"), ACTOR
    )

    assert movement.quantity_change == -2
    assert movement.balance_after == 0
    assert movement.created_by == ACTOR
    assert await on_hand(db, item_id) == 0


async def test_list_items_filters_and_sorts(db):
    await make_item(db, "Oak Chair")
    await make_item(db, "Oak Table")
    await make_item(db, "Assembly", category=ItemCategory.service)

    data = await list_items(
        db, search="oak", category=None, page=1, page_size=10, sort_by="name", order="desc"
    )

    assert data.total == 2
    assert [i.name for i in data.items] == ["Oak Table", "Oak Chair"]

    with pytest.raises(AppException):
        await list_items(
            db, search=None, category=None, page=1, page_size=10, sort_by="price", order="asc"
        )


async def test_locked_items_refuse_lazy_loads(db):
    bolt = await make_item(db, "Bolt", on_hand=1)

    with warnings.catch_warnings():
        warnings.simplefilter("error", SADeprecationWarning)
        locked = await lock_items(db, [bolt])

    with pytest.raises(InvalidRequestError):
        locked[bolt].movements
