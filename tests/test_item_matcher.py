import pytest

from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.models.enums.item_category import ItemCategory
from app.services.inventory.item_matcher import (
    clean_description,
    ensure_matched,
    format_backlog_description,
    match_catalog_item,
)

from conftest import make_item


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Oak Chair", "Oak Chair"),
        ("  Oak Chair  ", "Oak Chair"),
        ("[Sales Backlog] Oak Chair (SO: SO-00001, Backlog: 3)", "Oak Chair"),
        ("[Anything] Oak Chair", "Oak Chair"),
        ("Oak Chair (SO: SO-7)", "Oak Chair"),
        ("", ""),
        (None, ""),
    ],
)
def test_clean_description(raw, expected):
    assert clean_description(raw) == expected


def test_backlog_description_cleans_back_to_original():
    composed = format_backlog_description("Walnut Table", "SO-00012", 4)

    assert composed == "[Sales Backlog] Walnut Table (SO: SO-00012, Backlog: 4)"
    assert clean_description(composed) == "Walnut Table"


async def test_match_is_case_insensitive_substring(db):
    item_id = await make_item(db, "Oak Chair Deluxe")

    item = await match_catalog_item(db, "oak chair")

    assert item is not None
    assert item.id == item_id


async def test_match_falls_back_to_description(db):
    item_id = await make_item(db, "SKU-991", description="Brass floor lamp")

    item = await match_catalog_item(db, "floor lamp")

    assert item.id == item_id


async def test_ambiguous_match_is_no_match(db):
    await make_item(db, "Oak Chair Small")
    await make_item(db, "Oak Chair Large")

    assert await match_catalog_item(db, "Oak Chair") is None


async def test_blank_text_never_matches(db):
    await make_item(db, "Oak Chair")

    assert await match_catalog_item(db, "   ") is None


async def test_like_wildcards_are_literal(db):
    await make_item(db, "Oak Chair")

    assert await match_catalog_item(db, "%") is None


async def test_service_items_are_matchable(db):
    item_id = await make_item(db, "Assembly Service", category=ItemCategory.service)

    item = await match_catalog_item(db, "assembly")

    assert item.id == item_id
    assert item.is_stock_tracked is False


def test_unmatched_line_tolerated_by_default():
    ensure_matched(None, "Mystery widget", line_id=1)


def test_unmatched_line_rejected_in_strict_mode(strict_matching):
    with pytest.raises(AppException) as exc:
        ensure_matched(None, "Mystery widget", line_id=7)

    assert exc.value.status_code == 422
    assert exc.value.error_code == ErrorCode.UNMATCHED_LINE
    assert exc.value.details["line_id"] == 7
