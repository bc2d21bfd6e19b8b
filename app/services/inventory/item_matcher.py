"""
Free-text line description -> catalog item resolution.

Order and purchase lines carry free-form descriptions rather than catalog
keys, so lines are joined to items by a case-insensitive substring match on
the item name, falling back to the item description. A lookup that hits zero
or several items on a field is treated as no match on that field.

Once a sales order line is resolved, its item id is persisted and later
operations use the stable id; the text match only runs for unlinked lines.

The matcher is passed into the ledger services as a plain async callable
(``Matcher``) so a stricter or smarter lookup can be substituted.
"""

import logging
from typing import Awaitable, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import raiseload

from app.core.config import STRICT_LINE_MATCHING
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.models.masters.item_models import CatalogItem
from app.models.sales.sales_order_models import SalesOrderItem

logger = logging.getLogger(__name__)

Matcher = Callable[[AsyncSession, str], Awaitable[Optional[CatalogItem]]]

BACKLOG_LABEL = "[Sales Backlog]"
SO_ANNOTATION = "(SO:"


def clean_description(text: str | None) -> str:
    """
    Strip display metadata added when a line was composed from the backlog:
    a leading ``[Label] `` prefix and a trailing ``(SO: ...)`` annotation.
    """
    cleaned = (text or "").strip()

    if cleaned.startswith("["):
        close = cleaned.find("]")
        if close > 0:
            cleaned = cleaned[close + 1:].strip()

    paren = cleaned.find(SO_ANNOTATION)
    if paren > 0:
        cleaned = cleaned[:paren].strip()

    return cleaned


def format_backlog_description(description: str, order_number: str, backordered: int) -> str:
    return f"{BACKLOG_LABEL} {description} {SO_ANNOTATION} {order_number}, Backlog: {backordered})"


async def _single_match(db: AsyncSession, column, text: str) -> CatalogItem | None:
    rows = await db.execute(
        select(CatalogItem)
        .options(raiseload("*"))
        .where(
            column.icontains(text, autoescape=True),
            CatalogItem.is_deleted.is_(False),
        )
        .order_by(CatalogItem.id)
        .limit(2)
    )
    hits = rows.scalars().all()

    if len(hits) > 1:
        logger.warning(
            "Ambiguous match for %r on items.%s (ids %s, ...)",
            text,
            column.key,
            hits[0].id,
        )
        return None

    return hits[0] if hits else None


async def match_catalog_item(db: AsyncSession, text: str) -> CatalogItem | None:
    text = (text or "").strip()
    if not text:
        return None

    item = await _single_match(db, CatalogItem.name, text)
    if item is None:
        item = await _single_match(db, CatalogItem.description, text)

    return item


def ensure_matched(item: CatalogItem | None, description: str, *, line_id: int | None = None):
    """Unmatched lines are untracked unless strict matching is enabled."""
    if item is not None:
        return

    if STRICT_LINE_MATCHING:
        raise AppException(
            422,
            f"No catalog item matches '{description}'",
            ErrorCode.UNMATCHED_LINE,
            details={"line_id": line_id, "description": description},
        )

    logger.warning(
        "Unmatched line %s (%r); treating as untracked",
        line_id,
        description,
    )


async def resolve_line_item(
    db: AsyncSession,
    line: SalesOrderItem,
    matcher: Matcher = match_catalog_item,
) -> CatalogItem | None:
    if line.item_id is not None:
        item = await db.get(CatalogItem, line.item_id, options=[raiseload("*")])
        if item is not None and not item.is_deleted:
            return item
        logger.warning(
            "Sales order item %s points at missing item %s; re-matching",
            line.id,
            line.item_id,
        )

    item = await matcher(db, line.description)
    line.item_id = item.id if item is not None else None
    return item
