# app/services/support/activity_service.py

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc, asc

from app.models.support.activity_models import ActivityLog
from app.schemas.support.activity_schemas import (
    ActivityOut,
    ActivityFilters,
    ActivityListData,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode

logger = logging.getLogger(__name__)

ALLOWED_SORT_FIELDS = {
    "created_at": ActivityLog.created_at,
    "actor": ActivityLog.actor,
    "code": ActivityLog.code,
}


async def list_activities(
    *,
    db: AsyncSession,
    filters: ActivityFilters,
) -> ActivityListData:
    # -------------------------
    # Base queries
    # -------------------------
    query = select(ActivityLog)
    count_query = select(func.count(ActivityLog.id))

    # -------------------------
    # Filters
    # -------------------------
    if filters.actor:
        query = query.where(ActivityLog.actor.icontains(filters.actor, autoescape=True))
        count_query = count_query.where(ActivityLog.actor.icontains(filters.actor, autoescape=True))

    if filters.code:
        query = query.where(ActivityLog.code == filters.code.upper())
        count_query = count_query.where(ActivityLog.code == filters.code.upper())

    if filters.reference:
        query = query.where(ActivityLog.reference == filters.reference)
        count_query = count_query.where(ActivityLog.reference == filters.reference)

    # -------------------------
    # Sorting (safe)
    # -------------------------
    sort_column = ALLOWED_SORT_FIELDS.get(filters.sort_by)
    if sort_column is None:
        raise AppException(
            400,
            "Invalid sort field",
            ErrorCode.VALIDATION_ERROR,
        )

    order_fn = desc if filters.sort_order == "desc" else asc
    query = query.order_by(order_fn(sort_column), order_fn(ActivityLog.id))

    # -------------------------
    # Pagination
    # -------------------------
    offset = (filters.page - 1) * filters.page_size
    query = query.limit(filters.page_size).offset(offset)

    total = await db.scalar(count_query)
    result = await db.execute(query)

    logger.debug("Activities fetched: total=%s page=%s", total, filters.page)

    return ActivityListData(
        total=total or 0,
        items=[ActivityOut.model_validate(a) for a in result.scalars().all()],
    )
