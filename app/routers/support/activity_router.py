from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.support.activity_schemas import ActivityFilters, ActivityListData
from app.services.support.activity_service import list_activities
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/activities", tags=["Activity Log"])


@router.get("/", response_model=APIResponse[ActivityListData])
async def list_activities_api(
    filters: ActivityFilters = Depends(),
    db: AsyncSession = Depends(get_db),
):
    result = await list_activities(db=db, filters=filters)

    return success_response(
        "Activities fetched successfully",
        result,
    )
