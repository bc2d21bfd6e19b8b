from fastapi import APIRouter, Depends
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.sales.backlog_schemas import BacklogItemOut
from app.services.sales.backlog_service import list_backlog_items
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/backlog", tags=["Backlog"])


@router.get("/", response_model=APIResponse[List[BacklogItemOut]])
async def list_backlog_api(
    db: AsyncSession = Depends(get_db),
):
    items = await list_backlog_items(db)
    return success_response("Backlog fetched successfully", items)
