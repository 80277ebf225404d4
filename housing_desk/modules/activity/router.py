"""
Activity Module - API Routes
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.database import get_db
from housing_desk.modules.activity.schemas import ActivityLogListResponse, ActivityLogResponse
from housing_desk.modules.activity.service import ActivityService
from housing_desk.modules.auth.dependencies import StaffUser

router = APIRouter(prefix="/activity", tags=["Activity"])


async def get_activity_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ActivityService:
    return ActivityService(db)


ActivityServiceDep = Annotated[ActivityService, Depends(get_activity_service)]


@router.get("", response_model=ActivityLogListResponse, summary="Activity feed")
async def list_activity(
    staff: StaffUser,
    service: ActivityServiceDep,
    request_id: uuid.UUID | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
) -> ActivityLogListResponse:
    """Staff activity feed, newest first, optionally for a single request."""
    items, total = await service.list_entries(request_id=request_id, page=page, page_size=page_size)
    return ActivityLogListResponse(
        items=[ActivityLogResponse.model_validate(i) for i in items],
        total=total,
        page=page,
        page_size=page_size,
    )
