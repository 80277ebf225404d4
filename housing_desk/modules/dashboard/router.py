"""Dashboard Router - Summary endpoint for staff."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.database import get_db
from housing_desk.modules.auth.dependencies import StaffUser
from housing_desk.modules.dashboard.schemas import DashboardSummaryResponse
from housing_desk.modules.dashboard.service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/summary", response_model=DashboardSummaryResponse, summary="Dashboard summary")
async def get_dashboard_summary(
    staff: StaffUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DashboardSummaryResponse:
    """Request counters, executor availability and marketplace backlog."""
    return await DashboardService(db).get_summary()
