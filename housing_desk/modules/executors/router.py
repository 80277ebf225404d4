"""
Executors Module - API Router
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.database import get_db
from housing_desk.modules.auth.dependencies import CurrentUser, StaffUser
from housing_desk.modules.executors.models import ExecutorSpecialization
from housing_desk.modules.executors.schemas import (
    ExecutorCreate,
    ExecutorResponse,
    ExecutorStatsResponse,
    ExecutorStatusUpdate,
    ExecutorUpdate,
)
from housing_desk.modules.executors.service import ExecutorService

router = APIRouter(prefix="/executors", tags=["Executors"])


async def get_executor_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ExecutorService:
    return ExecutorService(db)


ExecutorServiceDep = Annotated[ExecutorService, Depends(get_executor_service)]


@router.get("", response_model=list[ExecutorResponse])
async def list_executors(
    current_user: CurrentUser,
    service: ExecutorServiceDep,
    specialization: ExecutorSpecialization | None = None,
    active_only: bool = Query(True, description="Hide deactivated executors"),
) -> list[ExecutorResponse]:
    """List executors, optionally by specialization."""
    executors = await service.list_executors(specialization=specialization, active_only=active_only)
    return [ExecutorResponse.from_executor(e) for e in executors]


@router.post("", response_model=ExecutorResponse, status_code=status.HTTP_201_CREATED)
async def create_executor(
    data: ExecutorCreate,
    staff: StaffUser,
    service: ExecutorServiceDep,
) -> ExecutorResponse:
    """Create an executor account and profile."""
    executor = await service.create(data)
    return ExecutorResponse.from_executor(executor)


@router.get("/{executor_id}", response_model=ExecutorResponse)
async def get_executor(
    executor_id: uuid.UUID,
    current_user: CurrentUser,
    service: ExecutorServiceDep,
) -> ExecutorResponse:
    executor = await service.get_or_404(executor_id)
    return ExecutorResponse.from_executor(executor)


@router.patch("/{executor_id}", response_model=ExecutorResponse)
async def update_executor(
    executor_id: uuid.UUID,
    data: ExecutorUpdate,
    staff: StaffUser,
    service: ExecutorServiceDep,
) -> ExecutorResponse:
    executor = await service.update(executor_id, data)
    return ExecutorResponse.from_executor(executor)


@router.patch("/{executor_id}/status", response_model=ExecutorResponse)
async def update_executor_status(
    executor_id: uuid.UUID,
    data: ExecutorStatusUpdate,
    current_user: CurrentUser,
    service: ExecutorServiceDep,
) -> ExecutorResponse:
    """Set availability (available / busy / offline)."""
    executor = await service.update_status(executor_id, data.status, current_user)
    return ExecutorResponse.from_executor(executor)


@router.get("/{executor_id}/stats", response_model=ExecutorStatsResponse)
async def get_executor_stats(
    executor_id: uuid.UUID,
    current_user: CurrentUser,
    service: ExecutorServiceDep,
) -> ExecutorStatsResponse:
    """Completion counts, rating and average work time."""
    return await service.get_stats(executor_id)
