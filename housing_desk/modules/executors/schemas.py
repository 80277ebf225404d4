"""
Executors Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from housing_desk.modules.executors.models import Executor, ExecutorSpecialization, ExecutorStatus


class ExecutorCreate(BaseModel):
    """Creates the executor's user account and profile in one go."""
    login: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6, max_length=72)
    name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    specialization: ExecutorSpecialization


class ExecutorUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    specialization: ExecutorSpecialization | None = None
    is_active: bool | None = None


class ExecutorStatusUpdate(BaseModel):
    status: ExecutorStatus


class ExecutorResponse(BaseModel):
    """Executor as seen by the dashboard; `id` is the executor's user id."""
    id: uuid.UUID
    login: str
    name: str
    phone: str | None
    specialization: str
    status: str
    rating: float
    completed_count: int
    active_requests: int
    total_earnings: float
    is_active: bool
    created_at: datetime

    @classmethod
    def from_executor(cls, executor: Executor) -> "ExecutorResponse":
        user = executor.user
        return cls(
            id=executor.user_id,
            login=user.login,
            name=user.name,
            phone=user.phone,
            specialization=executor.specialization,
            status=executor.status,
            rating=executor.rating,
            completed_count=executor.completed_count,
            active_requests=executor.active_requests,
            total_earnings=float(executor.total_earnings or 0),
            is_active=user.is_active,
            created_at=executor.created_at,
        )


class ExecutorStatsResponse(BaseModel):
    total_requests: int
    total_completed: int
    this_week: int
    this_month: int
    rating: float
    avg_completion_time: int = Field(description="Mean work duration of completed requests, seconds")
    status_breakdown: dict[str, int]
