"""
Requests Module - Pydantic Schemas
"""
import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from housing_desk.modules.executors.models import ExecutorSpecialization
from housing_desk.modules.requests.models import (
    RequestPriority,
    RequestStatus,
    ServiceRequest,
)
from housing_desk.modules.requests.timer import elapsed_seconds, format_duration
from housing_desk.modules.reschedule.schemas import RescheduleResponse


# ============== Input ==============

class RequestCreate(BaseModel):
    """New request; staff filing on behalf of a resident pass `resident_id`."""
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category: ExecutorSpecialization
    priority: RequestPriority = RequestPriority.MEDIUM
    scheduled_date: date | None = None
    scheduled_time: str | None = Field(None, max_length=20)
    access_info: str | None = None
    resident_id: uuid.UUID | None = None


class AssignRequest(BaseModel):
    """Omit `executor_id` when an executor takes the request themselves."""
    executor_id: uuid.UUID | None = None


class ReasonRequest(BaseModel):
    reason: str | None = Field(None, max_length=2000)


class DeclineRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class ApproveRequest(BaseModel):
    rating: int | None = Field(None, ge=1, le=5)
    feedback: str | None = None


class RateRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    feedback: str | None = None


# ============== Output ==============

class RequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    number: int
    title: str
    description: str | None
    category: str
    priority: str
    status: str

    resident_id: uuid.UUID
    resident_name: str
    resident_phone: str | None
    address: str | None
    apartment: str | None

    executor_id: uuid.UUID | None
    executor_name: str | None
    executor_phone: str | None

    scheduled_date: date | None
    scheduled_time: str | None
    access_info: str | None

    assigned_at: datetime | None
    accepted_at: datetime | None
    started_at: datetime | None
    completed_at: datetime | None
    approved_at: datetime | None

    work_duration: int | None
    is_paused: bool
    paused_at: datetime | None
    total_paused_seconds: int

    rating: int | None
    feedback: str | None

    cancelled_at: datetime | None
    cancelled_by: str | None
    cancellation_reason: str | None

    rejected_at: datetime | None
    rejection_reason: str | None
    rejection_count: int

    declined_at: datetime | None
    decline_reason: str | None

    created_at: datetime
    updated_at: datetime

    # Live timer, filled for in-progress requests
    elapsed_seconds: int | None = None
    timer: str | None = None

    @classmethod
    def from_request(cls, request: ServiceRequest, now: datetime | None = None) -> "RequestResponse":
        response = cls.model_validate(request)
        if request.status == RequestStatus.IN_PROGRESS.value:
            seconds = elapsed_seconds(
                request.started_at,
                request.total_paused_seconds,
                request.is_paused,
                request.paused_at,
                now,
            )
            response.elapsed_seconds = seconds
            response.timer = format_duration(seconds)
        elif request.work_duration is not None:
            response.elapsed_seconds = request.work_duration
            response.timer = format_duration(request.work_duration)
        return response


class RequestListResponse(BaseModel):
    items: list[RequestResponse]
    total: int
    page: int
    page_size: int


class ExecutorBoardResponse(BaseModel):
    """Executor dashboard columns."""
    available: list[RequestResponse]
    assigned: list[RequestResponse]
    in_progress: list[RequestResponse]
    completed: list[RequestResponse]
    pending_reschedules: list[RescheduleResponse] = []


class ResidentRequestsResponse(BaseModel):
    active: list[RequestResponse]
    awaiting_approval: list[RequestResponse]
    history: list[RequestResponse]
    pending_reschedules: list[RescheduleResponse] = []
