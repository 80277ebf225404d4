"""
Reschedule Module - Pydantic Schemas
"""
import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from housing_desk.modules.reschedule.models import RescheduleReason


class RescheduleCreate(BaseModel):
    proposed_date: date
    proposed_time: str = Field(..., min_length=1, max_length=20, examples=["14:00"])
    reason: RescheduleReason
    reason_text: str | None = Field(None, max_length=2000)


class RescheduleRespond(BaseModel):
    accepted: bool
    response_note: str | None = Field(None, max_length=2000)


class RescheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    request_id: uuid.UUID
    initiator: str
    initiator_id: uuid.UUID
    initiator_name: str
    recipient_id: uuid.UUID
    recipient_name: str
    recipient_role: str
    current_date: date | None
    current_time: str | None
    proposed_date: date
    proposed_time: str
    reason: str
    reason_text: str | None
    status: str
    responded_at: datetime | None
    response_note: str | None
    expires_at: datetime
    created_at: datetime


class RequestRescheduleState(BaseModel):
    """Everything the request detail view shows about rescheduling."""
    active: RescheduleResponse | None
    confirmed: RescheduleResponse | None
    history: list[RescheduleResponse]
