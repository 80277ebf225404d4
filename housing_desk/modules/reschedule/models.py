"""
Reschedule Module - Database Models

A proposal by one party of a request (resident or executor) to move the
visit to a new date/time. The other party accepts or rejects it.
"""
import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from housing_desk.core.models import Base


class RescheduleStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class RescheduleInitiator(str, Enum):
    RESIDENT = "resident"
    EXECUTOR = "executor"


class RescheduleReason(str, Enum):
    BUSY_TIME = "busy_time"
    EMERGENCY = "emergency"
    NOT_AT_HOME = "not_at_home"
    NEED_PREPARATION = "need_preparation"
    OTHER = "other"


class RescheduleRequest(Base):
    __tablename__ = "reschedule_request"

    __table_args__ = (
        Index("idx_reschedule_request_status", "request_id", "status"),
        Index("idx_reschedule_recipient_status", "recipient_id", "status"),
    )

    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("service_request.id", ondelete="CASCADE"),
        nullable=False,
    )

    initiator: Mapped[str] = mapped_column(String(20), nullable=False)
    initiator_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("user.id"), nullable=False)
    initiator_name: Mapped[str] = mapped_column(String(200), nullable=False)

    recipient_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("user.id"), nullable=False)
    recipient_name: Mapped[str] = mapped_column(String(200), nullable=False)
    recipient_role: Mapped[str] = mapped_column(String(20), nullable=False)

    # Schedule at the time of the proposal ("current_*" are SQL keywords)
    current_date: Mapped[date | None] = mapped_column("from_date", Date, nullable=True)
    current_time: Mapped[str | None] = mapped_column("from_time", String(20), nullable=True)

    proposed_date: Mapped[date] = mapped_column(Date, nullable=False)
    proposed_time: Mapped[str] = mapped_column(String(20), nullable=False)

    reason: Mapped[str] = mapped_column(String(30), nullable=False)
    reason_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RescheduleStatus.PENDING.value,
    )
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    response_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<RescheduleRequest {self.request_id} ({self.status})>"
