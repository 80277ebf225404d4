"""
Requests Module - Database Models

Service requests filed by residents and worked by executors.
"""
import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from housing_desk.core.models import Base


class RequestStatus(str, Enum):
    """Lifecycle of a service request, in order."""
    NEW = "new"
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    PENDING_APPROVAL = "pending_approval"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RequestPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class CancelledBy(str, Enum):
    RESIDENT = "resident"
    EXECUTOR = "executor"
    MANAGER = "manager"
    ADMIN = "admin"


# Statuses that count towards an executor's load
ACTIVE_STATUSES: tuple[str, ...] = (
    RequestStatus.ASSIGNED.value,
    RequestStatus.ACCEPTED.value,
    RequestStatus.IN_PROGRESS.value,
)

TERMINAL_STATUSES: tuple[str, ...] = (
    RequestStatus.COMPLETED.value,
    RequestStatus.CANCELLED.value,
)


class ServiceRequest(Base):
    """
    A maintenance ticket.

    Resident and executor contact details are snapshotted so the request
    keeps reading correctly after profile edits.
    """
    __tablename__ = "service_request"

    __table_args__ = (
        Index("idx_request_status_category", "status", "category"),
        Index("idx_request_executor_status", "executor_id", "status"),
        Index("idx_request_resident_status", "resident_id", "status"),
    )

    number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    priority: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=RequestPriority.MEDIUM.value,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RequestStatus.NEW.value,
    )

    # Resident
    resident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
    )
    resident_name: Mapped[str] = mapped_column(String(200), nullable=False)
    resident_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    apartment: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Executor
    executor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    executor_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    executor_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    # Scheduling
    scheduled_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    scheduled_time: Mapped[str | None] = mapped_column(String(20), nullable=True)
    access_info: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Lifecycle
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Work timer (seconds)
    work_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    paused_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_paused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_paused_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Feedback
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Cancellation
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(String(20), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Rejection by resident/staff after completion
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Decline by executor
    declined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decline_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ServiceRequest #{self.number} ({self.status})>"
