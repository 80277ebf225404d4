"""
Executors Module - Database Models

An executor is a `User` with role `executor` plus this profile row.
Requests and orders point at the executor's user id.
"""
import uuid
from enum import Enum

from sqlalchemy import Float, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from housing_desk.core.models import Base
from housing_desk.modules.auth.models import User


class ExecutorSpecialization(str, Enum):
    """Trade of an executor; doubles as the request category."""
    PLUMBER = "plumber"
    ELECTRICIAN = "electrician"
    ELEVATOR = "elevator"
    INTERCOM = "intercom"
    CLEANING = "cleaning"
    SECURITY = "security"
    CARPENTER = "carpenter"
    BOILER = "boiler"
    AC = "ac"
    COURIER = "courier"
    OTHER = "other"


class ExecutorStatus(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class Executor(Base):
    """Executor profile: specialization, availability and running totals."""
    __tablename__ = "executor"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    specialization: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ExecutorStatus.AVAILABLE.value,
    )

    rating: Mapped[float] = mapped_column(Float, nullable=False, default=5.0)
    completed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active_requests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_earnings: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False),
        nullable=False,
        default=0,
    )

    user: Mapped[User] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Executor {self.user_id} ({self.specialization}, {self.status})>"
