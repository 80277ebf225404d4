"""
Activity Module - Database Models
"""
import uuid

from sqlalchemy import ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from housing_desk.core.models import Base


class ActivityLog(Base):
    """
    One line of the staff activity feed.

    The actor's name and role are copied at write time so the feed still
    reads correctly after a user is renamed or deactivated.
    """
    __tablename__ = "activity_log"

    __table_args__ = (
        Index("idx_activity_request_created", "request_id", "created_at"),
    )

    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    user_name: Mapped[str] = mapped_column(String(200), nullable=False)
    user_role: Mapped[str] = mapped_column(String(30), nullable=False)

    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    request_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
