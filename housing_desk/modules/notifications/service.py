"""
Notification Module - Service Layer

Notifications are added to the caller's session and flushed; the caller
owns the commit so a transition and its notifications land together.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.exceptions import NotFoundError
from housing_desk.core.logging import get_logger
from housing_desk.modules.auth.models import OFFICE_NOTIFY_ROLES
from housing_desk.modules.auth.service import AuthService
from housing_desk.modules.notifications.models import Notification, NotificationType

logger = get_logger(__name__)


class NotificationService:
    """In-app notification fan-out and inbox."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: uuid.UUID | None,
        type: NotificationType,
        title: str,
        message: str,
        request_id: uuid.UUID | None = None,
        order_id: uuid.UUID | None = None,
    ) -> Notification | None:
        """Queue one notification for a user."""
        if user_id is None:
            return None

        notification = Notification(
            user_id=user_id,
            type=type.value,
            title=title,
            message=message,
            request_id=request_id,
            order_id=order_id,
            is_read=False,
        )
        self.db.add(notification)
        await self.db.flush()

        logger.debug(
            "Notification queued",
            user_id=str(user_id),
            type=type.value,
        )
        return notification

    async def notify_office(
        self,
        type: NotificationType,
        title: str,
        message: str,
        request_id: uuid.UUID | None = None,
        order_id: uuid.UUID | None = None,
        exclude: uuid.UUID | None = None,
    ) -> int:
        """Notify every active manager and dispatcher."""
        staff = await AuthService(self.db).list_active_by_roles(OFFICE_NOTIFY_ROLES)
        sent = 0
        for user in staff:
            if user.id == exclude:
                continue
            await self.notify(user.id, type, title, message, request_id, order_id)
            sent += 1
        return sent

    async def get_notifications(
        self,
        user_id: uuid.UUID,
        page: int = 1,
        page_size: int = 20,
        unread_only: bool = False,
    ) -> tuple[list[Notification], int]:
        """Get a page of the user's notifications, newest first."""
        query = select(Notification).where(Notification.user_id == user_id)
        count_query = select(func.count(Notification.id)).where(Notification.user_id == user_id)

        if unread_only:
            query = query.where(Notification.is_read.is_(False))
            count_query = count_query.where(Notification.is_read.is_(False))

        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            query.order_by(Notification.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_unread_count(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar() or 0

    async def mark_as_read(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
        result = await self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification", notification_id)

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            await self.db.commit()
            await self.db.refresh(notification)
        return notification

    async def mark_all_as_read(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=datetime.now(timezone.utc))
        )
        await self.db.commit()
        return result.rowcount or 0
