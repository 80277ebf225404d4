"""
Activity Module - Service Layer
"""
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.modules.activity.models import ActivityLog
from housing_desk.modules.auth.models import User


class ActivityService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        actor: User | None,
        action: str,
        details: str | None = None,
        request_id: uuid.UUID | None = None,
    ) -> ActivityLog:
        """Append an entry; committed together with the caller's change."""
        entry = ActivityLog(
            user_id=actor.id if actor else None,
            user_name=actor.name if actor else "system",
            user_role=actor.role if actor else "system",
            action=action,
            details=details,
            request_id=request_id,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def list_entries(
        self,
        request_id: uuid.UUID | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[ActivityLog], int]:
        query = select(ActivityLog)
        count_query = select(func.count(ActivityLog.id))
        if request_id:
            query = query.where(ActivityLog.request_id == request_id)
            count_query = count_query.where(ActivityLog.request_id == request_id)

        total = (await self.db.execute(count_query)).scalar() or 0
        query = (
            query.order_by(ActivityLog.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total
