"""
Executors Module - Service Layer

Profile management plus the load/rating bookkeeping that request
transitions trigger. Bookkeeping methods never commit; the request
service commits them together with the transition.
"""
import uuid
from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.exceptions import ForbiddenError, NotFoundError
from housing_desk.core.logging import get_logger
from housing_desk.core.models import utc_now
from housing_desk.modules.auth.models import User, UserRole
from housing_desk.modules.auth.schemas import UserCreate
from housing_desk.modules.auth.service import AuthService
from housing_desk.modules.executors.models import Executor, ExecutorSpecialization, ExecutorStatus
from housing_desk.modules.executors.schemas import (
    ExecutorCreate,
    ExecutorStatsResponse,
    ExecutorUpdate,
)
from housing_desk.modules.requests.models import ACTIVE_STATUSES, RequestStatus, ServiceRequest

logger = get_logger(__name__)


class ExecutorService:
    """Executor profiles, availability and statistics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: ExecutorCreate) -> Executor:
        user = await AuthService(self.db).create_user(
            UserCreate(
                login=data.login,
                password=data.password,
                name=data.name,
                phone=data.phone,
                role=UserRole.EXECUTOR,
            ),
            commit=False,
        )
        executor = Executor(
            user_id=user.id,
            specialization=data.specialization.value,
            status=ExecutorStatus.AVAILABLE.value,
            rating=5.0,
            completed_count=0,
            active_requests=0,
            total_earnings=0,
        )
        executor.user = user
        self.db.add(executor)
        await self.db.commit()

        logger.info(
            "Executor created",
            user_id=str(user.id),
            specialization=executor.specialization,
        )
        return executor

    async def list_executors(
        self,
        specialization: ExecutorSpecialization | None = None,
        active_only: bool = True,
    ) -> list[Executor]:
        query = select(Executor).join(Executor.user)
        if specialization:
            query = query.where(Executor.specialization == specialization.value)
        if active_only:
            query = query.where(User.is_active.is_(True))
        result = await self.db.execute(query.order_by(User.name))
        return list(result.scalars().unique().all())

    async def get_by_user_id(self, user_id: uuid.UUID) -> Executor | None:
        result = await self.db.execute(select(Executor).where(Executor.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_or_404(self, user_id: uuid.UUID) -> Executor:
        executor = await self.get_by_user_id(user_id)
        if not executor:
            raise NotFoundError("Executor", user_id)
        return executor

    async def update(self, user_id: uuid.UUID, data: ExecutorUpdate) -> Executor:
        executor = await self.get_or_404(user_id)
        changes = data.model_dump(exclude_unset=True)

        if "specialization" in changes and changes["specialization"] is not None:
            executor.specialization = changes.pop("specialization").value
        for field in ("name", "phone", "is_active"):
            if field in changes:
                setattr(executor.user, field, changes[field])

        await self.db.commit()
        logger.info("Executor updated", user_id=str(user_id), fields=sorted(data.model_fields_set))
        return executor

    async def update_status(
        self,
        user_id: uuid.UUID,
        status: ExecutorStatus,
        actor: User,
    ) -> Executor:
        """Availability toggle, by the executor themselves or by staff."""
        if actor.id != user_id and not actor.is_staff:
            raise ForbiddenError("Only the executor or staff can change availability")

        executor = await self.get_or_404(user_id)
        previous = executor.status
        executor.status = status.value
        await self.db.commit()

        logger.info(
            "Executor status changed",
            user_id=str(user_id),
            from_status=previous,
            to_status=executor.status,
        )
        return executor

    async def refresh_load(self, user_id: uuid.UUID | None) -> Executor | None:
        """
        Recount active requests and derive busy/available.

        Offline executors stay offline whatever their load.
        """
        if user_id is None:
            return None
        executor = await self.get_by_user_id(user_id)
        if not executor:
            return None

        await self.db.flush()
        result = await self.db.execute(
            select(func.count(ServiceRequest.id)).where(
                ServiceRequest.executor_id == user_id,
                ServiceRequest.status.in_(ACTIVE_STATUSES),
            )
        )
        executor.active_requests = result.scalar() or 0
        if executor.status != ExecutorStatus.OFFLINE.value:
            executor.status = (
                ExecutorStatus.BUSY.value if executor.active_requests > 0
                else ExecutorStatus.AVAILABLE.value
            )
        return executor

    async def record_completion(self, user_id: uuid.UUID | None) -> None:
        """Count an approved request towards the executor's totals."""
        executor = await self.get_by_user_id(user_id) if user_id else None
        if not executor:
            return
        executor.completed_count = (executor.completed_count or 0) + 1

    async def recompute_rating(self, user_id: uuid.UUID | None) -> float | None:
        """Rating = mean of rated completed requests, one decimal."""
        executor = await self.get_by_user_id(user_id) if user_id else None
        if not executor:
            return None

        await self.db.flush()
        result = await self.db.execute(
            select(func.avg(ServiceRequest.rating)).where(
                ServiceRequest.executor_id == user_id,
                ServiceRequest.status == RequestStatus.COMPLETED.value,
                ServiceRequest.rating.is_not(None),
            )
        )
        average = result.scalar()
        if average is not None:
            executor.rating = round(float(average), 1)
        return executor.rating

    async def get_stats(self, user_id: uuid.UUID) -> ExecutorStatsResponse:
        executor = await self.get_or_404(user_id)

        breakdown_rows = await self.db.execute(
            select(ServiceRequest.status, func.count(ServiceRequest.id))
            .where(ServiceRequest.executor_id == user_id)
            .group_by(ServiceRequest.status)
        )
        status_breakdown = {status: count for status, count in breakdown_rows.all()}

        now = utc_now()
        completed_filter = (
            ServiceRequest.executor_id == user_id,
            ServiceRequest.status == RequestStatus.COMPLETED.value,
        )

        async def _completed_since(days: int) -> int:
            result = await self.db.execute(
                select(func.count(ServiceRequest.id)).where(
                    *completed_filter,
                    ServiceRequest.approved_at >= now - timedelta(days=days),
                )
            )
            return result.scalar() or 0

        avg_result = await self.db.execute(
            select(func.avg(ServiceRequest.work_duration)).where(
                *completed_filter,
                ServiceRequest.work_duration.is_not(None),
            )
        )
        avg_duration = avg_result.scalar()

        return ExecutorStatsResponse(
            total_requests=sum(status_breakdown.values()),
            total_completed=status_breakdown.get(RequestStatus.COMPLETED.value, 0),
            this_week=await _completed_since(7),
            this_month=await _completed_since(30),
            rating=executor.rating,
            avg_completion_time=round(float(avg_duration)) if avg_duration is not None else 0,
            status_breakdown=status_breakdown,
        )
