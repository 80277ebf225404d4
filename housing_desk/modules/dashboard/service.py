"""Dashboard Service - Summary counters for staff."""
from datetime import datetime, time, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.logging import get_logger
from housing_desk.core.models import utc_now
from housing_desk.modules.auth.models import User
from housing_desk.modules.dashboard.schemas import (
    DashboardSummaryResponse,
    ExecutorSummary,
    MarketplaceSummary,
    RequestSummary,
)
from housing_desk.modules.executors.models import Executor, ExecutorStatus
from housing_desk.modules.marketplace.models import MarketplaceOrder, MarketplaceOrderStatus
from housing_desk.modules.requests.models import ACTIVE_STATUSES, RequestStatus, ServiceRequest

logger = get_logger(__name__)

# Orders a manager still has to move along
ORDERS_AWAITING_ACTION = (
    MarketplaceOrderStatus.NEW.value,
    MarketplaceOrderStatus.CONFIRMED.value,
    MarketplaceOrderStatus.PREPARING.value,
    MarketplaceOrderStatus.READY.value,
)


def _start_of_day() -> datetime:
    return datetime.combine(utc_now().date(), time.min, tzinfo=timezone.utc)


class DashboardService:
    """Dashboard analytics service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_summary(self) -> DashboardSummaryResponse:
        summary = DashboardSummaryResponse(
            requests=await self._get_request_summary(),
            executors=await self._get_executor_summary(),
            marketplace=await self._get_marketplace_summary(),
        )
        logger.debug(
            "Dashboard summary built",
            total_requests=summary.requests.total_requests,
            executors=summary.executors.total,
        )
        return summary

    async def _get_request_summary(self) -> RequestSummary:
        rows = await self.db.execute(
            select(ServiceRequest.status, func.count(ServiceRequest.id)).group_by(ServiceRequest.status)
        )
        by_status = {status: count for status, count in rows.all()}

        rows = await self.db.execute(
            select(ServiceRequest.category, func.count(ServiceRequest.id)).group_by(ServiceRequest.category)
        )
        by_category = {category: count for category, count in rows.all()}

        result = await self.db.execute(
            select(func.count(ServiceRequest.id)).where(
                ServiceRequest.status == RequestStatus.COMPLETED.value,
                ServiceRequest.approved_at >= _start_of_day(),
            )
        )

        return RequestSummary(
            total_requests=sum(by_status.values()),
            new_requests=by_status.get(RequestStatus.NEW.value, 0),
            in_progress=sum(by_status.get(s, 0) for s in ACTIVE_STATUSES),
            pending_approval=by_status.get(RequestStatus.PENDING_APPROVAL.value, 0),
            completed_today=result.scalar() or 0,
            cancelled=by_status.get(RequestStatus.CANCELLED.value, 0),
            by_category=by_category,
        )

    async def _get_executor_summary(self) -> ExecutorSummary:
        rows = await self.db.execute(
            select(Executor.status, func.count(Executor.id))
            .join(User, User.id == Executor.user_id)
            .where(User.is_active.is_(True))
            .group_by(Executor.status)
        )
        by_status = {status: count for status, count in rows.all()}
        return ExecutorSummary(
            total=sum(by_status.values()),
            available=by_status.get(ExecutorStatus.AVAILABLE.value, 0),
            busy=by_status.get(ExecutorStatus.BUSY.value, 0),
            offline=by_status.get(ExecutorStatus.OFFLINE.value, 0),
        )

    async def _get_marketplace_summary(self) -> MarketplaceSummary:
        rows = await self.db.execute(
            select(MarketplaceOrder.status, func.count(MarketplaceOrder.id)).group_by(MarketplaceOrder.status)
        )
        by_status = {status: count for status, count in rows.all()}

        result = await self.db.execute(
            select(func.count(MarketplaceOrder.id)).where(
                MarketplaceOrder.delivered_at >= _start_of_day(),
            )
        )
        return MarketplaceSummary(
            awaiting_action=sum(by_status.get(s, 0) for s in ORDERS_AWAITING_ACTION),
            delivering=by_status.get(MarketplaceOrderStatus.DELIVERING.value, 0),
            delivered_today=result.scalar() or 0,
        )
