"""
Requests Module - Service Layer

Owns the request state machine. Every transition:
1. checks the actor and the current status,
2. mutates the request and the executor bookkeeping,
3. queues notifications and an activity entry in the same session,
4. commits, then records metrics and pushes an SSE event.
"""
import uuid
from collections.abc import Iterable

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.config import settings
from housing_desk.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from housing_desk.core.logging import get_logger
from housing_desk.core.metrics import record_request_transition
from housing_desk.core.models import utc_now
from housing_desk.modules.activity.service import ActivityService
from housing_desk.modules.auth.models import ADMIN_ROLES, OFFICE_NOTIFY_ROLES, User
from housing_desk.modules.auth.service import AuthService
from housing_desk.modules.executors.service import ExecutorService
from housing_desk.modules.notifications.models import NotificationType
from housing_desk.modules.notifications.service import NotificationService
from housing_desk.modules.requests.board import build_executor_board, build_resident_view
from housing_desk.modules.requests.models import (
    CancelledBy,
    RequestStatus,
    ServiceRequest,
)
from housing_desk.modules.requests.schemas import (
    ExecutorBoardResponse,
    RequestCreate,
    ResidentRequestsResponse,
)
from housing_desk.modules.requests.timer import elapsed_seconds, paused_interval
from housing_desk.modules.requests.workflow import RequestOperation, ensure_transition
from housing_desk.modules.reschedule.service import RescheduleService
from housing_desk.modules.sse.broker import broker

logger = get_logger(__name__)


class RequestService:
    """Service request lifecycle."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)
        self.activity = ActivityService(db)
        self.executors = ExecutorService(db)

    # ============== Queries ==============

    async def get_by_id(self, request_id: uuid.UUID) -> ServiceRequest | None:
        result = await self.db.execute(select(ServiceRequest).where(ServiceRequest.id == request_id))
        return result.scalar_one_or_none()

    async def get_or_404(self, request_id: uuid.UUID) -> ServiceRequest:
        request = await self.get_by_id(request_id)
        if not request:
            raise NotFoundError("Request", request_id)
        return request

    async def get_for_user(self, request_id: uuid.UUID, user: User) -> ServiceRequest:
        """Load a request the user is allowed to see."""
        request = await self.get_or_404(request_id)
        if user.is_staff or user.id in (request.resident_id, request.executor_id):
            return request
        if user.is_executor and request.status == RequestStatus.NEW.value:
            executor = await self.executors.get_by_user_id(user.id)
            if executor and executor.specialization == request.category:
                return request
        raise ForbiddenError("You do not have access to this request")

    async def list_requests(
        self,
        status: RequestStatus | None = None,
        category: str | None = None,
        executor_id: uuid.UUID | None = None,
        resident_id: uuid.UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[ServiceRequest], int]:
        """Staff list: filtered, newest first, paginated."""
        query = select(ServiceRequest)
        count_query = select(func.count(ServiceRequest.id))

        filters = []
        if status:
            filters.append(ServiceRequest.status == status.value)
        if category:
            filters.append(ServiceRequest.category == category)
        if executor_id:
            filters.append(ServiceRequest.executor_id == executor_id)
        if resident_id:
            filters.append(ServiceRequest.resident_id == resident_id)
        if filters:
            query = query.where(*filters)
            count_query = count_query.where(*filters)

        total = (await self.db.execute(count_query)).scalar() or 0
        query = (
            query.order_by(ServiceRequest.created_at.desc(), ServiceRequest.number.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def executor_board(self, user: User) -> ExecutorBoardResponse:
        executor = await self.executors.get_by_user_id(user.id)
        if not executor:
            raise NotFoundError("Executor", user.id)

        result = await self.db.execute(
            select(ServiceRequest)
            .where(
                or_(
                    ServiceRequest.executor_id == user.id,
                    (ServiceRequest.status == RequestStatus.NEW.value)
                    & (ServiceRequest.category == executor.specialization),
                )
            )
            .order_by(ServiceRequest.created_at.desc())
        )
        pending = await RescheduleService(self.db).pending_for_user(user.id)
        return build_executor_board(
            result.scalars().all(),
            user.id,
            executor.specialization,
            pending_reschedules=pending,
        )

    async def resident_view(self, user: User) -> ResidentRequestsResponse:
        result = await self.db.execute(
            select(ServiceRequest)
            .where(ServiceRequest.resident_id == user.id)
            .order_by(ServiceRequest.created_at.desc())
        )
        pending = await RescheduleService(self.db).pending_for_user(user.id)
        return build_resident_view(result.scalars().all(), user.id, pending_reschedules=pending)

    # ============== Create ==============

    async def _next_number(self) -> int:
        result = await self.db.execute(select(func.max(ServiceRequest.number)))
        current = result.scalar()
        return max(current + 1, settings.request_number_start) if current else settings.request_number_start

    async def create(self, data: RequestCreate, actor: User) -> ServiceRequest:
        """File a request; staff may file on behalf of a resident."""
        if actor.is_resident:
            resident = actor
        elif actor.is_staff:
            if not data.resident_id:
                raise ValidationError("resident_id is required when staff file a request")
            resident = await AuthService(self.db).get_user_by_id(data.resident_id)
            if not resident or not resident.is_resident:
                raise NotFoundError("Resident", data.resident_id)
        else:
            raise ForbiddenError("Only residents and staff can file requests")

        request = ServiceRequest(
            number=await self._next_number(),
            title=data.title,
            description=data.description,
            category=data.category.value,
            priority=data.priority.value,
            status=RequestStatus.NEW.value,
            resident_id=resident.id,
            resident_name=resident.name,
            resident_phone=resident.phone,
            address=resident.address,
            apartment=resident.apartment,
            scheduled_date=data.scheduled_date,
            scheduled_time=data.scheduled_time,
            access_info=data.access_info,
            is_paused=False,
            total_paused_seconds=0,
            rejection_count=0,
        )
        self.db.add(request)
        await self.db.flush()

        await self.notifications.notify_office(
            NotificationType.REQUEST_CREATED,
            "New request",
            f"Request #{request.number}: {request.title}",
            request_id=request.id,
        )
        await self.activity.log(actor, "created", f"Request #{request.number}", request.id)
        await self.db.commit()

        logger.info(
            "Request created",
            request_id=str(request.id),
            number=request.number,
            category=request.category,
        )
        self._publish(request, None)
        return request

    # ============== Transitions ==============

    async def assign(
        self,
        request_id: uuid.UUID,
        actor: User,
        executor_id: uuid.UUID | None = None,
    ) -> ServiceRequest:
        """
        Assign to an executor of the matching specialization.

        Staff pick the executor and may reassign; an executor with no
        `executor_id` takes a request for themselves, from the pool only.
        """
        request = await self.get_or_404(request_id)

        self_assign = False
        if actor.is_staff:
            if executor_id is None:
                raise ValidationError("executor_id is required")
        elif actor.is_executor:
            if executor_id not in (None, actor.id):
                raise ForbiddenError("Executors can only take requests for themselves")
            executor_id = actor.id
            self_assign = True
        else:
            raise ForbiddenError("Only staff or executors can assign requests")

        previous = request.status
        target = ensure_transition(previous, RequestOperation.ASSIGN)
        if self_assign and previous != RequestStatus.NEW.value:
            raise InvalidTransitionError(
                "Request", previous, target.value, [RequestStatus.NEW.value],
            )

        executor = await self.executors.get_by_user_id(executor_id)
        if not executor or not executor.user.is_active:
            raise NotFoundError("Executor", executor_id)
        if executor.specialization != request.category:
            raise ConflictError(
                f"Executor specialization '{executor.specialization}' does not match "
                f"request category '{request.category}'",
                code="SPECIALIZATION_MISMATCH",
                details={"specialization": executor.specialization, "category": request.category},
            )

        previous_executor_id = request.executor_id
        request.status = target.value
        request.executor_id = executor.user_id
        request.executor_name = executor.user.name
        request.executor_phone = executor.user.phone
        request.assigned_at = utc_now()
        request.accepted_at = None

        await self.executors.refresh_load(executor.user_id)
        if previous_executor_id and previous_executor_id != executor.user_id:
            # proposals with the previous executor no longer bind anyone
            await RescheduleService(self.db).close_pending_for_request(request.id)
            await self.executors.refresh_load(previous_executor_id)

        message = f"Request #{request.number} assigned to {executor.user.name}"
        await self.notifications.notify(
            request.resident_id, NotificationType.REQUEST_ASSIGNED,
            "Executor assigned", message, request_id=request.id,
        )
        if self_assign:
            await self.notifications.notify_office(
                NotificationType.REQUEST_ASSIGNED,
                "Request taken",
                f"{executor.user.name} took request #{request.number}",
                request_id=request.id,
            )
        else:
            await self.notifications.notify(
                executor.user_id, NotificationType.REQUEST_ASSIGNED,
                "New assignment", f"Request #{request.number}: {request.title}",
                request_id=request.id,
            )

        await self._finish(
            request, actor, previous,
            action="taken" if self_assign else "assigned",
            details=message,
            extra_users=[previous_executor_id],
        )
        return request

    async def accept(self, request_id: uuid.UUID, actor: User) -> ServiceRequest:
        request = await self.get_or_404(request_id)
        self._require_assigned_executor(request, actor)
        previous = request.status
        request.status = ensure_transition(previous, RequestOperation.ACCEPT).value
        request.accepted_at = utc_now()

        message = f"{actor.name} accepted request #{request.number}"
        await self.notifications.notify(
            request.resident_id, NotificationType.REQUEST_ACCEPTED,
            "Request accepted", message, request_id=request.id,
        )
        await self.notifications.notify_office(
            NotificationType.REQUEST_ACCEPTED, "Request accepted", message, request_id=request.id,
        )
        await self._finish(request, actor, previous, action="accepted", details=message)
        return request

    async def start(self, request_id: uuid.UUID, actor: User) -> ServiceRequest:
        """Start work; an executor may only have one request in progress."""
        request = await self.get_or_404(request_id)
        self._require_assigned_executor(request, actor)
        previous = request.status
        target = ensure_transition(previous, RequestOperation.START)
        await self._ensure_executor_free(actor.id, request)

        request.status = target.value
        request.started_at = utc_now()
        request.is_paused = False
        request.paused_at = None
        request.total_paused_seconds = 0

        await self.notifications.notify(
            request.resident_id, NotificationType.REQUEST_STARTED,
            "Work started", f"{actor.name} started work on request #{request.number}",
            request_id=request.id,
        )
        await self._finish(request, actor, previous, action="started")
        return request

    async def pause(self, request_id: uuid.UUID, actor: User) -> ServiceRequest:
        request = await self.get_or_404(request_id)
        self._require_assigned_executor(request, actor)
        previous = request.status
        ensure_transition(previous, RequestOperation.PAUSE)
        if request.is_paused:
            raise ConflictError("Work is already paused", code="ALREADY_PAUSED")

        request.is_paused = True
        request.paused_at = utc_now()
        await self._finish(request, actor, previous, action="paused")
        return request

    async def resume(self, request_id: uuid.UUID, actor: User) -> ServiceRequest:
        """Resume work; the paused interval is added to the paused total."""
        request = await self.get_or_404(request_id)
        self._require_assigned_executor(request, actor)
        previous = request.status
        ensure_transition(previous, RequestOperation.RESUME)
        if not request.is_paused:
            raise ConflictError("Work is not paused", code="NOT_PAUSED")

        self._fold_pause(request)
        await self._finish(request, actor, previous, action="resumed")
        return request

    async def complete(self, request_id: uuid.UUID, actor: User) -> ServiceRequest:
        """Finish work; the duration is computed here, not by the client."""
        request = await self.get_or_404(request_id)
        self._require_assigned_executor(request, actor)
        previous = request.status
        target = ensure_transition(previous, RequestOperation.COMPLETE)

        now = utc_now()
        if request.is_paused:
            self._fold_pause(request, now)
        request.work_duration = elapsed_seconds(
            request.started_at,
            request.total_paused_seconds,
            False,
            None,
            now,
        )
        request.status = target.value
        request.completed_at = now

        await RescheduleService(self.db).close_pending_for_request(request.id)
        await self.executors.refresh_load(request.executor_id)

        message = f"Request #{request.number} is done and waits for your approval"
        await self.notifications.notify(
            request.resident_id, NotificationType.REQUEST_COMPLETED,
            "Work completed", message, request_id=request.id,
        )
        await self.notifications.notify_office(
            NotificationType.REQUEST_COMPLETED,
            "Work completed",
            f"{actor.name} completed request #{request.number}",
            request_id=request.id,
        )
        await self._finish(
            request, actor, previous,
            action="completed",
            details=f"Work duration {request.work_duration}s",
        )
        return request

    async def approve(
        self,
        request_id: uuid.UUID,
        actor: User,
        rating: int | None = None,
        feedback: str | None = None,
    ) -> ServiceRequest:
        request = await self.get_or_404(request_id)
        self._require_owner_or_staff(request, actor)
        previous = request.status
        request.status = ensure_transition(previous, RequestOperation.APPROVE).value
        request.approved_at = utc_now()
        if rating is not None:
            request.rating = rating
        if feedback is not None:
            request.feedback = feedback

        await self.executors.record_completion(request.executor_id)
        if rating is not None:
            await self.executors.recompute_rating(request.executor_id)

        details = f"Request #{request.number} approved"
        if rating is not None:
            details += f", rating {rating}/5"
        await self.notifications.notify(
            request.executor_id, NotificationType.REQUEST_APPROVED,
            "Work approved", details, request_id=request.id,
        )
        await self._finish(request, actor, previous, action="approved", details=details)
        return request

    async def reject(self, request_id: uuid.UUID, actor: User, reason: str) -> ServiceRequest:
        """
        Send completed work back to the executor.

        The request goes back to in_progress, so the executor must not be
        working on another one. The wait for approval counts as paused time.
        """
        request = await self.get_or_404(request_id)
        self._require_owner_or_staff(request, actor)
        previous = request.status
        target = ensure_transition(previous, RequestOperation.REJECT)
        await self._ensure_executor_free(request.executor_id, request)

        now = utc_now()
        request.status = target.value
        request.rejected_at = now
        request.rejection_reason = reason
        request.rejection_count = (request.rejection_count or 0) + 1
        request.total_paused_seconds = (request.total_paused_seconds or 0) + paused_interval(
            request.completed_at, now,
        )
        request.completed_at = None
        request.work_duration = None
        request.is_paused = False
        request.paused_at = None

        await self.executors.refresh_load(request.executor_id)

        details = f"Request #{request.number} returned: {reason}"
        await self.notifications.notify(
            request.executor_id, NotificationType.REQUEST_REJECTED,
            "Work rejected", details, request_id=request.id,
        )
        await self._finish(request, actor, previous, action="rejected", details=details)
        return request

    async def cancel(
        self,
        request_id: uuid.UUID,
        actor: User,
        reason: str | None = None,
    ) -> ServiceRequest:
        """
        Cancel a request.

        Residents may cancel their own request until work starts; staff
        may cancel anything that has not completed.
        """
        request = await self.get_or_404(request_id)
        if actor.is_staff:
            cancelled_by = CancelledBy.ADMIN if actor.role in ADMIN_ROLES else CancelledBy.MANAGER
        elif actor.id == request.resident_id:
            cancelled_by = CancelledBy.RESIDENT
        else:
            raise ForbiddenError("Only the resident or staff can cancel this request")

        previous = request.status
        request.status = ensure_transition(
            previous, RequestOperation.CANCEL, staff=actor.is_staff,
        ).value
        request.cancelled_at = utc_now()
        request.cancelled_by = cancelled_by.value
        request.cancellation_reason = reason
        request.is_paused = False
        request.paused_at = None

        await RescheduleService(self.db).close_pending_for_request(request.id)
        await self.executors.refresh_load(request.executor_id)

        details = f"Request #{request.number} cancelled by {cancelled_by.value}"
        if reason:
            details += f": {reason}"
        if cancelled_by is not CancelledBy.RESIDENT:
            await self.notifications.notify(
                request.resident_id, NotificationType.REQUEST_CANCELLED,
                "Request cancelled", details, request_id=request.id,
            )
        await self.notifications.notify(
            request.executor_id, NotificationType.REQUEST_CANCELLED,
            "Request cancelled", details, request_id=request.id,
        )
        await self.notifications.notify_office(
            NotificationType.REQUEST_CANCELLED, "Request cancelled", details,
            request_id=request.id, exclude=actor.id,
        )
        await self._finish(request, actor, previous, action="cancelled", details=details)
        return request

    async def decline(self, request_id: uuid.UUID, actor: User, reason: str) -> ServiceRequest:
        """Executor hands the request back; it returns to the pool as new."""
        request = await self.get_or_404(request_id)
        self._require_assigned_executor(request, actor)
        previous = request.status
        request.status = ensure_transition(previous, RequestOperation.DECLINE).value

        executor_id = request.executor_id
        request.executor_id = None
        request.executor_name = None
        request.executor_phone = None
        request.assigned_at = None
        request.accepted_at = None
        request.started_at = None
        request.is_paused = False
        request.paused_at = None
        request.total_paused_seconds = 0
        request.declined_at = utc_now()
        request.decline_reason = reason

        await RescheduleService(self.db).close_pending_for_request(request.id)
        await self.executors.refresh_load(executor_id)

        details = f"{actor.name} declined request #{request.number}: {reason}"
        await self.notifications.notify(
            request.resident_id, NotificationType.REQUEST_DECLINED,
            "Executor declined",
            f"The executor declined request #{request.number}; it is back in the queue",
            request_id=request.id,
        )
        await self.notifications.notify_office(
            NotificationType.REQUEST_DECLINED, "Request declined", details, request_id=request.id,
        )
        await self._finish(
            request, actor, previous,
            action="declined",
            details=details,
            extra_users=[executor_id],
        )
        return request

    async def rate(
        self,
        request_id: uuid.UUID,
        actor: User,
        rating: int,
        feedback: str | None = None,
    ) -> ServiceRequest:
        request = await self.get_or_404(request_id)
        if actor.id != request.resident_id:
            raise ForbiddenError("Only the resident can rate this request")
        previous = request.status
        ensure_transition(previous, RequestOperation.RATE)

        request.rating = rating
        if feedback is not None:
            request.feedback = feedback
        await self.executors.recompute_rating(request.executor_id)

        await self._finish(
            request, actor, previous,
            action="rated",
            details=f"Request #{request.number}, rating {rating}/5",
        )
        return request

    # ============== Helpers ==============

    @staticmethod
    def _require_assigned_executor(request: ServiceRequest, actor: User) -> None:
        if request.executor_id is None or actor.id != request.executor_id:
            raise ForbiddenError("Only the assigned executor can do this")

    async def _ensure_executor_free(self, executor_id: uuid.UUID | None, request: ServiceRequest) -> None:
        """An executor works on at most one request at a time."""
        busy = await self.db.execute(
            select(ServiceRequest.number).where(
                ServiceRequest.executor_id == executor_id,
                ServiceRequest.status == RequestStatus.IN_PROGRESS.value,
                ServiceRequest.id != request.id,
            )
        )
        active_number = busy.scalars().first()
        if active_number is not None:
            raise ConflictError(
                f"Request #{active_number} is already in progress for this executor",
                code="EXECUTOR_BUSY",
                details={"active_request_number": active_number},
            )

    @staticmethod
    def _require_owner_or_staff(request: ServiceRequest, actor: User) -> None:
        if not actor.is_staff and actor.id != request.resident_id:
            raise ForbiddenError("Only the resident or staff can do this")

    @staticmethod
    def _fold_pause(request: ServiceRequest, now=None) -> None:
        request.total_paused_seconds = (request.total_paused_seconds or 0) + paused_interval(
            request.paused_at, now,
        )
        request.is_paused = False
        request.paused_at = None

    async def _finish(
        self,
        request: ServiceRequest,
        actor: User,
        previous_status: str,
        action: str,
        details: str | None = None,
        extra_users: Iterable[uuid.UUID | None] = (),
    ) -> None:
        await self.activity.log(
            actor,
            action,
            details or f"Request #{request.number}",
            request.id,
        )
        await self.db.commit()
        await self.db.refresh(request)

        if previous_status != request.status:
            record_request_transition(previous_status, request.status)
        logger.info(
            "Request transition",
            request_id=str(request.id),
            number=request.number,
            action=action,
            from_status=previous_status,
            to_status=request.status,
            actor_id=str(actor.id),
        )
        self._publish(request, previous_status, extra_users)

    @staticmethod
    def _publish(
        request: ServiceRequest,
        previous_status: str | None,
        extra_users: Iterable[uuid.UUID | None] = (),
    ) -> None:
        broker.publish(
            "request.updated",
            {
                "request_id": str(request.id),
                "number": request.number,
                "status": request.status,
                "previous_status": previous_status,
                "executor_id": str(request.executor_id) if request.executor_id else None,
            },
            user_ids=[request.resident_id, request.executor_id, *extra_users],
            roles=OFFICE_NOTIFY_ROLES,
        )
