"""
Reschedule Module - Service Layer

Proposal handshake between the resident and the assigned executor:
propose -> (accept | reject | expire). At most one proposal per request
is pending at any time.
"""
import uuid
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.config import settings
from housing_desk.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
)
from housing_desk.core.logging import get_logger
from housing_desk.core.metrics import record_reschedule
from housing_desk.core.models import as_utc, utc_now
from housing_desk.modules.activity.service import ActivityService
from housing_desk.modules.auth.models import User
from housing_desk.modules.notifications.models import NotificationType
from housing_desk.modules.notifications.service import NotificationService
from housing_desk.modules.requests.models import ServiceRequest
from housing_desk.modules.requests.workflow import RESCHEDULABLE
from housing_desk.modules.reschedule.models import (
    RescheduleInitiator,
    RescheduleRequest,
    RescheduleStatus,
)
from housing_desk.modules.reschedule.schemas import RescheduleCreate
from housing_desk.modules.sse.broker import broker

logger = get_logger(__name__)


class RescheduleService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    async def get_or_404(self, reschedule_id: uuid.UUID) -> RescheduleRequest:
        result = await self.db.execute(
            select(RescheduleRequest).where(RescheduleRequest.id == reschedule_id)
        )
        reschedule = result.scalar_one_or_none()
        if not reschedule:
            raise NotFoundError("RescheduleRequest", reschedule_id)
        return reschedule

    # ============== Queries ==============

    async def pending_for_user(self, user_id: uuid.UUID) -> list[RescheduleRequest]:
        """Unexpired proposals waiting for this user's answer."""
        result = await self.db.execute(
            select(RescheduleRequest)
            .where(
                RescheduleRequest.recipient_id == user_id,
                RescheduleRequest.status == RescheduleStatus.PENDING.value,
                RescheduleRequest.expires_at > utc_now(),
            )
            .order_by(RescheduleRequest.created_at.desc())
        )
        return list(result.scalars().all())

    async def for_request(self, request_id: uuid.UUID) -> list[RescheduleRequest]:
        result = await self.db.execute(
            select(RescheduleRequest)
            .where(RescheduleRequest.request_id == request_id)
            .order_by(RescheduleRequest.created_at.desc())
        )
        return list(result.scalars().all())

    async def active_for_request(self, request_id: uuid.UUID) -> RescheduleRequest | None:
        """The pending, unexpired proposal on a request, if any."""
        result = await self.db.execute(
            select(RescheduleRequest).where(
                RescheduleRequest.request_id == request_id,
                RescheduleRequest.status == RescheduleStatus.PENDING.value,
                RescheduleRequest.expires_at > utc_now(),
            )
        )
        return result.scalars().first()

    async def confirmed_for_request(self, request_id: uuid.UUID) -> RescheduleRequest | None:
        """A proposal accepted within the confirmation window."""
        since = utc_now() - timedelta(hours=settings.reschedule_confirmed_window_hours)
        result = await self.db.execute(
            select(RescheduleRequest)
            .where(
                RescheduleRequest.request_id == request_id,
                RescheduleRequest.status == RescheduleStatus.ACCEPTED.value,
                RescheduleRequest.responded_at >= since,
            )
            .order_by(RescheduleRequest.responded_at.desc())
        )
        return result.scalars().first()

    # ============== Handshake ==============

    async def propose(
        self,
        request: ServiceRequest,
        actor: User,
        data: RescheduleCreate,
    ) -> RescheduleRequest:
        """
        Propose a new visit time to the other party.

        Raises:
            ForbiddenError: actor is neither the resident nor the assigned executor
            ConflictError: request has no executor, is not reschedulable,
                or already has a pending proposal
        """
        if request.executor_id is None:
            raise ConflictError(
                "Request has no executor to reschedule with",
                code="RESCHEDULE_NOT_ALLOWED",
            )
        if actor.id == request.resident_id:
            initiator = RescheduleInitiator.RESIDENT
            recipient_id, recipient_name, recipient_role = (
                request.executor_id, request.executor_name or "", "executor",
            )
        elif actor.id == request.executor_id:
            initiator = RescheduleInitiator.EXECUTOR
            recipient_id, recipient_name, recipient_role = (
                request.resident_id, request.resident_name, "resident",
            )
        else:
            raise ForbiddenError("Only the resident or the assigned executor can reschedule")

        if request.status not in {s.value for s in RESCHEDULABLE}:
            raise ConflictError(
                f"Request in status '{request.status}' cannot be rescheduled",
                code="RESCHEDULE_NOT_ALLOWED",
                details={
                    "current_status": request.status,
                    "allowed_statuses": sorted(s.value for s in RESCHEDULABLE),
                },
            )

        await self._expire_overdue_for_request(request.id)
        if await self.active_for_request(request.id):
            raise ConflictError(
                "A reschedule proposal is already pending for this request",
                code="RESCHEDULE_PENDING",
            )

        now = utc_now()
        reschedule = RescheduleRequest(
            request_id=request.id,
            initiator=initiator.value,
            initiator_id=actor.id,
            initiator_name=actor.name,
            recipient_id=recipient_id,
            recipient_name=recipient_name,
            recipient_role=recipient_role,
            current_date=request.scheduled_date,
            current_time=request.scheduled_time,
            proposed_date=data.proposed_date,
            proposed_time=data.proposed_time,
            reason=data.reason.value,
            reason_text=data.reason_text,
            status=RescheduleStatus.PENDING.value,
            created_at=now,
            expires_at=now + timedelta(hours=settings.reschedule_ttl_hours),
        )
        self.db.add(reschedule)
        await self.db.flush()

        await self.notifications.notify(
            recipient_id,
            NotificationType.RESCHEDULE_REQUESTED,
            "Reschedule requested",
            f"{actor.name} proposes {data.proposed_date.isoformat()} {data.proposed_time} "
            f"for request #{request.number}",
            request_id=request.id,
        )
        await ActivityService(self.db).log(
            actor,
            "reschedule_requested",
            f"Request #{request.number}: {data.proposed_date.isoformat()} {data.proposed_time}",
            request.id,
        )
        await self.db.commit()
        await self.db.refresh(reschedule)

        record_reschedule("proposed")
        logger.info(
            "Reschedule proposed",
            reschedule_id=str(reschedule.id),
            request_id=str(request.id),
            initiator=initiator.value,
        )
        self._publish(reschedule)
        return reschedule

    async def respond(
        self,
        reschedule_id: uuid.UUID,
        actor: User,
        accepted: bool,
        response_note: str | None = None,
    ) -> RescheduleRequest:
        """
        Accept or reject a pending proposal; only the recipient may answer.

        An accepted proposal moves the request's schedule. A proposal past
        its expiry is marked expired and the answer is refused.
        """
        reschedule = await self.get_or_404(reschedule_id)
        if actor.id != reschedule.recipient_id:
            raise ForbiddenError("Only the recipient can answer this proposal")

        result = await self.db.execute(
            select(ServiceRequest).where(ServiceRequest.id == reschedule.request_id)
        )
        request = result.scalar_one()
        if actor.id not in (request.resident_id, request.executor_id):
            raise ForbiddenError("The recipient is no longer a party to this request")

        target = RescheduleStatus.ACCEPTED if accepted else RescheduleStatus.REJECTED
        if reschedule.status != RescheduleStatus.PENDING.value:
            raise InvalidTransitionError(
                "RescheduleRequest",
                reschedule.status,
                target.value,
                [RescheduleStatus.PENDING.value],
            )

        now = utc_now()
        if as_utc(reschedule.expires_at) <= now:
            await self._expire(reschedule)
            await self.db.commit()
            self._publish(reschedule)
            raise ConflictError("This reschedule proposal has expired", code="RESCHEDULE_EXPIRED")

        reschedule.status = target.value
        reschedule.responded_at = now
        reschedule.response_note = response_note
        if accepted:
            request.scheduled_date = reschedule.proposed_date
            request.scheduled_time = reschedule.proposed_time

        when = f"{reschedule.proposed_date.isoformat()} {reschedule.proposed_time}"
        if accepted:
            title, message = "Reschedule accepted", f"{actor.name} accepted {when} for request #{request.number}"
            notification_type = NotificationType.RESCHEDULE_ACCEPTED
        else:
            title, message = "Reschedule rejected", f"{actor.name} rejected {when} for request #{request.number}"
            notification_type = NotificationType.RESCHEDULE_REJECTED
        if response_note:
            message += f": {response_note}"

        await self.notifications.notify(
            reschedule.initiator_id, notification_type, title, message, request_id=request.id,
        )
        await ActivityService(self.db).log(actor, f"reschedule_{target.value}", message, request.id)
        await self.db.commit()
        await self.db.refresh(reschedule)

        record_reschedule(target.value)
        logger.info(
            "Reschedule answered",
            reschedule_id=str(reschedule.id),
            request_id=str(request.id),
            outcome=target.value,
        )
        self._publish(reschedule)
        return reschedule

    # ============== Expiry ==============

    async def close_pending_for_request(self, request_id: uuid.UUID) -> int:
        """Expire open proposals when the request leaves a reschedulable status. No commit."""
        result = await self.db.execute(
            select(RescheduleRequest).where(
                RescheduleRequest.request_id == request_id,
                RescheduleRequest.status == RescheduleStatus.PENDING.value,
            )
        )
        closed = 0
        for reschedule in result.scalars().all():
            reschedule.status = RescheduleStatus.EXPIRED.value
            closed += 1
        return closed

    async def expire_stale(self) -> int:
        """Mark every overdue pending proposal expired and tell its initiator."""
        result = await self.db.execute(
            select(RescheduleRequest).where(
                RescheduleRequest.status == RescheduleStatus.PENDING.value,
                RescheduleRequest.expires_at <= utc_now(),
            )
        )
        stale = list(result.scalars().all())
        for reschedule in stale:
            await self._expire(reschedule)
        await self.db.commit()

        for reschedule in stale:
            self._publish(reschedule)
        if stale:
            logger.info("Expired stale reschedule proposals", count=len(stale))
        return len(stale)

    async def _expire_overdue_for_request(self, request_id: uuid.UUID) -> None:
        result = await self.db.execute(
            select(RescheduleRequest).where(
                RescheduleRequest.request_id == request_id,
                RescheduleRequest.status == RescheduleStatus.PENDING.value,
                RescheduleRequest.expires_at <= utc_now(),
            )
        )
        for reschedule in result.scalars().all():
            await self._expire(reschedule)

    async def _expire(self, reschedule: RescheduleRequest) -> None:
        reschedule.status = RescheduleStatus.EXPIRED.value
        await self.notifications.notify(
            reschedule.initiator_id,
            NotificationType.RESCHEDULE_EXPIRED,
            "Reschedule expired",
            f"{reschedule.recipient_name} did not answer your proposal for "
            f"{reschedule.proposed_date.isoformat()} {reschedule.proposed_time}",
            request_id=reschedule.request_id,
        )
        record_reschedule(RescheduleStatus.EXPIRED.value)

    @staticmethod
    def _publish(reschedule: RescheduleRequest) -> None:
        broker.publish(
            "reschedule.updated",
            {
                "reschedule_id": str(reschedule.id),
                "request_id": str(reschedule.request_id),
                "status": reschedule.status,
            },
            user_ids=[reschedule.initiator_id, reschedule.recipient_id],
        )
