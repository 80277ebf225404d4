"""
Reschedule handshake tests.
"""
from datetime import date, timedelta

import pytest
from sqlalchemy import select

from housing_desk.core.exceptions import ConflictError, ForbiddenError, InvalidTransitionError
from housing_desk.core.models import utc_now
from housing_desk.modules.notifications.models import Notification
from housing_desk.modules.reschedule.schemas import RescheduleCreate
from housing_desk.modules.reschedule.service import RescheduleService
from housing_desk.tasks.reschedule import run_expire_stale

PROPOSED = date(2030, 5, 20)


def proposal(**overrides) -> RescheduleCreate:
    values = dict(proposed_date=PROPOSED, proposed_time="14:00", reason="not_at_home")
    values.update(overrides)
    return RescheduleCreate(**values)


@pytest.fixture
def reschedule_service(db_session) -> RescheduleService:
    return RescheduleService(db_session)


class TestPropose:

    @pytest.mark.asyncio
    async def test_resident_proposes_to_executor(self, reschedule_service, assigned_request, resident, plumber, db_session):
        reschedule = await reschedule_service.propose(assigned_request, resident, proposal())

        assert reschedule.status == "pending"
        assert reschedule.initiator == "resident"
        assert reschedule.recipient_id == plumber.id
        assert reschedule.recipient_role == "executor"
        assert reschedule.expires_at is not None

        result = await db_session.execute(
            select(Notification).where(
                Notification.user_id == plumber.id,
                Notification.type == "reschedule_requested",
            )
        )
        assert result.scalar_one().request_id == assigned_request.id

    @pytest.mark.asyncio
    async def test_executor_proposes_to_resident(self, reschedule_service, in_progress_request, resident, plumber):
        reschedule = await reschedule_service.propose(
            in_progress_request, plumber, proposal(reason="need_preparation"),
        )
        assert reschedule.initiator == "executor"
        assert reschedule.recipient_id == resident.id

    @pytest.mark.asyncio
    async def test_snapshot_of_current_schedule(self, reschedule_service, assigned_request, resident, db_session):
        assigned_request.scheduled_date = date(2030, 5, 18)
        assigned_request.scheduled_time = "10:00"
        await db_session.commit()

        reschedule = await reschedule_service.propose(assigned_request, resident, proposal())

        assert reschedule.current_date == date(2030, 5, 18)
        assert reschedule.current_time == "10:00"

    @pytest.mark.asyncio
    async def test_only_one_pending(self, reschedule_service, assigned_request, resident, plumber):
        await reschedule_service.propose(assigned_request, resident, proposal())
        with pytest.raises(ConflictError) as exc_info:
            await reschedule_service.propose(assigned_request, plumber, proposal(proposed_time="16:00"))
        assert exc_info.value.code == "RESCHEDULE_PENDING"

    @pytest.mark.asyncio
    async def test_unassigned_request_cannot_be_rescheduled(self, reschedule_service, new_request, resident):
        with pytest.raises(ConflictError) as exc_info:
            await reschedule_service.propose(new_request, resident, proposal())
        assert exc_info.value.code == "RESCHEDULE_NOT_ALLOWED"

    @pytest.mark.asyncio
    async def test_outsider_cannot_propose(self, reschedule_service, assigned_request, other_resident):
        with pytest.raises(ForbiddenError):
            await reschedule_service.propose(assigned_request, other_resident, proposal())

    @pytest.mark.asyncio
    async def test_expired_proposal_does_not_block_new_one(self, reschedule_service, assigned_request, resident, db_session):
        first = await reschedule_service.propose(assigned_request, resident, proposal())
        first.expires_at = utc_now() - timedelta(minutes=1)
        await db_session.commit()

        second = await reschedule_service.propose(assigned_request, resident, proposal(proposed_time="18:00"))

        assert second.status == "pending"
        assert (await reschedule_service.get_or_404(first.id)).status == "expired"


class TestRespond:

    @pytest.mark.asyncio
    async def test_accept_moves_schedule(self, reschedule_service, request_service, assigned_request, resident, plumber):
        reschedule = await reschedule_service.propose(assigned_request, resident, proposal())

        answered = await reschedule_service.respond(reschedule.id, plumber, accepted=True, response_note="See you")

        assert answered.status == "accepted"
        assert answered.responded_at is not None
        request = await request_service.get_or_404(assigned_request.id)
        assert request.scheduled_date == PROPOSED
        assert request.scheduled_time == "14:00"

        confirmed = await reschedule_service.confirmed_for_request(assigned_request.id)
        assert confirmed.id == reschedule.id

    @pytest.mark.asyncio
    async def test_reject_keeps_schedule(self, reschedule_service, request_service, assigned_request, resident, plumber, db_session):
        reschedule = await reschedule_service.propose(assigned_request, resident, proposal())

        answered = await reschedule_service.respond(reschedule.id, plumber, accepted=False)

        assert answered.status == "rejected"
        request = await request_service.get_or_404(assigned_request.id)
        assert request.scheduled_date is None

        result = await db_session.execute(
            select(Notification.type).where(Notification.user_id == resident.id)
        )
        assert "reschedule_rejected" in list(result.scalars())

    @pytest.mark.asyncio
    async def test_initiator_cannot_answer_own_proposal(self, reschedule_service, assigned_request, resident):
        reschedule = await reschedule_service.propose(assigned_request, resident, proposal())
        with pytest.raises(ForbiddenError):
            await reschedule_service.respond(reschedule.id, resident, accepted=True)

    @pytest.mark.asyncio
    async def test_cannot_answer_twice(self, reschedule_service, assigned_request, resident, plumber):
        reschedule = await reschedule_service.propose(assigned_request, resident, proposal())
        await reschedule_service.respond(reschedule.id, plumber, accepted=False)

        with pytest.raises(InvalidTransitionError):
            await reschedule_service.respond(reschedule.id, plumber, accepted=True)

    @pytest.mark.asyncio
    async def test_expired_proposal_is_refused(self, reschedule_service, assigned_request, resident, plumber, db_session):
        reschedule = await reschedule_service.propose(assigned_request, resident, proposal())
        reschedule.expires_at = utc_now() - timedelta(seconds=1)
        await db_session.commit()

        with pytest.raises(ConflictError) as exc_info:
            await reschedule_service.respond(reschedule.id, plumber, accepted=True)

        assert exc_info.value.code == "RESCHEDULE_EXPIRED"
        assert (await reschedule_service.get_or_404(reschedule.id)).status == "expired"

    @pytest.mark.asyncio
    async def test_reassignment_closes_proposal_to_previous_executor(
        self, reschedule_service, request_service, assigned_request, resident, manager, plumber, second_plumber
    ):
        reschedule = await reschedule_service.propose(assigned_request, resident, proposal())

        await request_service.assign(assigned_request.id, manager, second_plumber.id)

        assert (await reschedule_service.get_or_404(reschedule.id)).status == "expired"
        with pytest.raises(ForbiddenError):
            await reschedule_service.respond(reschedule.id, plumber, accepted=True)

        request = await request_service.get_or_404(assigned_request.id)
        assert request.scheduled_date is None
        assert request.executor_id == second_plumber.id

    @pytest.mark.asyncio
    async def test_recipient_must_still_be_on_request(
        self, reschedule_service, assigned_request, resident, plumber, second_plumber, db_session
    ):
        reschedule = await reschedule_service.propose(assigned_request, resident, proposal())
        assigned_request.executor_id = second_plumber.id
        await db_session.commit()

        with pytest.raises(ForbiddenError):
            await reschedule_service.respond(reschedule.id, plumber, accepted=True)
        assert (await reschedule_service.get_or_404(reschedule.id)).status == "pending"


class TestExpiry:

    @pytest.mark.asyncio
    async def test_pending_list_skips_expired(self, reschedule_service, assigned_request, resident, plumber, db_session):
        reschedule = await reschedule_service.propose(assigned_request, resident, proposal())
        assert [r.id for r in await reschedule_service.pending_for_user(plumber.id)] == [reschedule.id]

        reschedule.expires_at = utc_now() - timedelta(seconds=1)
        await db_session.commit()
        assert await reschedule_service.pending_for_user(plumber.id) == []

    @pytest.mark.asyncio
    async def test_expire_stale_notifies_initiator(self, reschedule_service, assigned_request, resident, db_session):
        reschedule = await reschedule_service.propose(assigned_request, resident, proposal())
        reschedule.expires_at = utc_now() - timedelta(hours=1)
        await db_session.commit()

        assert await reschedule_service.expire_stale() == 1
        assert (await reschedule_service.get_or_404(reschedule.id)).status == "expired"

        result = await db_session.execute(
            select(Notification).where(
                Notification.user_id == resident.id,
                Notification.type == "reschedule_expired",
            )
        )
        assert result.scalar_one() is not None

    @pytest.mark.asyncio
    async def test_background_task_expires_in_own_session(self, reschedule_service, assigned_request, resident, db_session):
        reschedule = await reschedule_service.propose(assigned_request, resident, proposal())
        reschedule.expires_at = utc_now() - timedelta(hours=1)
        await db_session.commit()

        assert await run_expire_stale() == 1

    @pytest.mark.asyncio
    async def test_request_leaving_reschedulable_status_closes_proposals(
        self, reschedule_service, request_service, in_progress_request, resident, plumber
    ):
        reschedule = await reschedule_service.propose(in_progress_request, resident, proposal())

        await request_service.complete(in_progress_request.id, plumber)

        assert (await reschedule_service.get_or_404(reschedule.id)).status == "expired"
        assert await reschedule_service.active_for_request(in_progress_request.id) is None
