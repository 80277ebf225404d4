"""
RequestService tests: lifecycle, actor checks, timer bookkeeping.
"""
from datetime import timedelta

import pytest
from sqlalchemy import select

from housing_desk.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    ValidationError,
)
from housing_desk.core.models import utc_now
from housing_desk.modules.activity.models import ActivityLog
from housing_desk.modules.executors.service import ExecutorService
from housing_desk.modules.notifications.models import Notification
from housing_desk.modules.requests.models import RequestStatus
from housing_desk.modules.requests.schemas import RequestCreate
from housing_desk.modules.requests.service import RequestService


class TestCreate:

    @pytest.mark.asyncio
    async def test_resident_files_request(self, request_service, resident, manager):
        request = await request_service.create(
            RequestCreate(title="No hot water", category="boiler", priority="high"),
            resident,
        )

        assert request.status == "new"
        assert request.number == 1001
        assert request.resident_name == "Aziza Karimova"
        assert request.apartment == "42"
        assert request.priority == "high"

        result = await request_service.db.execute(
            select(Notification).where(Notification.user_id == manager.id)
        )
        assert [n.type for n in result.scalars()] == ["request_created"]

    @pytest.mark.asyncio
    async def test_numbers_increase(self, request_service, resident):
        first = await request_service.create(RequestCreate(title="A", category="plumber"), resident)
        second = await request_service.create(RequestCreate(title="B", category="plumber"), resident)
        assert second.number == first.number + 1

    @pytest.mark.asyncio
    async def test_staff_must_name_resident(self, request_service, manager, resident):
        with pytest.raises(ValidationError):
            await request_service.create(RequestCreate(title="A", category="plumber"), manager)

        request = await request_service.create(
            RequestCreate(title="A", category="plumber", resident_id=resident.id),
            manager,
        )
        assert request.resident_id == resident.id

    @pytest.mark.asyncio
    async def test_executor_cannot_file(self, request_service, plumber):
        with pytest.raises(ForbiddenError):
            await request_service.create(RequestCreate(title="A", category="plumber"), plumber)


class TestAssign:

    @pytest.mark.asyncio
    async def test_manager_assigns_matching_executor(self, request_service, new_request, manager, plumber, db_session):
        request = await request_service.assign(new_request.id, manager, plumber.id)

        assert request.status == "assigned"
        assert request.executor_id == plumber.id
        assert request.executor_name == "Pulat Plumber"
        assert request.assigned_at is not None

        executor = await ExecutorService(db_session).get_by_user_id(plumber.id)
        assert executor.active_requests == 1
        assert executor.status == "busy"

    @pytest.mark.asyncio
    async def test_specialization_must_match(self, request_service, new_request, manager, electrician):
        with pytest.raises(ConflictError) as exc_info:
            await request_service.assign(new_request.id, manager, electrician.id)
        assert exc_info.value.code == "SPECIALIZATION_MISMATCH"

    @pytest.mark.asyncio
    async def test_executor_takes_request_from_pool(self, request_service, new_request, plumber):
        request = await request_service.assign(new_request.id, plumber)
        assert request.executor_id == plumber.id

    @pytest.mark.asyncio
    async def test_executor_cannot_take_assigned_request(
        self, request_service, assigned_request, plumber, second_plumber
    ):
        with pytest.raises(InvalidTransitionError) as exc_info:
            await request_service.assign(assigned_request.id, second_plumber)
        assert exc_info.value.details["allowed_from"] == ["new"]

        request = await request_service.get_or_404(assigned_request.id)
        assert request.executor_id == plumber.id

    @pytest.mark.asyncio
    async def test_executor_cannot_assign_others(self, request_service, new_request, plumber, second_plumber):
        with pytest.raises(ForbiddenError):
            await request_service.assign(new_request.id, plumber, second_plumber.id)

    @pytest.mark.asyncio
    async def test_reassign_frees_previous_executor(
        self, request_service, assigned_request, manager, plumber, second_plumber, db_session
    ):
        await request_service.assign(assigned_request.id, manager, second_plumber.id)

        previous = await ExecutorService(db_session).get_by_user_id(plumber.id)
        assert previous.active_requests == 0
        assert previous.status == "available"

    @pytest.mark.asyncio
    async def test_resident_cannot_assign(self, request_service, new_request, resident, plumber):
        with pytest.raises(ForbiddenError):
            await request_service.assign(new_request.id, resident, plumber.id)


class TestWork:

    @pytest.mark.asyncio
    async def test_accept_then_start(self, request_service, assigned_request, plumber):
        request = await request_service.accept(assigned_request.id, plumber)
        assert request.status == "accepted"
        assert request.accepted_at is not None

        request = await request_service.start(request.id, plumber)
        assert request.status == "in_progress"
        assert request.started_at is not None
        assert request.total_paused_seconds == 0

    @pytest.mark.asyncio
    async def test_only_assigned_executor_starts(self, request_service, assigned_request, second_plumber):
        with pytest.raises(ForbiddenError):
            await request_service.start(assigned_request.id, second_plumber)

    @pytest.mark.asyncio
    async def test_one_request_in_progress_per_executor(
        self, request_service, in_progress_request, resident, manager, plumber
    ):
        second = await request_service.create(RequestCreate(title="Second", category="plumber"), resident)
        await request_service.assign(second.id, manager, plumber.id)

        with pytest.raises(ConflictError) as exc_info:
            await request_service.start(second.id, plumber)
        assert exc_info.value.code == "EXECUTOR_BUSY"

    @pytest.mark.asyncio
    async def test_pause_and_resume_accumulate(self, request_service, in_progress_request, plumber):
        request = await request_service.pause(in_progress_request.id, plumber)
        assert request.is_paused is True
        assert request.paused_at is not None

        with pytest.raises(ConflictError) as exc_info:
            await request_service.pause(request.id, plumber)
        assert exc_info.value.code == "ALREADY_PAUSED"

        # Pretend the pause lasted two minutes
        request.paused_at = utc_now() - timedelta(minutes=2)
        await request_service.db.commit()

        request = await request_service.resume(request.id, plumber)
        assert request.is_paused is False
        assert request.paused_at is None
        assert 119 <= request.total_paused_seconds <= 121

    @pytest.mark.asyncio
    async def test_resume_when_not_paused(self, request_service, in_progress_request, plumber):
        with pytest.raises(ConflictError) as exc_info:
            await request_service.resume(in_progress_request.id, plumber)
        assert exc_info.value.code == "NOT_PAUSED"

    @pytest.mark.asyncio
    async def test_complete_computes_duration(self, request_service, in_progress_request, plumber, db_session):
        in_progress_request.started_at = utc_now() - timedelta(minutes=30)
        in_progress_request.total_paused_seconds = 600
        await db_session.commit()

        request = await request_service.complete(in_progress_request.id, plumber)

        assert request.status == "pending_approval"
        assert request.completed_at is not None
        assert 1199 <= request.work_duration <= 1201

        executor = await ExecutorService(db_session).get_by_user_id(plumber.id)
        assert executor.active_requests == 0

    @pytest.mark.asyncio
    async def test_complete_while_paused_stops_at_pause(
        self, request_service, in_progress_request, plumber, db_session
    ):
        in_progress_request.started_at = utc_now() - timedelta(minutes=10)
        in_progress_request.is_paused = True
        in_progress_request.paused_at = utc_now() - timedelta(minutes=4)
        await db_session.commit()

        request = await request_service.complete(in_progress_request.id, plumber)

        assert request.is_paused is False
        assert 359 <= request.work_duration <= 361

    @pytest.mark.asyncio
    async def test_cannot_complete_before_start(self, request_service, assigned_request, plumber):
        with pytest.raises(InvalidTransitionError):
            await request_service.complete(assigned_request.id, plumber)


class TestApproval:

    @pytest.fixture
    async def pending_request(self, request_service, in_progress_request, plumber):
        return await request_service.complete(in_progress_request.id, plumber)

    @pytest.mark.asyncio
    async def test_approve_with_rating(self, request_service, pending_request, resident, plumber, db_session):
        request = await request_service.approve(pending_request.id, resident, rating=4, feedback="Quick")

        assert request.status == "completed"
        assert request.approved_at is not None
        assert request.rating == 4

        executor = await ExecutorService(db_session).get_by_user_id(plumber.id)
        assert executor.completed_count == 1
        assert executor.rating == 4.0

    @pytest.mark.asyncio
    async def test_other_resident_cannot_approve(self, request_service, pending_request, other_resident):
        with pytest.raises(ForbiddenError):
            await request_service.approve(pending_request.id, other_resident)

    @pytest.mark.asyncio
    async def test_reject_sends_work_back(self, request_service, pending_request, resident, plumber, db_session):
        request = await request_service.reject(pending_request.id, resident, "Still leaking")

        assert request.status == "in_progress"
        assert request.rejection_count == 1
        assert request.rejection_reason == "Still leaking"
        assert request.completed_at is None
        assert request.work_duration is None

        executor = await ExecutorService(db_session).get_by_user_id(plumber.id)
        assert executor.active_requests == 1

        result = await db_session.execute(
            select(Notification).where(
                Notification.user_id == plumber.id,
                Notification.type == "request_rejected",
            )
        )
        assert result.scalar_one().request_id == request.id

    @pytest.mark.asyncio
    async def test_reject_does_not_count_approval_wait(self, request_service, pending_request, resident, db_session):
        pending_request.completed_at = utc_now() - timedelta(hours=2)
        await db_session.commit()

        request = await request_service.reject(pending_request.id, resident, "Still leaking")

        assert 7199 <= request.total_paused_seconds <= 7201

    @pytest.mark.asyncio
    async def test_reject_refused_while_executor_works_elsewhere(
        self, request_service, pending_request, resident, manager, plumber
    ):
        other = await request_service.create(RequestCreate(title="Other", category="plumber"), resident)
        await request_service.assign(other.id, manager, plumber.id)
        await request_service.start(other.id, plumber)

        with pytest.raises(ConflictError) as exc_info:
            await request_service.reject(pending_request.id, resident, "Still leaking")
        assert exc_info.value.code == "EXECUTOR_BUSY"

        items, _ = await request_service.list_requests(executor_id=plumber.id, status=RequestStatus.IN_PROGRESS)
        assert [r.id for r in items] == [other.id]

    @pytest.mark.asyncio
    async def test_rate_after_approval_updates_average(self, request_service, pending_request, resident, plumber, manager, db_session):
        await request_service.approve(pending_request.id, resident, rating=5)

        second = await request_service.create(RequestCreate(title="Second", category="plumber"), resident)
        await request_service.assign(second.id, manager, plumber.id)
        await request_service.start(second.id, plumber)
        await request_service.complete(second.id, plumber)
        await request_service.approve(second.id, resident)
        await request_service.rate(second.id, resident, 2)

        executor = await ExecutorService(db_session).get_by_user_id(plumber.id)
        assert executor.completed_count == 2
        assert executor.rating == 3.5


class TestCancelAndDecline:

    @pytest.mark.asyncio
    async def test_resident_cancels_own_request(self, request_service, assigned_request, resident, plumber, db_session):
        request = await request_service.cancel(assigned_request.id, resident, "Fixed it myself")

        assert request.status == "cancelled"
        assert request.cancelled_by == "resident"
        assert request.cancellation_reason == "Fixed it myself"

        executor = await ExecutorService(db_session).get_by_user_id(plumber.id)
        assert executor.active_requests == 0

    @pytest.mark.asyncio
    async def test_resident_cannot_cancel_in_progress(self, request_service, in_progress_request, resident):
        with pytest.raises(InvalidTransitionError):
            await request_service.cancel(in_progress_request.id, resident)

    @pytest.mark.asyncio
    async def test_staff_cancels_in_progress(self, request_service, in_progress_request, admin):
        request = await request_service.cancel(in_progress_request.id, admin)
        assert request.cancelled_by == "admin"

    @pytest.mark.asyncio
    async def test_manager_cancel_is_recorded_as_manager(self, request_service, new_request, manager):
        request = await request_service.cancel(new_request.id, manager)
        assert request.cancelled_by == "manager"

    @pytest.mark.asyncio
    async def test_stranger_cannot_cancel(self, request_service, new_request, other_resident):
        with pytest.raises(ForbiddenError):
            await request_service.cancel(new_request.id, other_resident)

    @pytest.mark.asyncio
    async def test_decline_returns_to_pool(self, request_service, in_progress_request, plumber, db_session):
        request = await request_service.decline(in_progress_request.id, plumber, "Need a specialist part")

        assert request.status == "new"
        assert request.executor_id is None
        assert request.started_at is None
        assert request.decline_reason == "Need a specialist part"

        executor = await ExecutorService(db_session).get_by_user_id(plumber.id)
        assert executor.active_requests == 0

    @pytest.mark.asyncio
    async def test_decline_tells_resident(self, request_service, assigned_request, resident, plumber, db_session):
        await request_service.decline(assigned_request.id, plumber, "Out of town")

        result = await db_session.execute(
            select(Notification).where(
                Notification.user_id == resident.id,
                Notification.type == "request_declined",
            )
        )
        assert result.scalar_one().request_id == assigned_request.id


class TestViews:

    @pytest.mark.asyncio
    async def test_executor_board(self, request_service, assigned_request, resident, plumber):
        await request_service.create(RequestCreate(title="Pool", category="plumber"), resident)
        await request_service.create(RequestCreate(title="Wiring", category="electrician"), resident)

        board = await request_service.executor_board(plumber)

        assert [r.title for r in board.available] == ["Pool"]
        assert [r.id for r in board.assigned] == [assigned_request.id]

    @pytest.mark.asyncio
    async def test_resident_view(self, request_service, in_progress_request, resident):
        view = await request_service.resident_view(resident)
        assert [r.id for r in view.active] == [in_progress_request.id]
        assert view.active[0].timer is not None

    @pytest.mark.asyncio
    async def test_list_filters(self, request_service, assigned_request, resident, plumber):
        await request_service.create(RequestCreate(title="Other", category="electrician"), resident)

        items, total = await request_service.list_requests(executor_id=plumber.id)
        assert total == 1
        assert items[0].id == assigned_request.id

        items, total = await request_service.list_requests(category="electrician")
        assert total == 1

    @pytest.mark.asyncio
    async def test_pool_request_visible_to_matching_trade(self, request_service, new_request, plumber, electrician):
        assert (await request_service.get_for_user(new_request.id, plumber)).id == new_request.id
        with pytest.raises(ForbiddenError):
            await request_service.get_for_user(new_request.id, electrician)


@pytest.mark.asyncio
async def test_every_transition_is_logged(request_service, in_progress_request, db_session):
    result = await db_session.execute(
        select(ActivityLog.action)
        .where(ActivityLog.request_id == in_progress_request.id)
        .order_by(ActivityLog.created_at)
    )
    assert list(result.scalars()) == ["created", "assigned", "started"]


@pytest.mark.asyncio
async def test_separate_service_instances_share_state(db_session, in_progress_request, plumber):
    request = await RequestService(db_session).get_for_user(in_progress_request.id, plumber)
    assert request.status == "in_progress"
