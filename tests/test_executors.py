"""
ExecutorService tests.
"""
import pytest

from housing_desk.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from housing_desk.modules.executors.models import ExecutorSpecialization, ExecutorStatus
from housing_desk.modules.executors.schemas import ExecutorCreate, ExecutorResponse, ExecutorUpdate
from housing_desk.modules.executors.service import ExecutorService


@pytest.fixture
def executors(db_session) -> ExecutorService:
    return ExecutorService(db_session)


@pytest.mark.asyncio
async def test_create_executor_account(executors):
    executor = await executors.create(
        ExecutorCreate(
            login="ali_lift",
            password="secret123",
            name="Ali Lift",
            specialization=ExecutorSpecialization.ELEVATOR,
        )
    )

    response = ExecutorResponse.from_executor(executor)
    assert response.id == executor.user_id
    assert response.login == "ali_lift"
    assert response.specialization == "elevator"
    assert response.status == "available"
    assert response.rating == 5.0
    assert executor.user.role == "executor"


@pytest.mark.asyncio
async def test_duplicate_login(executors, plumber):
    with pytest.raises(ConflictError):
        await executors.create(
            ExecutorCreate(
                login=plumber.login,
                password="secret123",
                name="Copy",
                specialization=ExecutorSpecialization.PLUMBER,
            )
        )


@pytest.mark.asyncio
async def test_list_by_specialization(executors, plumber, electrician):
    result = await executors.list_executors(specialization=ExecutorSpecialization.ELECTRICIAN)
    assert [e.user_id for e in result] == [electrician.id]


@pytest.mark.asyncio
async def test_deactivated_executor_hidden(executors, plumber):
    await executors.update(plumber.id, ExecutorUpdate(is_active=False))

    assert await executors.list_executors() == []
    assert len(await executors.list_executors(active_only=False)) == 1


@pytest.mark.asyncio
async def test_update_profile(executors, plumber):
    executor = await executors.update(
        plumber.id,
        ExecutorUpdate(name="Pulat Senior", specialization=ExecutorSpecialization.BOILER),
    )
    assert executor.user.name == "Pulat Senior"
    assert executor.specialization == "boiler"


@pytest.mark.asyncio
async def test_status_by_self_or_staff(executors, plumber, second_plumber, manager):
    executor = await executors.update_status(plumber.id, ExecutorStatus.OFFLINE, plumber)
    assert executor.status == "offline"

    executor = await executors.update_status(plumber.id, ExecutorStatus.AVAILABLE, manager)
    assert executor.status == "available"

    with pytest.raises(ForbiddenError):
        await executors.update_status(plumber.id, ExecutorStatus.OFFLINE, second_plumber)


@pytest.mark.asyncio
async def test_offline_executor_stays_offline_when_assigned(
    executors, request_service, new_request, manager, plumber
):
    await executors.update_status(plumber.id, ExecutorStatus.OFFLINE, plumber)
    await request_service.assign(new_request.id, manager, plumber.id)

    executor = await executors.get_by_user_id(plumber.id)
    assert executor.active_requests == 1
    assert executor.status == "offline"


@pytest.mark.asyncio
async def test_unknown_executor(executors, resident):
    with pytest.raises(NotFoundError):
        await executors.get_or_404(resident.id)


@pytest.mark.asyncio
async def test_stats(executors, request_service, in_progress_request, resident, plumber):
    await request_service.complete(in_progress_request.id, plumber)
    await request_service.approve(in_progress_request.id, resident, rating=5)

    stats = await executors.get_stats(plumber.id)

    assert stats.total_requests == 1
    assert stats.total_completed == 1
    assert stats.this_week == 1
    assert stats.this_month == 1
    assert stats.rating == 5.0
    assert stats.avg_completion_time >= 0
    assert stats.status_breakdown == {"completed": 1}
