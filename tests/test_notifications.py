"""
Notification, activity log and dashboard service tests.
"""
import uuid

import pytest

from housing_desk.core.exceptions import NotFoundError
from housing_desk.modules.activity.service import ActivityService
from housing_desk.modules.dashboard.service import DashboardService
from housing_desk.modules.notifications.models import NotificationType
from housing_desk.modules.notifications.service import NotificationService
from housing_desk.modules.requests.schemas import RequestCreate


@pytest.fixture
def notifications(db_session) -> NotificationService:
    return NotificationService(db_session)


class TestNotificationService:

    @pytest.mark.asyncio
    async def test_notify_none_is_noop(self, notifications):
        assert await notifications.notify(None, NotificationType.REQUEST_CREATED, "t", "m") is None

    @pytest.mark.asyncio
    async def test_office_excludes_actor(self, notifications, manager, dispatcher, db_session):
        sent = await notifications.notify_office(
            NotificationType.REQUEST_CANCELLED, "Cancelled", "Request #1001", exclude=manager.id,
        )
        await db_session.commit()

        assert sent == 1
        assert await notifications.get_unread_count(dispatcher.id) == 1
        assert await notifications.get_unread_count(manager.id) == 0

    @pytest.mark.asyncio
    async def test_read_flow(self, notifications, resident, db_session):
        for i in range(3):
            await notifications.notify(resident.id, NotificationType.REQUEST_STARTED, "Started", f"#{i}")
        await db_session.commit()

        items, total = await notifications.get_notifications(resident.id, page_size=2)
        assert total == 3
        assert len(items) == 2

        read = await notifications.mark_as_read(resident.id, items[0].id)
        assert read.is_read is True
        assert read.read_at is not None
        assert await notifications.get_unread_count(resident.id) == 2

        _, unread_total = await notifications.get_notifications(resident.id, unread_only=True)
        assert unread_total == 2

        assert await notifications.mark_all_as_read(resident.id) == 2
        assert await notifications.get_unread_count(resident.id) == 0

    @pytest.mark.asyncio
    async def test_cannot_read_someone_elses(self, notifications, resident, other_resident, db_session):
        notification = await notifications.notify(resident.id, NotificationType.REQUEST_STARTED, "t", "m")
        await db_session.commit()

        with pytest.raises(NotFoundError):
            await notifications.mark_as_read(other_resident.id, notification.id)


class TestActivity:

    @pytest.mark.asyncio
    async def test_system_entry(self, db_session):
        entry = await ActivityService(db_session).log(None, "expired", "Reschedule expired")
        assert entry.user_name == "system"
        assert entry.user_role == "system"

    @pytest.mark.asyncio
    async def test_filter_by_request(self, db_session, new_request, manager):
        service = ActivityService(db_session)
        await service.log(manager, "note", "Unrelated", uuid.uuid4())
        await db_session.commit()

        items, total = await service.list_entries(request_id=new_request.id)
        assert total == 1
        assert items[0].action == "created"

        _, everything = await service.list_entries()
        assert everything == 2


@pytest.mark.asyncio
async def test_dashboard_summary(db_session, request_service, in_progress_request, resident, plumber, electrician):
    await request_service.create(RequestCreate(title="Lights", category="electrician"), resident)

    summary = await DashboardService(db_session).get_summary()

    assert summary.requests.total_requests == 2
    assert summary.requests.new_requests == 1
    assert summary.requests.in_progress == 1
    assert summary.requests.by_category == {"plumber": 1, "electrician": 1}
    assert summary.executors.total == 2
    assert summary.executors.busy == 1
    assert summary.executors.available == 1
    assert summary.marketplace.awaiting_action == 0
