import asyncio

import pytest

from housing_desk.worker import celery_app


@pytest.mark.asyncio
async def test_health_endpoint(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "housing-desk"}


@pytest.mark.asyncio
async def test_root_endpoint(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["service"] == "Housing Desk"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"

    response = await client.get("/health")
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_openapi_schema(client):
    response = await client.get("/openapi.json")
    assert response.status_code == 200
    data = response.json()
    assert "/api/v1/requests/{request_id}/start" in data["paths"]
    assert "BearerAuth" in data["components"]["securitySchemes"]


@pytest.mark.asyncio
async def test_metrics_endpoint(client):
    await client.get("/health")
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "housing_desk_http_requests_total" in response.text


def test_beat_schedules_reschedule_expiry():
    entry = celery_app.conf.beat_schedule["expire-stale-reschedules"]
    assert entry["task"] == "housing_desk.tasks.reschedule.expire_stale_reschedules"
    assert entry["schedule"] == 900.0


@pytest.mark.asyncio
async def test_expiry_task_releases_pool_after_each_run(monkeypatch):
    from housing_desk.core import database
    from housing_desk.tasks import reschedule

    disposed = []

    class FakeEngine:
        async def dispose(self):
            disposed.append(True)

    async def fake_run():
        return 2

    monkeypatch.setattr(database, "engine", FakeEngine())
    monkeypatch.setattr(reschedule, "run_expire_stale", fake_run)

    # the task owns its event loop, so run it off the test loop
    for _ in range(2):
        result = await asyncio.to_thread(reschedule.expire_stale_reschedules)
        assert result == {"status": "completed", "expired": 2}
    assert len(disposed) == 2
