"""
Reschedule Background Tasks
"""
import asyncio

from housing_desk.core import database
from housing_desk.core.logging import get_logger
from housing_desk.worker import celery_app

logger = get_logger(__name__)


async def run_expire_stale() -> int:
    """Expire overdue proposals in a fresh session."""
    from housing_desk.modules import load_models
    from housing_desk.modules.reschedule.service import RescheduleService

    load_models()
    async with database.async_session_maker() as session:
        return await RescheduleService(session).expire_stale()


async def _expire_stale_once() -> int:
    try:
        return await run_expire_stale()
    finally:
        # Pooled connections belong to this run's event loop, which
        # asyncio.run closes on return.
        await database.engine.dispose()


@celery_app.task(name="housing_desk.tasks.reschedule.expire_stale_reschedules")
def expire_stale_reschedules() -> dict:
    """
    Mark pending reschedule proposals past their expiry as expired.
    Runs every 15 minutes via Celery Beat.
    """
    expired = asyncio.run(_expire_stale_once())
    logger.info("Stale reschedule check completed", expired=expired)
    return {"status": "completed", "expired": expired}
