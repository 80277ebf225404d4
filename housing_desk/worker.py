"""
Celery Worker Configuration
Task queue for background jobs.
"""
from celery import Celery

from housing_desk.core.config import settings

celery_app = Celery(
    "housing_desk",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "housing_desk.tasks.reschedule",
    ],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    task_soft_time_limit=8 * 60,  # 8 minutes
    worker_prefetch_multiplier=1,
    result_expires=3600,  # 1 hour
    beat_schedule={
        # Close reschedule proposals nobody answered in time
        "expire-stale-reschedules": {
            "task": "housing_desk.tasks.reschedule.expire_stale_reschedules",
            "schedule": 15 * 60.0,  # Every 15 minutes
        },
    },
)
