"""
Celery application configuration.

Includes:
- Celery app setup with Redis broker
- Task configuration
- Beat schedule for periodic account syncs
"""
from celery import Celery

from mailsync.config import get_settings

settings = get_settings()

celery_app = Celery(
    "mailsync",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "mailsync.tasks",
        "mailsync.tasks.sync_tasks",
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
    task_time_limit=30 * 60,  # 30 minutes
    worker_prefetch_multiplier=1,
    result_expires=3600,  # 1 hour
)

# Celery Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "schedule-account-syncs-every-minute": {
        "task": "mailsync.tasks.sync_tasks.schedule_account_syncs",
        "schedule": 60.0,  # Every 60 seconds
        "options": {"queue": "default"},
    },
}

celery_app.conf.task_default_queue = "default"
