# Celery tasks
from mailsync.tasks.celery_app import celery_app
from mailsync.tasks.sync_tasks import (
    schedule_account_syncs,
    sync_account_task,
    sync_folder_task,
)

__all__ = [
    "celery_app",
    "schedule_account_syncs",
    "sync_account_task",
    "sync_folder_task",
]
