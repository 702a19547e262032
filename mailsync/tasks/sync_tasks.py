"""
Celery tasks for background mailbox syncs.

Contains:
- schedule_account_syncs: Periodic task dispatching syncs for due accounts
- sync_account_task: Multi-folder sync of one account
- sync_folder_task: Sync of a single folder
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID

from celery.exceptions import MaxRetriesExceededError
from sqlalchemy import select
from sqlalchemy.orm import Session

from mailsync.config import get_settings
from mailsync.database import get_sync_session
from mailsync.models.email_credentials import EmailCredentials
from mailsync.models.enums import SyncErrorType
from mailsync.schemas.sync import SyncError
from mailsync.services.exceptions import (
    CredentialsDecryptionError,
    CredentialsNotFoundError,
    FolderResolutionError,
)
from mailsync.services.sync_engine import (
    SyncOrchestrator,
    folder_sync_message,
    get_sync_orchestrator,
)
from mailsync.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)
settings = get_settings()

# Failures worth another attempt from the task queue
TRANSIENT_ERRORS = {SyncErrorType.CONNECTION, SyncErrorType.TIMEOUT, SyncErrorType.SERVER}


def _is_transient(error: Optional[SyncError]) -> bool:
    return error is not None and error.retryable and error.type in TRANSIENT_ERRORS


def find_due_accounts(
    db: Session,
    now: datetime,
    interval_minutes: int,
) -> List[EmailCredentials]:
    """
    Active accounts never synced, or last synced at least ``interval_minutes`` ago.
    """
    result = db.execute(
        select(EmailCredentials).where(EmailCredentials.is_active == True)  # noqa: E712
    )

    due = []
    for credentials in result.scalars().all():
        last_sync_at = credentials.last_sync_at
        if last_sync_at is None:
            due.append(credentials)
            continue
        if last_sync_at.tzinfo is None:
            last_sync_at = last_sync_at.replace(tzinfo=timezone.utc)
        if last_sync_at + timedelta(minutes=interval_minutes) <= now:
            due.append(credentials)
    return due


def run_account_sync(
    user_id: str,
    folders: Optional[List[str]] = None,
    orchestrator: Optional[SyncOrchestrator] = None,
) -> dict:
    """Sync an account and summarize the outcome as a task result."""
    orchestrator = orchestrator or get_sync_orchestrator()

    try:
        outcome = orchestrator.sync_account(UUID(user_id), folders)
    except CredentialsNotFoundError:
        logger.warning(f"No email configuration for user {user_id}, skipping")
        return {
            "success": False,
            "error": "No email configuration found",
            "user_id": user_id,
            "retryable": False,
        }
    except CredentialsDecryptionError as e:
        logger.error(f"Account sync for user {user_id} not started: {e}")
        return {
            "success": False,
            "error": str(e),
            "user_id": user_id,
            "retryable": False,
        }

    summary = outcome.report.summary
    return {
        "success": outcome.success,
        "user_id": user_id,
        "message": outcome.message,
        "synced": summary.total_synced,
        "errors": summary.total_errors,
        "folders": summary.folders_synced,
        "success_rate": summary.success_rate,
        "retryable": not outcome.success and any(_is_transient(r.error) for r in outcome.results),
    }


def run_folder_sync(
    user_id: str,
    folder_name: str = "INBOX",
    orchestrator: Optional[SyncOrchestrator] = None,
) -> dict:
    """Sync one folder and summarize the outcome as a task result."""
    orchestrator = orchestrator or get_sync_orchestrator()

    try:
        result = orchestrator.sync_folder(UUID(user_id), folder_name)
    except (CredentialsNotFoundError, CredentialsDecryptionError, FolderResolutionError) as e:
        logger.warning(f"Folder sync for user {user_id} not started: {e}")
        return {
            "success": False,
            "error": str(e),
            "user_id": user_id,
            "folder": folder_name,
            "retryable": False,
        }

    return {
        "success": result.success,
        "user_id": user_id,
        "folder": folder_name,
        "synced": result.synced,
        "new": result.new,
        "updated": result.updated,
        "errors": result.errors,
        "warnings": result.warnings,
        "message": folder_sync_message(result),
        "error_code": result.error.code if result.error else None,
        "retryable": _is_transient(result.error),
    }


@celery_app.task(
    bind=True,
    name="mailsync.tasks.sync_tasks.schedule_account_syncs",
    max_retries=3,
    default_retry_delay=60,
)
def schedule_account_syncs(self) -> dict:
    """
    Periodic task dispatching sync_account_task for every due account.

    Returns:
        Dict with task results
    """
    logger.info("Starting scheduled account syncs")

    db = get_sync_session()
    dispatched = 0
    errors = []

    try:
        now = datetime.now(timezone.utc)
        due_accounts = find_due_accounts(db, now, settings.sync_interval_minutes)
        logger.info(f"Found {len(due_accounts)} accounts due for sync")

        for credentials in due_accounts:
            try:
                sync_account_task.delay(str(credentials.user_id))
                dispatched += 1
                logger.info(f"Dispatched sync task for {credentials.email_address}")
            except Exception as e:
                error_msg = f"Failed to dispatch sync for {credentials.email_address}: {e}"
                logger.error(error_msg)
                errors.append(error_msg)

    except Exception as e:
        logger.error(f"Error in schedule_account_syncs: {e}")
        raise self.retry(exc=e)
    finally:
        db.close()

    return {
        "accounts_dispatched": dispatched,
        "errors": errors,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _retry_or_give_up(task, result: dict) -> dict:
    if result["success"] or not result.get("retryable"):
        return result
    try:
        raise task.retry(countdown=task.default_retry_delay * (task.request.retries + 1))
    except MaxRetriesExceededError:
        logger.error(f"Giving up on sync for user {result['user_id']} after {task.max_retries} retries")
        return result


@celery_app.task(
    bind=True,
    name="mailsync.tasks.sync_tasks.sync_account_task",
    max_retries=3,
    default_retry_delay=120,
)
def sync_account_task(self, user_id: str, folders: Optional[List[str]] = None) -> dict:
    """
    Sync the configured folders of an account.

    Runs that failed entirely on transient (retryable) errors are retried
    with a growing countdown.
    """
    logger.info(f"Syncing account of user {user_id}")
    return _retry_or_give_up(self, run_account_sync(user_id, folders))


@celery_app.task(
    bind=True,
    name="mailsync.tasks.sync_tasks.sync_folder_task",
    max_retries=3,
    default_retry_delay=60,
)
def sync_folder_task(self, user_id: str, folder_name: str = "INBOX") -> dict:
    """Sync one folder of an account."""
    logger.info(f"Syncing folder {folder_name} of user {user_id}")
    return _retry_or_give_up(self, run_folder_sync(user_id, folder_name))
