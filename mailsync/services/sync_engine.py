"""
Sync orchestration.

Contains:
- SyncOrchestrator.sync_folder: one folder, one connection, one DB session
- SyncOrchestrator.sync_account: several folders on a bounded thread pool,
  followed by a diagnostic report and account bookkeeping
"""
import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mailsync.config import Settings, get_settings
from mailsync.database import get_sync_session
from mailsync.models.email_credentials import EmailCredentials
from mailsync.models.enums import ReconcileAction
from mailsync.models.folder import Folder
from mailsync.models.sync_report import SyncReport
from mailsync.schemas.message import RawMessage
from mailsync.schemas.sync import DiagnosticReport, SyncResult
from mailsync.services.credentials import CredentialService, ImapSettings
from mailsync.services.diagnostics import (
    build_config_summary,
    build_diagnostic_report,
    format_sync_status_message,
)
from mailsync.services.encryption import CredentialEncryption
from mailsync.services.error_classifier import classify_error
from mailsync.services.exceptions import (
    FolderResolutionError,
    MailboxConnectionError,
    MailboxOpenError,
    SyncDeadlineExceeded,
)
from mailsync.services.folders import DEFAULT_FOLDER, FolderLayout, FolderResolver
from mailsync.services.mailbox import ClientFactory, MailboxSession, imapclient_factory, open_mailbox
from mailsync.services.normalizer import parse_message
from mailsync.services.reconciliation import KnownMessageIndex, Reconciler

logger = logging.getLogger(__name__)


@dataclass
class AccountSyncOutcome:
    """Result of a multi-folder sync run."""
    report: DiagnosticReport
    results: List[SyncResult] = field(default_factory=list)
    message: str = ""

    @property
    def success(self) -> bool:
        summary = self.report.summary
        return summary.total_synced > 0 or summary.total_errors == 0


def folder_sync_message(result: SyncResult) -> str:
    if result.synced == 0 and result.errors == 0:
        return "No messages to sync"
    return f"Synced {result.synced} emails ({result.new} new, {result.updated} updated)"


class SyncOrchestrator:
    """Drives folder and account syncs."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = get_sync_session,
        settings: Optional[Settings] = None,
        layout: Optional[FolderLayout] = None,
        client_factory: Optional[ClientFactory] = None,
        encryption: Optional[CredentialEncryption] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.layout = layout or FolderLayout.from_settings(self.settings)
        self.client_factory = client_factory or imapclient_factory(
            self.settings.imap_timeout_seconds
        )
        self.encryption = encryption
        self.sleep = sleep
        self.clock = clock

    # Single folder

    def sync_folder(self, user_id: uuid.UUID, folder_name: str = DEFAULT_FOLDER) -> SyncResult:
        """
        Sync one folder of a user.

        Mailbox-level failures come back as a failed SyncResult.

        Raises:
            CredentialsNotFoundError: If the user has no active credentials
            CredentialsDecryptionError: If the stored secret cannot be decrypted
            FolderResolutionError: If the local folder cannot be created
        """
        db = self.session_factory()
        try:
            credential_service = CredentialService(db, self.encryption)
            credentials = credential_service.get_credentials(user_id)
            imap = credential_service.get_imap_settings(credentials)
            return self._sync_folder(db, user_id, imap, folder_name)
        finally:
            db.close()

    def _sync_folder(
        self,
        db: Session,
        user_id: uuid.UUID,
        imap: ImapSettings,
        folder_name: str,
    ) -> SyncResult:
        folder = FolderResolver(db, self.layout).resolve(user_id, folder_name)
        result = SyncResult(folder=folder_name)

        deadline_seconds = self.settings.folder_sync_deadline_seconds
        deadline = self.clock() + deadline_seconds if deadline_seconds > 0 else None

        logger.info(f"Starting sync for folder {folder_name} ({folder.remote_path})")
        try:
            with open_mailbox(
                imap,
                folder.remote_path,
                self.layout.fallbacks_for(folder_name),
                client_factory=self.client_factory,
                batch_size=self.settings.imap_fetch_batch_size,
                retry_attempts=self.settings.sync_retry_attempts,
                retry_base_delay=self.settings.sync_retry_base_delay,
                sleep=self.sleep,
            ) as mailbox:
                try:
                    self._scan(db, user_id, folder, mailbox, result, deadline)
                finally:
                    result.warnings.extend(mailbox.warnings)

        except MailboxConnectionError as e:
            logger.error(f"IMAP connection error for {folder_name}: {e}")
            return SyncResult.failed(
                folder_name,
                e.sync_error or classify_error(e),
                f"IMAP connection error for {folder_name}",
            )

        except MailboxOpenError as e:
            logger.error(f"Error opening folder {folder_name}: {e} (tried {e.attempted})")
            return SyncResult.failed(
                folder_name,
                classify_error(e),
                f"Could not open folder {folder_name}",
            )

        except SyncDeadlineExceeded as e:
            logger.warning(str(e))
            result.success = False
            result.errors += 1
            result.error = classify_error(e)
            result.warnings.append(f"Sync of {folder_name} stopped after {e.seconds:.0f}s")

        except Exception as e:
            logger.error(f"Sync of folder {folder_name} aborted: {e}", exc_info=True)
            result.success = False
            result.errors += 1
            result.error = classify_error(e)
            result.warnings.append(f"Sync of {folder_name} aborted")

        logger.info(
            f"Completed sync for {folder_name}: {result.synced} synced "
            f"({result.new} new, {result.updated} updated), {result.errors} errors"
        )
        return result

    def _scan(
        self,
        db: Session,
        user_id: uuid.UUID,
        folder: Folder,
        mailbox: MailboxSession,
        result: SyncResult,
        deadline: Optional[float],
    ) -> None:
        if mailbox.message_count > 0:
            known = KnownMessageIndex.load(db, user_id, folder.id)
            reconciler = Reconciler(db)
            logger.info(
                f"{mailbox.message_count} messages in {mailbox.selected_path}, "
                f"{len(known)} already stored"
            )

            for raw in mailbox.iter_messages():
                if deadline is not None and self.clock() > deadline:
                    raise SyncDeadlineExceeded(folder.name, self.settings.folder_sync_deadline_seconds)
                self._process_message(reconciler, user_id, folder, raw, known, result)

        folder.message_count = mailbox.message_count
        db.commit()

    def _process_message(
        self,
        reconciler: Reconciler,
        user_id: uuid.UUID,
        folder: Folder,
        raw: RawMessage,
        known: KnownMessageIndex,
        result: SyncResult,
    ) -> None:
        parsed = parse_message(raw.source, uid=raw.uid)
        if not parsed.ok:
            result.errors += 1
            result.warnings.append(f"Message UID {raw.uid} skipped: {parsed.failure.reason}")
            return

        try:
            outcome = reconciler.reconcile(user_id, folder.id, raw, parsed.message, known)
        except Exception as e:
            logger.error(f"Error processing message UID {raw.uid} in {folder.name}: {e}")
            result.errors += 1
            result.warnings.append(f"Message UID {raw.uid} not saved: {e}")
            return

        result.synced += 1
        if outcome.action == ReconcileAction.INSERTED:
            result.new += 1
        else:
            result.updated += 1
        if outcome.conflict:
            result.warnings.append(
                f"Message UID {raw.uid} matches another stored message by Message-ID"
            )

    # Whole account

    def sync_account(
        self,
        user_id: uuid.UUID,
        folder_names: Optional[Sequence[str]] = None,
    ) -> AccountSyncOutcome:
        """
        Sync several folders, each on its own connection and DB session.

        Raises:
            CredentialsNotFoundError: If the user has no active credentials
            CredentialsDecryptionError: If the stored secret cannot be decrypted
        """
        names = list(folder_names or self.settings.sync_default_folders_list)

        db = self.session_factory()
        try:
            credential_service = CredentialService(db, self.encryption)
            credentials = credential_service.get_credentials(user_id)
            imap = credential_service.get_imap_settings(credentials)
            config = build_config_summary(credentials)
        finally:
            db.close()

        logger.info(f"Starting email sync for {config.email} ({len(names)} folders)")

        workers = max(1, min(self.settings.sync_max_workers, len(names)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="folder-sync") as pool:
            results = list(pool.map(lambda name: self._run_folder_unit(user_id, imap, name), names))

        report = build_diagnostic_report(config, results)
        summary = report.summary
        message = format_sync_status_message(summary.total_synced, summary.total_errors)
        logger.info(
            f"Sync completed for {config.email}: {summary.total_synced} synced, "
            f"{summary.total_errors} errors, {summary.folders_synced} folders"
        )

        self._record_run(user_id, report)
        return AccountSyncOutcome(report=report, results=results, message=message)

    def _run_folder_unit(self, user_id: uuid.UUID, imap: ImapSettings, folder_name: str) -> SyncResult:
        db = self.session_factory()
        try:
            return self._sync_folder(db, user_id, imap, folder_name)
        except FolderResolutionError as e:
            logger.error(f"Could not resolve folder {folder_name}: {e}")
            return SyncResult.failed(folder_name, classify_error(e), f"Could not get folder {folder_name}")
        finally:
            db.close()

    def _record_run(self, user_id: uuid.UUID, report: DiagnosticReport) -> None:
        summary = report.summary
        db = self.session_factory()
        try:
            credentials = db.execute(
                select(EmailCredentials).where(EmailCredentials.user_id == user_id)
            ).scalar_one_or_none()

            if credentials is not None:
                # last_sync_at only moves on a (partially) successful run
                if summary.total_synced > 0 or summary.total_errors == 0:
                    credentials.last_sync_at = report.timestamp
                if summary.total_errors == 0:
                    credentials.recent_error_count = 0
                else:
                    credentials.recent_error_count += summary.total_errors
                credentials.recent_synced_count = summary.total_synced

            db.add(
                SyncReport(
                    user_id=user_id,
                    total_synced=summary.total_synced,
                    total_errors=summary.total_errors,
                    folders_synced=summary.folders_synced,
                    success_rate=summary.success_rate,
                    report=report.model_dump(mode="json", by_alias=True),
                    created_at=report.timestamp,
                )
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to record sync run for user {user_id}: {e}")
        finally:
            db.close()


@lru_cache
def get_sync_orchestrator() -> SyncOrchestrator:
    """Shared SyncOrchestrator built from application settings."""
    return SyncOrchestrator()
