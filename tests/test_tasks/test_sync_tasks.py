"""Tests for background sync tasks.

Task bodies delegate to plain functions, which are tested directly against
the in-memory database and fake IMAP server.
"""
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from imapclient.exceptions import LoginError

from conftest import make_raw_email

from mailsync.services.credentials import CredentialService
from mailsync.tasks.sync_tasks import (
    find_due_accounts,
    run_account_sync,
    run_folder_sync,
    schedule_account_syncs,
    sync_folder_task,
)

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestFindDueAccounts:
    """Tests for find_due_accounts."""

    def test_never_synced_is_due(self, db, credentials):
        assert [c.id for c in find_due_accounts(db, NOW, 15)] == [credentials.id]

    def test_recently_synced_is_not_due(self, db, credentials):
        credentials.last_sync_at = NOW - timedelta(minutes=5)
        db.commit()
        assert find_due_accounts(db, NOW, 15) == []

    def test_stale_is_due(self, db, credentials):
        credentials.last_sync_at = NOW - timedelta(minutes=15)
        db.commit()
        assert len(find_due_accounts(db, NOW, 15)) == 1

    def test_inactive_is_skipped(self, db, credentials, encryption):
        other = CredentialService(db, encryption).upsert_credentials(
            user_id=uuid.uuid4(),
            email_address="carol@gmail.com",
            imap_password="secret",
        )
        other.is_active = False
        credentials.is_active = False
        db.commit()

        assert find_due_accounts(db, NOW, 15) == []


class TestRunAccountSync:
    """Tests for run_account_sync."""

    def test_success(self, credentials, imap_server, orchestrator):
        imap_server.add_message("INBOX", 1, make_raw_email())

        result = run_account_sync(str(credentials.user_id), ["INBOX"], orchestrator=orchestrator)

        assert result["success"] is True
        assert result["synced"] == 1
        assert result["success_rate"] == 100
        assert result["retryable"] is False

    def test_missing_credentials(self, orchestrator):
        result = run_account_sync(str(uuid.uuid4()), orchestrator=orchestrator)

        assert result["success"] is False
        assert "No email configuration" in result["error"]

    def test_transient_failure_is_retryable(self, credentials, imap_server, orchestrator):
        imap_server.connect_errors = [ConnectionRefusedError("Connection refused")] * 3

        result = run_account_sync(str(credentials.user_id), ["INBOX"], orchestrator=orchestrator)

        assert result["success"] is False
        assert result["retryable"] is True

    def test_auth_failure_is_not_retryable(self, credentials, imap_server, orchestrator):
        imap_server.login_errors = [LoginError("[AUTHENTICATIONFAILED] Invalid credentials")]

        result = run_account_sync(str(credentials.user_id), ["INBOX"], orchestrator=orchestrator)

        assert result["success"] is False
        assert result["retryable"] is False


class TestRunFolderSync:
    """Tests for run_folder_sync."""

    def test_success(self, credentials, imap_server, orchestrator):
        imap_server.add_message("INBOX", 1, make_raw_email())

        result = run_folder_sync(str(credentials.user_id), "INBOX", orchestrator=orchestrator)

        assert result["success"] is True
        assert result["new"] == 1
        assert result["message"] == "Synced 1 emails (1 new, 0 updated)"
        assert result["error_code"] is None

    def test_open_failure(self, credentials, orchestrator):
        result = run_folder_sync(str(credentials.user_id), "Trash", orchestrator=orchestrator)

        assert result["success"] is False
        assert result["error_code"] == "UNKNOWN_ERROR"
        assert result["warnings"] == ["Could not open folder Trash"]
        assert result["retryable"] is False

    def test_missing_credentials(self, orchestrator):
        result = run_folder_sync(str(uuid.uuid4()), orchestrator=orchestrator)
        assert result["success"] is False
        assert result["retryable"] is False


class TestSyncFolderTask:
    """Tests for the sync_folder_task wrapper."""

    def test_returns_successful_result(self):
        expected = {"success": True, "user_id": "u", "retryable": False}

        with patch("mailsync.tasks.sync_tasks.run_folder_sync", MagicMock(return_value=expected)) as run:
            result = sync_folder_task("u", "Sent")

        run.assert_called_once_with("u", "Sent")
        assert result == expected


class TestScheduleAccountSyncs:
    """Tests for the schedule_account_syncs periodic task."""

    def test_dispatches_due_accounts(self, session_factory, credentials):
        with patch(
            "mailsync.tasks.sync_tasks.get_sync_session", side_effect=session_factory
        ), patch("mailsync.tasks.sync_tasks.sync_account_task") as task:
            result = schedule_account_syncs()

        task.delay.assert_called_once_with(str(credentials.user_id))
        assert result["accounts_dispatched"] == 1
        assert result["errors"] == []

    def test_dispatch_failure_is_reported(self, session_factory, credentials):
        with patch(
            "mailsync.tasks.sync_tasks.get_sync_session", side_effect=session_factory
        ), patch("mailsync.tasks.sync_tasks.sync_account_task") as task:
            task.delay.side_effect = ConnectionError("broker unavailable")
            result = schedule_account_syncs()

        assert result["accounts_dispatched"] == 0
        assert len(result["errors"]) == 1


class TestUndecryptableCredentials:
    """Tasks skip accounts whose stored secret cannot be decrypted."""

    def test_account_sync_not_retried(self, db, credentials, orchestrator):
        credentials.imap_password_encrypted = "not-a-fernet-token"
        db.commit()

        result = run_account_sync(str(credentials.user_id), ["INBOX"], orchestrator=orchestrator)

        assert result["success"] is False
        assert result["retryable"] is False
        assert "cannot be decrypted" in result["error"]

    def test_folder_sync_not_retried(self, db, credentials, orchestrator):
        credentials.imap_password_encrypted = "not-a-fernet-token"
        db.commit()

        result = run_folder_sync(str(credentials.user_id), "INBOX", orchestrator=orchestrator)

        assert result["success"] is False
        assert result["retryable"] is False
