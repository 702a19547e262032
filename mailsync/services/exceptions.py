"""
Exceptions raised by the sync engine.

Session-level failures (connect, login, mailbox selection, deadline) are
raised; per-message problems are reported as values instead.
"""
from typing import Optional, Sequence

from mailsync.schemas.sync import SyncError


class MailSyncError(Exception):
    """Base exception for sync engine errors."""

    pass


class CredentialsNotFoundError(MailSyncError):
    """No active mail credentials stored for the user."""

    pass


class FolderResolutionError(MailSyncError):
    """Local folder record could not be read or created."""

    pass


class MailboxConnectionError(MailSyncError):
    """Connecting or logging in to the IMAP server failed."""

    def __init__(self, message: str, sync_error: Optional[SyncError] = None):
        super().__init__(message)
        self.sync_error = sync_error


class MailboxOpenError(MailSyncError):
    """Neither the primary path nor any fallback could be selected."""

    def __init__(self, primary_path: str, attempted: Sequence[str] = ()):
        super().__init__(f"Could not open mailbox: {primary_path}")
        self.primary_path = primary_path
        self.attempted = list(attempted)


class SyncDeadlineExceeded(MailSyncError):
    """A folder sync ran past its deadline."""

    def __init__(self, folder: str, seconds: float):
        super().__init__(f"Folder sync timeout: {folder} exceeded {seconds:.0f}s")
        self.folder = folder
        self.seconds = seconds


class CredentialsDecryptionError(MailSyncError):
    """Stored secret cannot be decrypted with the configured key."""

    pass
