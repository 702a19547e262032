# Sync engine services
from mailsync.services.credentials import CredentialService, ImapSettings, PROVIDER_PRESETS
from mailsync.services.diagnostics import (
    build_diagnostic_report,
    evaluate_health,
    format_sync_status_message,
)
from mailsync.services.encryption import (
    CredentialEncryption,
    generate_encryption_key,
    get_credential_encryption,
)
from mailsync.services.error_classifier import classify_error, error_for_kind, get_provider_guidance
from mailsync.services.exceptions import (
    CredentialsDecryptionError,
    CredentialsNotFoundError,
    FolderResolutionError,
    MailboxConnectionError,
    MailboxOpenError,
    MailSyncError,
    SyncDeadlineExceeded,
)
from mailsync.services.folders import FolderLayout, FolderResolver, FolderSpec
from mailsync.services.mailbox import MailboxSession, open_mailbox
from mailsync.services.normalizer import normalize, parse_message
from mailsync.services.reconciliation import KnownMessageIndex, Reconciler
from mailsync.services.retry import retry_operation
from mailsync.services.sync_engine import (
    AccountSyncOutcome,
    SyncOrchestrator,
    get_sync_orchestrator,
)

__all__ = [
    "CredentialService",
    "ImapSettings",
    "PROVIDER_PRESETS",
    "build_diagnostic_report",
    "evaluate_health",
    "format_sync_status_message",
    "CredentialEncryption",
    "generate_encryption_key",
    "get_credential_encryption",
    "classify_error",
    "error_for_kind",
    "get_provider_guidance",
    "MailSyncError",
    "CredentialsDecryptionError",
    "CredentialsNotFoundError",
    "FolderResolutionError",
    "MailboxConnectionError",
    "MailboxOpenError",
    "SyncDeadlineExceeded",
    "FolderLayout",
    "FolderResolver",
    "FolderSpec",
    "MailboxSession",
    "open_mailbox",
    "normalize",
    "parse_message",
    "KnownMessageIndex",
    "Reconciler",
    "retry_operation",
    "SyncOrchestrator",
    "AccountSyncOutcome",
    "get_sync_orchestrator",
]
