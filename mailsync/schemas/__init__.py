"""
Pydantic schemas and result types.
"""
from mailsync.schemas.credentials import CredentialsUpdate
from mailsync.schemas.message import (
    AttachmentDescriptor,
    NormalizedMessage,
    ParseFailure,
    ParseResult,
    RawMessage,
)
from mailsync.schemas.sync import (
    AccountSyncRequest,
    AccountSyncResponse,
    ConfigSummary,
    DiagnosticReport,
    FolderReport,
    HealthResponse,
    ReportSummary,
    SyncError,
    SyncErrorSchema,
    SyncFailureResponse,
    SyncFolderRequest,
    SyncFolderResponse,
    SyncResult,
)

__all__ = [
    "CredentialsUpdate",
    "RawMessage",
    "AttachmentDescriptor",
    "NormalizedMessage",
    "ParseFailure",
    "ParseResult",
    "SyncError",
    "SyncResult",
    "SyncErrorSchema",
    "SyncFolderRequest",
    "SyncFolderResponse",
    "SyncFailureResponse",
    "AccountSyncRequest",
    "AccountSyncResponse",
    "ConfigSummary",
    "ReportSummary",
    "FolderReport",
    "DiagnosticReport",
    "HealthResponse",
]
