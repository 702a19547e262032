"""
Sync result types and API schemas for synchronization and diagnostics.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from mailsync.models.enums import HealthStatus, SyncErrorType


@dataclass(frozen=True)
class SyncError:
    """Classified sync failure."""
    type: SyncErrorType
    message: str  # raw error text
    user_message: str
    solution: str
    retryable: bool
    code: str


@dataclass
class SyncResult:
    """Outcome of syncing one folder."""
    folder: str
    success: bool = True
    synced: int = 0
    new: int = 0
    updated: int = 0
    errors: int = 0
    error: Optional[SyncError] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def failed(cls, folder: str, error: SyncError, warning: str) -> "SyncResult":
        return cls(folder=folder, success=False, errors=1, error=error, warnings=[warning])


class SyncErrorSchema(BaseModel):
    """User-facing error object; never carries the raw exception text."""

    type: SyncErrorType
    user_message: str = Field(..., alias="userMessage")
    solution: str
    code: Optional[str] = None
    retryable: Optional[bool] = None

    model_config = {"populate_by_name": True}


class SyncFolderRequest(BaseModel):
    """Request body for the synchronize-folder operation."""

    user_id: Optional[str] = Field(None, alias="userId")
    folder_name: str = Field("INBOX", alias="folderName")

    model_config = {"populate_by_name": True}


class SyncFolderResponse(BaseModel):
    """Successful synchronize-folder response."""

    synced: int = Field(..., description="Messages processed")
    new: int = Field(..., description="Messages inserted")
    updated: int = Field(..., description="Messages whose flags were refreshed")
    message: str


class SyncFailureResponse(BaseModel):
    """Failed synchronize-folder response."""

    error: SyncErrorSchema
    warnings: List[str] = Field(default_factory=list)


class AccountSyncRequest(BaseModel):
    """Request body for a multi-folder sync run."""

    user_id: Optional[str] = Field(None, alias="userId")
    folders: Optional[List[str]] = Field(
        None, description="Canonical folder names; defaults to configured folders"
    )

    model_config = {"populate_by_name": True}


class ConfigSummary(BaseModel):
    """Account configuration as shown in a diagnostic report."""

    id: Optional[UUID] = None
    email: str
    provider: str
    imap_host: str = Field(..., alias="imapHost")
    imap_port: int = Field(..., alias="imapPort")
    smtp_host: Optional[str] = Field(None, alias="smtpHost")
    smtp_port: Optional[int] = Field(None, alias="smtpPort")

    model_config = {"populate_by_name": True}


class ReportSummary(BaseModel):
    """Totals over all folders of one run."""

    total_synced: int = Field(..., alias="totalSynced")
    total_errors: int = Field(..., alias="totalErrors")
    folders_synced: int = Field(..., alias="foldersSynced")
    success_rate: int = Field(..., alias="successRate")

    model_config = {"populate_by_name": True}


class FolderReport(BaseModel):
    """Per-folder line of a diagnostic report."""

    folder: str
    synced: int
    errors: int
    error: Optional[SyncErrorSchema] = None
    warnings: List[str] = Field(default_factory=list)


class DiagnosticReport(BaseModel):
    """Structured summary of one multi-folder sync run."""

    timestamp: datetime
    config: ConfigSummary
    summary: ReportSummary
    folder_results: List[FolderReport] = Field(default_factory=list, alias="folderResults")
    recommendations: List[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class AccountSyncResponse(BaseModel):
    """Response of a multi-folder sync run."""

    message: str
    synced: int
    errors: int
    success: bool
    diagnostic: DiagnosticReport
    recommendations: List[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Sync health of an account."""

    user_id: UUID = Field(..., alias="userId")
    status: HealthStatus
    last_sync_at: Optional[datetime] = Field(None, alias="lastSyncAt")
    error_count: int = Field(..., alias="errorCount")
    synced_count: int = Field(..., alias="syncedCount")

    model_config = {"populate_by_name": True}
