"""
SQLAlchemy models for the application.
"""
from mailsync.models.attachment import Attachment
from mailsync.models.base import Base, TimestampMixin, UUIDMixin
from mailsync.models.email_credentials import EmailCredentials
from mailsync.models.email_message import EmailMessage
from mailsync.models.enums import HealthStatus, ReconcileAction, SyncErrorType
from mailsync.models.folder import Folder
from mailsync.models.sync_report import SyncReport

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Enums
    "SyncErrorType",
    "HealthStatus",
    "ReconcileAction",
    # Models
    "EmailCredentials",
    "Folder",
    "EmailMessage",
    "Attachment",
    "SyncReport",
]
