"""
EmailCredentials model for a user's IMAP/SMTP account.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from mailsync.models.base import Base, TimestampMixin, UUIDMixin


class EmailCredentials(Base, UUIDMixin, TimestampMixin):
    """Per-user mail account configuration."""

    __tablename__ = "email_credentials"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        unique=True,
        nullable=False,
        index=True,
    )
    email_address: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Retrieval
    imap_host: Mapped[str] = mapped_column(String(255), nullable=False)
    imap_port: Mapped[int] = mapped_column(Integer, default=993, nullable=False)
    imap_username: Mapped[str] = mapped_column(String(255), nullable=False)
    imap_password_encrypted: Mapped[str] = mapped_column(
        String(2000),  # Fernet token
        nullable=False,
    )
    imap_use_tls: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Sending
    smtp_host: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    smtp_port: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    smtp_username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    smtp_password_encrypted: Mapped[Optional[str]] = mapped_column(
        String(2000),
        nullable=True,
    )
    smtp_use_tls: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Sync bookkeeping
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_sync_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    recent_error_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    recent_synced_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    @property
    def provider(self) -> str:
        """Mail provider domain, e.g. ``gmail.com``."""
        return self.email_address.rsplit("@", 1)[-1].lower()

    def __repr__(self) -> str:
        return f"<EmailCredentials(id={self.id}, email={self.email_address})>"
