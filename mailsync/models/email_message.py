"""
EmailMessage model for synchronized messages.
"""
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mailsync.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from mailsync.models.attachment import Attachment
    from mailsync.models.folder import Folder


class EmailMessage(Base, UUIDMixin, TimestampMixin):
    """A message mirrored from the mail server."""

    __tablename__ = "emails"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )
    folder_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("email_folders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    remote_uid: Mapped[int] = mapped_column(
        Integer,
        nullable=False,  # IMAP UID within the selected mailbox
    )
    message_id: Mapped[str] = mapped_column(
        String(998),
        nullable=False,  # Message-ID header, fallback dedup key
        index=True,
    )

    # Envelope
    from_address: Mapped[str] = mapped_column(String(255), nullable=False)
    from_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    to_address: Mapped[str] = mapped_column(Text, default="", nullable=False)
    cc_address: Mapped[str] = mapped_column(Text, default="", nullable=False)
    bcc_address: Mapped[str] = mapped_column(Text, default="", nullable=False)
    subject: Mapped[str] = mapped_column(String(1000), nullable=False)
    date_received: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # Content
    text_content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    html_content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    raw_content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Flags
    flags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_starred: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    folder: Mapped["Folder"] = relationship(
        "Folder",
        back_populates="emails",
    )
    attachments: Mapped[List["Attachment"]] = relationship(
        "Attachment",
        back_populates="email",
        cascade="all, delete-orphan",
    )

    # (folder, uid) is unique among live rows only
    __table_args__ = (
        Index(
            "ix_emails_folder_uid_live",
            "folder_id",
            "remote_uid",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
    )

    def __repr__(self) -> str:
        return f"<EmailMessage(id={self.id}, uid={self.remote_uid}, subject={self.subject[:50]}...)>"
