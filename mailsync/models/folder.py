"""
Folder model for per-user mailbox groupings.
"""
import uuid
from typing import TYPE_CHECKING, List

from sqlalchemy import Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mailsync.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from mailsync.models.email_message import EmailMessage


class Folder(Base, UUIDMixin, TimestampMixin):
    """Logical mailbox (INBOX, Sent, Drafts, Trash) scoped to a user."""

    __tablename__ = "email_folders"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,  # canonical name
    )
    display_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    remote_path: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    message_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    # Relationships
    emails: Mapped[List["EmailMessage"]] = relationship(
        "EmailMessage",
        back_populates="folder",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index(
            "ix_email_folders_user_name",
            "user_id",
            "name",
            unique=True,
        ),
    )

    def __repr__(self) -> str:
        return f"<Folder(id={self.id}, name={self.name}, path={self.remote_path})>"
