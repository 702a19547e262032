"""
Attachment model for message attachment metadata.
"""
import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mailsync.models.base import Base, UUIDMixin

if TYPE_CHECKING:
    from mailsync.models.email_message import EmailMessage


class Attachment(Base, UUIDMixin):
    """Attachment descriptor, written once when its message is inserted."""

    __tablename__ = "email_attachments"

    email_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("emails.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    filename: Mapped[str] = mapped_column(String(500), nullable=False)
    content_type: Mapped[str] = mapped_column(
        String(255),
        default="application/octet-stream",
        nullable=False,
    )
    size_bytes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    content_id: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_inline: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    email: Mapped["EmailMessage"] = relationship(
        "EmailMessage",
        back_populates="attachments",
    )

    def __repr__(self) -> str:
        return f"<Attachment(id={self.id}, filename={self.filename})>"
