"""
SyncReport model storing diagnostic reports of account sync runs.
"""
import uuid
from datetime import datetime
from typing import Dict

from sqlalchemy import DateTime, Index, Integer, func
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from mailsync.models.base import Base, UUIDMixin


class SyncReport(Base, UUIDMixin):
    """Audit copy of a diagnostic report."""

    __tablename__ = "sync_reports"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )
    total_synced: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_errors: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    folders_synced: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    success_rate: Mapped[int] = mapped_column(Integer, default=100, nullable=False)

    # Full report as returned to the caller (camelCase keys)
    report: Mapped[Dict] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_sync_reports_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SyncReport(id={self.id}, user_id={self.user_id}, rate={self.success_rate})>"
