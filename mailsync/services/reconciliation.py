"""
Reconciliation of fetched messages against persisted rows.

A message is known when its UID or its Message-ID is already stored (as a
live row) for the same user and folder. Known messages only get their flags
refreshed; everything else is inserted together with its attachments.
Rows are never deleted here.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from mailsync.models.attachment import Attachment
from mailsync.models.email_message import EmailMessage
from mailsync.models.enums import ReconcileAction
from mailsync.schemas.message import AttachmentDescriptor, NormalizedMessage, RawMessage

logger = logging.getLogger(__name__)


@dataclass
class KnownMessageIndex:
    """UIDs and Message-IDs already stored for one (user, folder)."""
    by_uid: Dict[int, uuid.UUID] = field(default_factory=dict)
    by_message_id: Dict[str, uuid.UUID] = field(default_factory=dict)

    @classmethod
    def load(cls, db: Session, user_id: uuid.UUID, folder_id: uuid.UUID) -> "KnownMessageIndex":
        rows = db.execute(
            select(EmailMessage.id, EmailMessage.remote_uid, EmailMessage.message_id).where(
                EmailMessage.user_id == user_id,
                EmailMessage.folder_id == folder_id,
                EmailMessage.is_deleted == False,  # noqa: E712
            )
        ).all()

        index = cls()
        for row_id, remote_uid, message_id in rows:
            index.add(remote_uid, message_id, row_id)
        return index

    def __len__(self) -> int:
        return len(self.by_uid)

    def contains(self, uid: int, message_id: str) -> bool:
        return uid in self.by_uid or message_id in self.by_message_id

    def conflicting(self, uid: int, message_id: str) -> bool:
        """UID and Message-ID both known, but for two different rows."""
        uid_row = self.by_uid.get(uid)
        mid_row = self.by_message_id.get(message_id)
        return uid_row is not None and mid_row is not None and uid_row != mid_row

    def add(self, uid: int, message_id: str, row_id: uuid.UUID) -> None:
        self.by_uid[uid] = row_id
        if message_id:
            self.by_message_id.setdefault(message_id, row_id)


@dataclass
class ReconcileOutcome:
    """What happened to one message."""
    action: ReconcileAction
    email_id: Optional[uuid.UUID] = None
    attachments: int = 0
    conflict: bool = False


class AttachmentExtractor:
    """Persists attachment metadata for a newly inserted message."""

    def __init__(self, db: Session):
        self.db = db

    def extract(self, email: EmailMessage, descriptors: Iterable[AttachmentDescriptor]) -> int:
        count = 0
        for descriptor in descriptors:
            if not descriptor.filename:
                continue
            self.db.add(
                Attachment(
                    email_id=email.id,
                    filename=descriptor.filename,
                    content_type=descriptor.content_type or "application/octet-stream",
                    size_bytes=descriptor.size_bytes,
                    content_id=descriptor.content_id,
                    is_inline=descriptor.content_id is not None,
                )
            )
            count += 1
        return count


class Reconciler:
    """Decides insert vs. update and writes the result, one commit per message."""

    def __init__(self, db: Session, attachments: Optional[AttachmentExtractor] = None):
        self.db = db
        self.attachments = attachments or AttachmentExtractor(db)

    def reconcile(
        self,
        user_id: uuid.UUID,
        folder_id: uuid.UUID,
        raw: RawMessage,
        message: NormalizedMessage,
        known: KnownMessageIndex,
    ) -> ReconcileOutcome:
        """
        Insert or update one message.

        ``known`` is extended once an insert is committed so a repeat of the
        same message later in the scan becomes an update.
        """
        try:
            if known.contains(raw.uid, message.message_id):
                outcome = self._update(user_id, folder_id, raw, message, known)
            else:
                outcome = self._insert(user_id, folder_id, raw, message)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if outcome.action == ReconcileAction.INSERTED:
            known.add(raw.uid, message.message_id, outcome.email_id)
        return outcome

    def _insert(
        self,
        user_id: uuid.UUID,
        folder_id: uuid.UUID,
        raw: RawMessage,
        message: NormalizedMessage,
    ) -> ReconcileOutcome:
        email = EmailMessage(
            user_id=user_id,
            folder_id=folder_id,
            remote_uid=raw.uid,
            message_id=message.message_id,
            from_address=message.from_address,
            from_name=message.from_name,
            to_address=message.to_address,
            cc_address=message.cc_address,
            bcc_address=message.bcc_address,
            subject=message.subject,
            text_content=message.text_body,
            html_content=message.html_body,
            raw_content=raw.source.decode("utf-8", errors="replace"),
            date_received=message.date,
            size_bytes=len(raw.source),
            flags=list(raw.flags),
            is_read=raw.is_seen,
            is_starred=raw.is_flagged,
            is_deleted=False,
        )
        self.db.add(email)
        self.db.flush()  # Flush to get email.id

        attachment_count = self.attachments.extract(email, message.attachments)
        logger.debug(
            f"Inserted message UID {raw.uid} ({message.subject[:50]}) "
            f"with {attachment_count} attachments"
        )
        return ReconcileOutcome(
            action=ReconcileAction.INSERTED,
            email_id=email.id,
            attachments=attachment_count,
        )

    def _update(
        self,
        user_id: uuid.UUID,
        folder_id: uuid.UUID,
        raw: RawMessage,
        message: NormalizedMessage,
        known: KnownMessageIndex,
    ) -> ReconcileOutcome:
        conflict = known.conflicting(raw.uid, message.message_id)
        if conflict:
            logger.warning(
                f"UID {raw.uid} and Message-ID {message.message_id} match different rows "
                f"in folder {folder_id}; updating the UID match"
            )

        stmt = update(EmailMessage).where(
            EmailMessage.user_id == user_id,
            EmailMessage.folder_id == folder_id,
            EmailMessage.is_deleted == False,  # noqa: E712
        )
        if raw.uid in known.by_uid:
            stmt = stmt.where(EmailMessage.remote_uid == raw.uid)
            email_id = known.by_uid[raw.uid]
        else:
            # UID changed since the last scan; Message-ID is the fallback key
            stmt = stmt.where(EmailMessage.message_id == message.message_id)
            email_id = known.by_message_id[message.message_id]

        self.db.execute(
            stmt.values(
                flags=list(raw.flags),
                is_read=raw.is_seen,
                is_starred=raw.is_flagged,
                updated_at=datetime.now(timezone.utc),
            ).execution_options(synchronize_session=False)
        )
        return ReconcileOutcome(
            action=ReconcileAction.UPDATED,
            email_id=email_id,
            conflict=conflict,
        )
