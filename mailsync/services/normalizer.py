"""
Raw RFC 822 source -> NormalizedMessage.

Parsing never raises: a message that cannot be normalized comes back as a
ParseResult carrying a ParseFailure.
"""
import logging
import secrets
from datetime import datetime, timezone
from email import policy
from email.message import EmailMessage as MimeMessage
from email.parser import BytesParser
from email.utils import parseaddr, parsedate_to_datetime
from typing import List, Optional, Tuple

from mailsync.schemas.message import (
    AttachmentDescriptor,
    NormalizedMessage,
    ParseFailure,
    ParseResult,
)

logger = logging.getLogger(__name__)

UNKNOWN_SENDER = "unknown@example.com"
NO_SUBJECT = "(no subject)"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _header(msg: MimeMessage, name: str) -> str:
    value = msg.get(name)
    return str(value).strip() if value is not None else ""


def _parse_from(raw_from: str) -> Tuple[str, Optional[str]]:
    name, address = parseaddr(raw_from)
    if not address or "@" not in address:
        return UNKNOWN_SENDER, name or None
    return address, name or None


def _parse_date(date_str: str, now: datetime) -> datetime:
    if not date_str:
        return now
    try:
        dt = parsedate_to_datetime(date_str)
    except (TypeError, ValueError, IndexError):
        return now
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def generate_message_id(now: Optional[datetime] = None) -> str:
    """Time-based stand-in for a missing Message-ID header."""
    now = now or datetime.now(timezone.utc)
    return f"{int(now.timestamp() * 1000)}-{secrets.token_hex(6)}"


def _part_text(part: Optional[MimeMessage]) -> str:
    if part is None:
        return ""
    try:
        return part.get_content()
    except (LookupError, UnicodeDecodeError):
        # Unknown or lying charset
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


def _extract_attachments(msg: MimeMessage) -> List[AttachmentDescriptor]:
    attachments = []
    for part in msg.walk():
        if part.is_multipart():
            continue
        filename = part.get_filename()
        if not filename:
            continue

        content_type = part.get_content_type() if part.get("Content-Type") else DEFAULT_CONTENT_TYPE
        content_id = _header(part, "Content-ID") or None
        payload = part.get_payload(decode=True) or b""

        attachments.append(
            AttachmentDescriptor(
                filename=filename,
                content_type=content_type or DEFAULT_CONTENT_TYPE,
                size_bytes=len(payload),
                content_id=content_id,
                is_inline=content_id is not None,
            )
        )
    return attachments


def normalize(raw: bytes, now: Optional[datetime] = None) -> NormalizedMessage:
    """
    Parse headers and MIME structure of a raw message.

    Raises whatever the parser raises on hopeless input; use
    ``parse_message`` for the non-raising variant.
    """
    now = now or datetime.now(timezone.utc)
    msg = BytesParser(policy=policy.default).parsebytes(raw)

    from_address, from_name = _parse_from(_header(msg, "From"))

    return NormalizedMessage(
        message_id=_header(msg, "Message-ID") or generate_message_id(now),
        from_address=from_address,
        from_name=from_name,
        to_address=_header(msg, "To"),
        cc_address=_header(msg, "Cc"),
        bcc_address=_header(msg, "Bcc"),
        subject=_header(msg, "Subject") or NO_SUBJECT,
        text_body=_part_text(msg.get_body(preferencelist=("plain",))),
        html_body=_part_text(msg.get_body(preferencelist=("html",))),
        date=_parse_date(_header(msg, "Date"), now),
        attachments=_extract_attachments(msg),
    )


def parse_message(raw: bytes, uid: int = 0, now: Optional[datetime] = None) -> ParseResult:
    """Normalize ``raw``, capturing any failure as a ParseFailure."""
    if not raw:
        return ParseResult(failure=ParseFailure(uid=uid, reason="empty message source"))
    try:
        return ParseResult(message=normalize(raw, now=now))
    except Exception as e:
        logger.warning(f"Failed to parse message UID {uid}: {e}")
        return ParseResult(failure=ParseFailure(uid=uid, reason=str(e) or type(e).__name__))
