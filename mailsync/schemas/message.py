"""
Message schemas shared by the stream reader, normalizer and reconciler.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

SEEN_FLAG = "\\Seen"
FLAGGED_FLAG = "\\Flagged"


@dataclass
class RawMessage:
    """One record from the message stream reader."""
    uid: int
    flags: List[str] = field(default_factory=list)
    source: bytes = b""
    envelope: Optional[Any] = None

    @property
    def is_seen(self) -> bool:
        return SEEN_FLAG in self.flags

    @property
    def is_flagged(self) -> bool:
        return FLAGGED_FLAG in self.flags


class AttachmentDescriptor(BaseModel):
    """Attachment metadata parsed from a MIME part."""

    filename: str
    content_type: str = "application/octet-stream"
    size_bytes: int = 0
    content_id: Optional[str] = None
    is_inline: bool = False


class NormalizedMessage(BaseModel):
    """Structured view of a raw RFC 822 message."""

    message_id: str = Field(..., description="Message-ID header or generated token")
    from_address: str = Field("unknown@example.com", description="Sender address")
    from_name: Optional[str] = Field(None, description="Sender display name")
    to_address: str = ""
    cc_address: str = ""
    bcc_address: str = ""
    subject: str = "(no subject)"
    text_body: str = ""
    html_body: str = ""
    date: datetime = Field(..., description="Parsed Date header, or parse time")
    attachments: List[AttachmentDescriptor] = Field(default_factory=list)


@dataclass
class ParseFailure:
    """Why a raw message could not be normalized."""
    uid: int
    reason: str


@dataclass
class ParseResult:
    """Either a normalized message or a parse failure."""
    message: Optional[NormalizedMessage] = None
    failure: Optional[ParseFailure] = None

    @property
    def ok(self) -> bool:
        return self.message is not None
