"""Tests for the message normalizer."""
from datetime import datetime, timezone

from conftest import make_raw_email

from mailsync.services.normalizer import (
    NO_SUBJECT,
    UNKNOWN_SENDER,
    generate_message_id,
    normalize,
    parse_message,
)

NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


class TestNormalize:
    """Tests for normalize."""

    def test_headers(self):
        message = normalize(make_raw_email(), now=NOW)

        assert message.message_id == "<msg-1@example.com>"
        assert message.from_address == "bob@example.com"
        assert message.from_name == "Bob Sender"
        assert message.to_address == "alice@example.com"
        assert message.subject == "Hello"
        assert message.date == datetime(2025, 10, 13, 10, 0, tzinfo=timezone.utc)

    def test_plain_and_html_bodies(self):
        raw = make_raw_email(body="plain part", html="<p>html part</p>")
        message = normalize(raw, now=NOW)

        assert "plain part" in message.text_body
        assert "<p>html part</p>" in message.html_body

    def test_defaults_for_missing_headers(self):
        raw = make_raw_email(message_id=None, subject=None, sender=None, date=None)
        message = normalize(raw, now=NOW)

        assert message.from_address == UNKNOWN_SENDER
        assert message.subject == NO_SUBJECT
        assert message.date == NOW
        assert message.message_id.startswith(f"{int(NOW.timestamp() * 1000)}-")

    def test_unparseable_date_uses_now(self):
        message = normalize(make_raw_email(date="not a date"), now=NOW)
        assert message.date == NOW

    def test_attachments(self):
        raw = make_raw_email(attachments=[("invoice.pdf", b"%PDF-1.4 data")])
        message = normalize(raw, now=NOW)

        assert len(message.attachments) == 1
        attachment = message.attachments[0]
        assert attachment.filename == "invoice.pdf"
        assert attachment.content_type == "application/pdf"
        assert attachment.size_bytes == len(b"%PDF-1.4 data")
        assert attachment.content_id is None
        assert attachment.is_inline is False

    def test_inline_attachment_with_content_id(self):
        raw = (
            b"From: bob@example.com\r\n"
            b"Subject: Inline\r\n"
            b"MIME-Version: 1.0\r\n"
            b'Content-Type: multipart/related; boundary="XX"\r\n'
            b"\r\n"
            b"--XX\r\n"
            b"Content-Type: text/html\r\n"
            b"\r\n"
            b'<img src="cid:logo">\r\n'
            b"--XX\r\n"
            b"Content-Type: image/png\r\n"
            b'Content-Disposition: inline; filename="logo.png"\r\n'
            b"Content-ID: <logo>\r\n"
            b"Content-Transfer-Encoding: base64\r\n"
            b"\r\n"
            b"iVBORw0KGgo=\r\n"
            b"--XX--\r\n"
        )
        message = normalize(raw, now=NOW)

        assert len(message.attachments) == 1
        assert message.attachments[0].content_id == "<logo>"
        assert message.attachments[0].is_inline is True


class TestParseMessage:
    """Tests for parse_message."""

    def test_ok(self):
        result = parse_message(make_raw_email(), uid=7)
        assert result.ok
        assert result.failure is None

    def test_empty_source_is_failure(self):
        result = parse_message(b"", uid=9)
        assert not result.ok
        assert result.failure.uid == 9

    def test_garbage_does_not_raise(self):
        result = parse_message(b"\x00\xff\xfe not really an email", uid=3)
        # Either parsed leniently or reported; never raised
        assert result.ok or result.failure.uid == 3


def test_generated_message_ids_are_unique():
    assert generate_message_id(NOW) != generate_message_id(NOW)
