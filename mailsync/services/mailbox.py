"""
IMAP mailbox session and message stream reader.

``open_mailbox`` connects (with retry), logs in, selects the primary path
or the first fallback that opens, and always logs out when the ``with``
block exits, whether normally or through an exception.
"""
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Sequence

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError

from mailsync.schemas.message import RawMessage
from mailsync.services.credentials import ImapSettings
from mailsync.services.error_classifier import classify_error
from mailsync.services.exceptions import MailboxConnectionError, MailboxOpenError
from mailsync.services.retry import retry_operation

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ImapSettings], Any]

# BODY.PEEK leaves \Seen untouched on the server
FETCH_ITEMS = ["FLAGS", "BODY.PEEK[]", "ENVELOPE"]
BODY_KEY = b"BODY[]"


def imapclient_factory(timeout: Optional[float] = 30.0) -> ClientFactory:
    """Build a factory producing unauthenticated IMAPClient connections."""

    def factory(imap: ImapSettings) -> IMAPClient:
        return IMAPClient(imap.host, port=imap.port, ssl=imap.use_tls, timeout=timeout)

    return factory


def _decode_flag(flag: Any) -> str:
    return flag.decode("utf-8", errors="replace") if isinstance(flag, bytes) else str(flag)


def _logout(client: Any) -> None:
    try:
        client.logout()
    except Exception as e:
        logger.warning(f"IMAP logout failed: {e}")


class MailboxSession:
    """An authenticated connection with one mailbox selected."""

    def __init__(
        self,
        client: Any,
        selected_path: str,
        message_count: int,
        batch_size: int = 50,
    ):
        self.client = client
        self.selected_path = selected_path
        self.message_count = message_count
        self.batch_size = max(1, batch_size)
        self.warnings: List[str] = []

    def iter_messages(self) -> Iterator[RawMessage]:
        """
        Lazily yield every message currently in the mailbox (``1:*``).

        UIDs come from ``SEARCH ALL`` and are fetched in batches. Records
        without a raw source are skipped and noted in ``warnings``.
        """
        uids = sorted(self.client.search("ALL"))
        logger.info(f"Streaming {len(uids)} messages from {self.selected_path}")

        for start in range(0, len(uids), self.batch_size):
            batch = uids[start:start + self.batch_size]
            response = self.client.fetch(batch, FETCH_ITEMS)

            for uid in batch:
                data = response.get(uid)
                source = data.get(BODY_KEY) if data else None
                if not source:
                    logger.warning(f"No source for message UID {uid} in {self.selected_path}")
                    self.warnings.append(f"Message UID {uid} skipped: no retrievable source")
                    continue

                yield RawMessage(
                    uid=uid,
                    flags=[_decode_flag(f) for f in data.get(b"FLAGS", ())],
                    source=bytes(source),
                    envelope=data.get(b"ENVELOPE"),
                )


def _select_first(
    client: Any,
    primary_path: str,
    fallbacks: Sequence[str],
    batch_size: int,
) -> MailboxSession:
    attempted: List[str] = []
    for path in [primary_path, *fallbacks]:
        if path in attempted:
            continue
        attempted.append(path)
        try:
            info = client.select_folder(path, readonly=True)
        except IMAPClientError as e:
            logger.info(f"Failed to open mailbox {path}: {e}")
            continue

        count = int(info.get(b"EXISTS", 0)) if info else 0
        if path != primary_path:
            logger.info(f"Opened fallback mailbox {path} instead of {primary_path}")
        logger.info(f"Opened mailbox {path}, messages: {count}")
        return MailboxSession(client, path, count, batch_size=batch_size)

    raise MailboxOpenError(primary_path, attempted)


@contextmanager
def open_mailbox(
    imap: ImapSettings,
    primary_path: str,
    fallbacks: Sequence[str] = (),
    client_factory: Optional[ClientFactory] = None,
    batch_size: int = 50,
    retry_attempts: int = 3,
    retry_base_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[MailboxSession]:
    """
    Open an authenticated session on ``primary_path`` or a fallback.

    Raises:
        MailboxConnectionError: Connect/login failed after retries
        MailboxOpenError: No candidate path could be selected
    """
    factory = client_factory or imapclient_factory()

    def connect() -> Any:
        client = factory(imap)
        try:
            client.login(imap.username, imap.password)
        except Exception:
            _logout(client)
            raise
        return client

    logger.info(f"Connecting to IMAP {imap.username}@{imap.host}:{imap.port} (TLS: {imap.use_tls})")
    try:
        client = retry_operation(
            connect,
            max_attempts=retry_attempts,
            base_delay=retry_base_delay,
            sleep=sleep,
            description=f"IMAP connect to {imap.host}",
        )
    except Exception as e:
        sync_error = classify_error(e)
        raise MailboxConnectionError(str(e), sync_error) from e

    try:
        yield _select_first(client, primary_path, fallbacks, batch_size)
    finally:
        _logout(client)
        logger.info(f"IMAP connection closed for {imap.username}@{imap.host}")
