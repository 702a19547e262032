"""
Test configuration and shared fixtures.

Uses SQLite in-memory databases for fast, isolated tests: aiosqlite for the
async API session, a single shared in-memory connection for the synchronous
sync engine. IMAP is replaced by an in-memory fake server.
"""
import uuid
from email.message import EmailMessage as MimeMessage
from typing import AsyncGenerator, Dict, Iterator, List, Optional, Sequence

import pytest
import pytest_asyncio
from cryptography.fernet import Fernet
from httpx import ASGITransport, AsyncClient
from imapclient.exceptions import IMAPClientError
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from mailsync.config import Settings
from mailsync.models.base import Base
from mailsync.models.email_credentials import EmailCredentials
from mailsync.services.credentials import CredentialService, ImapSettings
from mailsync.services.encryption import CredentialEncryption
from mailsync.services.sync_engine import SyncOrchestrator

# SQLite async engine for API tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
)

TestingSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def make_raw_email(
    message_id: Optional[str] = "<msg-1@example.com>",
    subject: Optional[str] = "Hello",
    sender: Optional[str] = "Bob Sender <bob@example.com>",
    to: str = "alice@example.com",
    date: Optional[str] = "Mon, 13 Oct 2025 10:00:00 +0000",
    body: str = "Plain text body",
    html: Optional[str] = None,
    attachments: Sequence[tuple] = (),
) -> bytes:
    """Build an RFC 822 message. ``attachments`` holds (filename, bytes) pairs."""
    msg = MimeMessage()
    if message_id:
        msg["Message-ID"] = message_id
    if subject:
        msg["Subject"] = subject
    if sender:
        msg["From"] = sender
    msg["To"] = to
    if date:
        msg["Date"] = date
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")
    for filename, data in attachments:
        msg.add_attachment(data, maintype="application", subtype="pdf", filename=filename)
    return msg.as_bytes()


class FakeImapServer:
    """In-memory mailbox state shared by the FakeImapClient connections it creates."""

    def __init__(self):
        self.mailboxes: Dict[str, Dict[int, dict]] = {}
        self.clients: List["FakeImapClient"] = []
        self.connect_errors: List[Exception] = []
        self.login_errors: List[Exception] = []
        self.fetch_error: Optional[Exception] = None

    def add_mailbox(self, path: str) -> None:
        self.mailboxes.setdefault(path, {})

    def add_message(
        self,
        path: str,
        uid: int,
        source: bytes,
        flags: Sequence[bytes] = (),
    ) -> None:
        self.mailboxes.setdefault(path, {})[uid] = {
            b"FLAGS": tuple(flags),
            b"BODY[]": source,
            b"ENVELOPE": None,
        }

    def set_flags(self, path: str, uid: int, flags: Sequence[bytes]) -> None:
        self.mailboxes[path][uid][b"FLAGS"] = tuple(flags)

    def factory(self, imap: ImapSettings) -> "FakeImapClient":
        if self.connect_errors:
            raise self.connect_errors.pop(0)
        client = FakeImapClient(self, imap)
        self.clients.append(client)
        return client

    @property
    def logout_calls(self) -> int:
        return sum(client.logout_calls for client in self.clients)


class FakeImapClient:
    """The subset of IMAPClient used by the mailbox session."""

    def __init__(self, server: FakeImapServer, imap: ImapSettings):
        self.server = server
        self.imap = imap
        self.selected: Optional[str] = None
        self.select_attempts: List[str] = []
        self.readonly_flags: List[bool] = []
        self.logout_calls = 0

    def login(self, username: str, password: str) -> bytes:
        if self.server.login_errors:
            raise self.server.login_errors.pop(0)
        return b"LOGIN completed"

    def select_folder(self, path: str, readonly: bool = False) -> dict:
        self.select_attempts.append(path)
        self.readonly_flags.append(readonly)
        if path not in self.server.mailboxes:
            raise IMAPClientError(f"select failed: Mailbox doesn't exist: {path}")
        self.selected = path
        return {b"EXISTS": len(self.server.mailboxes[path])}

    def search(self, criteria="ALL") -> List[int]:
        return list(self.server.mailboxes[self.selected])

    def fetch(self, uids, items) -> Dict[int, dict]:
        if self.server.fetch_error is not None:
            raise self.server.fetch_error
        mailbox = self.server.mailboxes[self.selected]
        return {uid: dict(mailbox[uid]) for uid in uids if uid in mailbox}

    def logout(self) -> bytes:
        self.logout_calls += 1
        return b"LOGOUT completed"


@pytest.fixture
def sync_engine():
    """Shared in-memory SQLite engine usable from worker threads."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(sync_engine) -> sessionmaker:
    return sessionmaker(
        bind=sync_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
def db(session_factory) -> Iterator[Session]:
    """Synchronous session for arranging and asserting database state."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def encryption() -> CredentialEncryption:
    return CredentialEncryption(key=Fernet.generate_key().decode())


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def credentials(db: Session, user_id: uuid.UUID, encryption: CredentialEncryption) -> EmailCredentials:
    """Stored IMAP credentials for the test user."""
    return CredentialService(db, encryption).upsert_credentials(
        user_id=user_id,
        email_address="alice@example.com",
        imap_password="app-password",
        imap_host="imap.example.com",
        imap_port=993,
    )


@pytest.fixture
def imap_server() -> FakeImapServer:
    server = FakeImapServer()
    server.add_mailbox("INBOX")
    return server


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        sync_max_workers=1,
        sync_retry_attempts=3,
        sync_retry_base_delay=1.0,
        folder_sync_deadline_seconds=180.0,
        imap_fetch_batch_size=2,
    )


@pytest.fixture
def sleeps() -> List[float]:
    """Records the backoff delays requested by the retry wrapper."""
    return []


@pytest.fixture
def orchestrator(
    session_factory,
    test_settings: Settings,
    imap_server: FakeImapServer,
    encryption: CredentialEncryption,
    sleeps: List[float],
) -> SyncOrchestrator:
    return SyncOrchestrator(
        session_factory=session_factory,
        settings=test_settings,
        client_factory=imap_server.factory,
        encryption=encryption,
        sleep=sleeps.append,
    )


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables and provide an async test database session."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestingSessionLocal() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    orchestrator: SyncOrchestrator,
) -> AsyncGenerator[AsyncClient, None]:
    """Test HTTP client with overridden database and orchestrator dependencies."""
    from mailsync.api.deps import get_sync_orchestrator
    from mailsync.database import get_async_session
    from mailsync.main import app

    async def override_get_async_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_sync_orchestrator] = lambda: orchestrator

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
