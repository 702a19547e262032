"""
Database configuration and session management.

The API uses the async engine; the sync engine and Celery workers use a
synchronous session because IMAP access is blocking.
"""
from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker

from mailsync.config import get_settings

settings = get_settings()

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Create async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.
    Usage in FastAPI endpoints:
        async def endpoint(session: AsyncSession = Depends(get_async_session)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@lru_cache
def get_sync_sessionmaker() -> sessionmaker:
    """
    Build (once) the synchronous session factory.

    Folder syncs run in worker threads and Celery tasks, so they need a
    sync session. The sync URL is derived from the async one.
    """
    sync_engine = create_engine(settings.sync_database_url, pool_pre_ping=True)
    return sessionmaker(
        bind=sync_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


def get_sync_session() -> Session:
    """Create a synchronous database session."""
    return get_sync_sessionmaker()()
