"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from mailsync.config import get_settings

# Sentry initialization (must be before app creation)
settings_early = get_settings()
if settings_early.sentry_dsn:
    import sentry_sdk
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings_early.sentry_dsn,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
            CeleryIntegration(),
        ],
        traces_sample_rate=0.1,
        profiles_sample_rate=0.1,
        environment="production" if not settings_early.debug else "development",
    )
from mailsync.api.routes import sync as sync_routes
from mailsync.database import async_session_maker, engine

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Get settings
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Mail Sync API...")
    logger.info(f"Debug mode: {settings.debug}")

    # Test database connection
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection established")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")

    yield

    # Cleanup
    logger.info("Shutting down Mail Sync API...")
    await engine.dispose()


# API Tags metadata for OpenAPI documentation
tags_metadata = [
    {
        "name": "Sync",
        "description": "IMAP folder and account synchronization, diagnostics and sync health.",
    },
]

# Create FastAPI application
app = FastAPI(
    title="Mail Sync API",
    description="""
## Mailbox Synchronization and Diagnostics

This API provides endpoints for:

- **Folder sync** - Mirror one IMAP folder into the local store
- **Account sync** - Sync several folders and get a diagnostic report with recommendations
- **Credentials** - Configure IMAP/SMTP settings (provider presets fill in hosts and ports)
- **Health** - Classify an account as healthy, warning or error
    """,
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=tags_metadata,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status information
    """
    db_status = "unknown"

    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
            db_status = "healthy"
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Health check - DB error: {e}")

    return {
        "status": "ok",
        "database": db_status,
        "version": "0.1.0",
    }


# Include routers
app.include_router(sync_routes.router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to Mail Sync API",
        "docs": "/docs",
        "health": "/health",
    }
