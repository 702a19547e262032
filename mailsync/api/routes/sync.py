"""
Mailbox sync and diagnostics API routes.

Endpoints:
- POST /api/emails/sync - Sync one folder of a user
- POST /api/emails/sync/account - Sync several folders and build a diagnostic report
- PUT /api/emails/credentials - Create or replace a user's mail credentials
- GET /api/emails/diagnostics/{user_id} - Latest diagnostic report
- GET /api/emails/health/{user_id} - Sync health of an account
"""
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mailsync.api.deps import get_sync_orchestrator, parse_user_id
from mailsync.database import get_async_session
from mailsync.models.email_credentials import EmailCredentials
from mailsync.models.enums import SyncErrorType
from mailsync.models.sync_report import SyncReport
from mailsync.schemas.credentials import CredentialsUpdate
from mailsync.schemas.sync import (
    AccountSyncRequest,
    AccountSyncResponse,
    ConfigSummary,
    DiagnosticReport,
    HealthResponse,
    SyncError,
    SyncErrorSchema,
    SyncFailureResponse,
    SyncFolderRequest,
    SyncFolderResponse,
)
from mailsync.services.credentials import CredentialService
from mailsync.services.diagnostics import build_config_summary, evaluate_health
from mailsync.services.error_classifier import error_for_kind
from mailsync.services.exceptions import (
    CredentialsDecryptionError,
    CredentialsNotFoundError,
    FolderResolutionError,
)
from mailsync.services.sync_engine import SyncOrchestrator, folder_sync_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/emails", tags=["Sync"])

NO_CONFIGURATION = "No email configuration found"


def _error_schema(error: SyncError) -> SyncErrorSchema:
    return SyncErrorSchema(
        type=error.type,
        user_message=error.user_message,
        solution=error.solution,
        code=error.code,
        retryable=error.retryable,
    )


def _failure_response(error: SyncError, warnings: List[str]) -> JSONResponse:
    body = SyncFailureResponse(error=_error_schema(error), warnings=warnings)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(mode="json", by_alias=True),
    )


def _undecryptable_credentials(e: CredentialsDecryptionError) -> JSONResponse:
    logger.error(str(e))
    return _failure_response(
        error_for_kind(SyncErrorType.AUTHENTICATION, str(e)),
        ["Stored credentials could not be decrypted; save them again"],
    )


@router.post(
    "/sync",
    response_model=SyncFolderResponse,
    responses={500: {"model": SyncFailureResponse}},
    summary="Sync folder",
    description="Synchronize one folder of a user's mailbox into the local store.",
)
async def sync_folder(
    request: SyncFolderRequest,
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
):
    """
    Sync a single folder.

    IMAP access is blocking, so the sync runs in the threadpool.
    """
    user_id = parse_user_id(request.user_id)

    try:
        result = await run_in_threadpool(orchestrator.sync_folder, user_id, request.folder_name)
    except CredentialsNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=NO_CONFIGURATION,
        )
    except CredentialsDecryptionError as e:
        return _undecryptable_credentials(e)
    except FolderResolutionError as e:
        logger.error(f"Folder resolution failed for user {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Could not get folder {request.folder_name}",
        )

    if not result.success:
        return _failure_response(result.error, result.warnings)

    return SyncFolderResponse(
        synced=result.synced,
        new=result.new,
        updated=result.updated,
        message=folder_sync_message(result),
    )


@router.post(
    "/sync/account",
    response_model=AccountSyncResponse,
    responses={500: {"model": SyncFailureResponse}},
    summary="Sync account",
    description="Synchronize several folders and return a diagnostic report.",
)
async def sync_account(
    request: AccountSyncRequest,
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> AccountSyncResponse:
    """Run a multi-folder sync; folder failures are reported, not raised."""
    user_id = parse_user_id(request.user_id)

    try:
        outcome = await run_in_threadpool(orchestrator.sync_account, user_id, request.folders)
    except CredentialsNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=NO_CONFIGURATION,
        )
    except CredentialsDecryptionError as e:
        return _undecryptable_credentials(e)

    summary = outcome.report.summary
    return AccountSyncResponse(
        message=outcome.message,
        synced=summary.total_synced,
        errors=summary.total_errors,
        success=outcome.success,
        diagnostic=outcome.report,
        recommendations=outcome.report.recommendations,
    )


@router.put(
    "/credentials",
    response_model=ConfigSummary,
    summary="Configure credentials",
    description="Create or replace the IMAP/SMTP credentials of a user.",
)
async def update_credentials(
    request: CredentialsUpdate,
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> ConfigSummary:
    """Store credentials; host and port default to provider presets."""
    user_id = parse_user_id(request.user_id)

    def save() -> ConfigSummary:
        db = orchestrator.session_factory()
        try:
            credentials = CredentialService(db, orchestrator.encryption).upsert_credentials(
                user_id=user_id,
                email_address=request.email,
                imap_password=request.password,
                imap_username=request.imap_username,
                imap_host=request.imap_host,
                imap_port=request.imap_port,
                imap_use_tls=request.imap_use_tls,
                smtp_host=request.smtp_host,
                smtp_port=request.smtp_port,
                smtp_username=request.smtp_username,
                smtp_password=request.smtp_password,
                smtp_use_tls=request.smtp_use_tls,
            )
            return build_config_summary(credentials)
        finally:
            db.close()

    try:
        return await run_in_threadpool(save)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.get(
    "/diagnostics/{user_id}",
    response_model=DiagnosticReport,
    summary="Latest diagnostic report",
    description="Get the diagnostic report of the user's most recent account sync.",
)
async def get_latest_diagnostics(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> DiagnosticReport:
    result = await db.execute(
        select(SyncReport)
        .where(SyncReport.user_id == user_id)
        .order_by(SyncReport.created_at.desc())
        .limit(1)
    )
    report = result.scalar_one_or_none()

    if not report:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No sync report found",
        )

    return DiagnosticReport.model_validate(report.report)


@router.get(
    "/health/{user_id}",
    response_model=HealthResponse,
    summary="Sync health",
    description="Classify the account as healthy, warning or error.",
)
async def get_sync_health(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> HealthResponse:
    result = await db.execute(
        select(EmailCredentials).where(EmailCredentials.user_id == user_id)
    )
    credentials = result.scalar_one_or_none()

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=NO_CONFIGURATION,
        )

    return HealthResponse(
        user_id=user_id,
        status=evaluate_health(
            credentials.last_sync_at,
            credentials.recent_error_count,
            credentials.recent_synced_count,
        ),
        last_sync_at=credentials.last_sync_at,
        error_count=credentials.recent_error_count,
        synced_count=credentials.recent_synced_count,
    )
