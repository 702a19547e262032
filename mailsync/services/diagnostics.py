"""
Diagnostic reports and health evaluation for sync runs.

Includes:
- Aggregation of per-folder SyncResults into a DiagnosticReport
- Category-level recommendations (one hint per failure category)
- Status message for a run
- Health classification from recency and error counters
"""
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from mailsync.models.email_credentials import EmailCredentials
from mailsync.models.enums import HealthStatus, SyncErrorType
from mailsync.schemas.sync import (
    ConfigSummary,
    DiagnosticReport,
    FolderReport,
    ReportSummary,
    SyncErrorSchema,
    SyncResult,
)
from mailsync.services.error_classifier import get_provider_guidance

RECOMMEND_CHECK_CREDENTIALS = "Fix the authentication problems by checking your credentials."
RECOMMEND_CHECK_CONNECTIVITY = "Check your internet connection and the mail server settings."
RECOMMEND_OFF_PEAK = "Response times are long. Try syncing during off-peak hours."
RECOMMEND_NOTHING_SYNCED = "No messages were synchronized. Check your settings and permissions."

# Health thresholds
ERROR_COUNT_LIMIT = 5
STALE_ERROR_HOURS = 24
STALE_WARNING_HOURS = 6


def build_config_summary(credentials: EmailCredentials) -> ConfigSummary:
    """Account summary shown in a report; never includes secrets."""
    return ConfigSummary(
        id=credentials.id,
        email=credentials.email_address,
        provider=credentials.provider,
        imap_host=credentials.imap_host,
        imap_port=credentials.imap_port,
        smtp_host=credentials.smtp_host,
        smtp_port=credentials.smtp_port,
    )


def success_rate(total_synced: int, total_errors: int) -> int:
    if total_errors == 0:
        return 100
    # Halves round up
    return math.floor(total_synced / (total_synced + total_errors) * 100 + 0.5)


def _folder_report(result: SyncResult) -> FolderReport:
    error = None
    if result.error is not None:
        error = SyncErrorSchema(
            type=result.error.type,
            user_message=result.error.user_message,
            solution=result.error.solution,
        )
    return FolderReport(
        folder=result.folder,
        synced=result.synced,
        errors=result.errors,
        error=error,
        warnings=list(result.warnings),
    )


def build_recommendations(
    config: ConfigSummary,
    results: Sequence[SyncResult],
    total_synced: int,
) -> List[str]:
    """One recommendation group per failure category present in ``results``."""
    kinds = {r.error.type for r in results if r.error is not None}
    recommendations: List[str] = []

    if SyncErrorType.AUTHENTICATION in kinds:
        recommendations.append(RECOMMEND_CHECK_CREDENTIALS)
        recommendations.append(get_provider_guidance(config.email))
    if SyncErrorType.CONNECTION in kinds:
        recommendations.append(RECOMMEND_CHECK_CONNECTIVITY)
    if SyncErrorType.TIMEOUT in kinds:
        recommendations.append(RECOMMEND_OFF_PEAK)
    if total_synced == 0:
        recommendations.append(RECOMMEND_NOTHING_SYNCED)

    return recommendations


def build_diagnostic_report(
    config: ConfigSummary,
    results: Sequence[SyncResult],
    timestamp: Optional[datetime] = None,
) -> DiagnosticReport:
    """
    Aggregate per-folder results into a DiagnosticReport.

    Args:
        config: Account summary
        results: One SyncResult per folder, in processing order
        timestamp: Report time (defaults to now, UTC)

    Returns:
        DiagnosticReport with totals, per-folder lines and recommendations
    """
    total_synced = sum(r.synced for r in results)
    total_errors = sum(r.errors for r in results)

    return DiagnosticReport(
        timestamp=timestamp or datetime.now(timezone.utc),
        config=config,
        summary=ReportSummary(
            total_synced=total_synced,
            total_errors=total_errors,
            folders_synced=len(results),
            success_rate=success_rate(total_synced, total_errors),
        ),
        folder_results=[_folder_report(r) for r in results],
        recommendations=build_recommendations(config, results, total_synced),
    )


def format_sync_status_message(total_synced: int, total_errors: int) -> str:
    """Human-readable one-line outcome of a sync run."""
    if total_errors == 0:
        return f"Sync successful: {total_synced} email(s) synchronized"
    if total_synced == 0:
        return "Sync failed: no emails synchronized"
    return (
        f"Partial sync: {total_synced} email(s) synchronized, "
        f"{total_errors} error(s)"
    )


def evaluate_health(
    last_sync_at: Optional[datetime],
    error_count: int,
    synced_count: int = 0,
    now: Optional[datetime] = None,
) -> HealthStatus:
    """
    Classify account health from sync recency and recent errors.

    A missing ``last_sync_at`` counts as 24 hours stale. ``synced_count``
    is accepted for callers that track it but does not affect the result.
    """
    if last_sync_at is None:
        hours_since_sync = float(STALE_ERROR_HOURS)
    else:
        now = now or datetime.now(timezone.utc)
        if last_sync_at.tzinfo is None:
            last_sync_at = last_sync_at.replace(tzinfo=timezone.utc)
        hours_since_sync = (now - last_sync_at).total_seconds() / 3600

    if error_count > ERROR_COUNT_LIMIT or hours_since_sync > STALE_ERROR_HOURS:
        return HealthStatus.ERROR
    if error_count > 0 or hours_since_sync > STALE_WARNING_HOURS:
        return HealthStatus.WARNING
    return HealthStatus.HEALTHY
