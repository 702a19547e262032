"""
Classification of raw sync failures into typed SyncError values.

Markers are matched as substrings of the error text, in this order:
authentication, connection, timeout, permission, server. Anything else is
``unknown``.
"""
from typing import Any, Dict, Optional, Tuple

from mailsync.models.enums import SyncErrorType
from mailsync.schemas.sync import SyncError

AUTH_MARKERS: Tuple[str, ...] = (
    "No supported authentication method",
    "Authentication failed",
    "Invalid credentials",
    "Login failed",
    "AUTHENTICATIONFAILED",
)
CONNECTION_MARKERS: Tuple[str, ...] = (
    "ECONNREFUSED",
    "ENOTFOUND",
    "Connection refused",
    "Connection timed out",
    "Name or service not known",
    "nodename nor servname",
)
TIMEOUT_MARKERS: Tuple[str, ...] = (
    "timeout",
    "TIMEOUT",
    "ETIMEDOUT",
    "timed out",
)
PERMISSION_MARKERS: Tuple[str, ...] = (
    "Permission denied",
    "Access denied",
    "Unauthorized",
)
SERVER_MARKERS: Tuple[str, ...] = (
    "Server error",
    "Internal server error",
    "503",
    "502",
)

# kind -> (user message, solution, retryable, code)
ERROR_TEMPLATES: Dict[SyncErrorType, Tuple[str, str, bool, str]] = {
    SyncErrorType.AUTHENTICATION: (
        "Authentication failed",
        "Verify your credentials. For providers that require app passwords "
        "(such as Gmail), generate one and use it instead of your account password.",
        False,
        "AUTH_FAILED",
    ),
    SyncErrorType.CONNECTION: (
        "Connection problem",
        "Check your internet connection and the mail server settings.",
        True,
        "CONN_FAILED",
    ),
    SyncErrorType.TIMEOUT: (
        "Connection timed out",
        "The connection is taking too long. Try again later.",
        True,
        "TIMEOUT",
    ),
    SyncErrorType.PERMISSION: (
        "Insufficient permissions",
        "Check that your account has the permissions required to read this mailbox.",
        False,
        "PERMISSION_DENIED",
    ),
    SyncErrorType.SERVER: (
        "Mail server error",
        "The mail server is having problems. Try again later.",
        True,
        "SERVER_ERROR",
    ),
    SyncErrorType.UNKNOWN: (
        "Unknown error",
        "An unexpected error occurred. Contact support if the problem persists.",
        True,
        "UNKNOWN_ERROR",
    ),
}

_MARKER_TABLE = (
    (SyncErrorType.AUTHENTICATION, AUTH_MARKERS),
    (SyncErrorType.CONNECTION, CONNECTION_MARKERS),
    (SyncErrorType.TIMEOUT, TIMEOUT_MARKERS),
    (SyncErrorType.PERMISSION, PERMISSION_MARKERS),
    (SyncErrorType.SERVER, SERVER_MARKERS),
)

PROVIDER_GUIDANCE: Dict[str, str] = {
    "gmail.com": "For Gmail, enable two-factor authentication and generate an app password.",
    "outlook.com": "For Outlook, use your regular account password.",
    "yahoo.com": "For Yahoo, generate an app password.",
    "icloud.com": "For iCloud, generate an app-specific password.",
    "aol.com": "For AOL, use your regular account password.",
}


def _error_text(error: Any) -> str:
    if error is None:
        return "Unknown error"
    if isinstance(error, bytes):
        return error.decode("utf-8", errors="replace")
    text = str(error)
    if not text and isinstance(error, BaseException):
        return type(error).__name__
    return text or "Unknown error"


def classify_error(error: Any) -> SyncError:
    """
    Map an exception (or error text) to a SyncError.

    Args:
        error: Exception, bytes or string describing the failure

    Returns:
        SyncError with kind, fixed user texts and retry eligibility
    """
    message = _error_text(error)

    kind = SyncErrorType.UNKNOWN
    for candidate, markers in _MARKER_TABLE:
        if any(marker in message for marker in markers):
            kind = candidate
            break

    return error_for_kind(kind, message)


def error_for_kind(kind: SyncErrorType, message: str) -> SyncError:
    """SyncError of a known kind, filled from its template."""
    user_message, solution, retryable, code = ERROR_TEMPLATES[kind]
    return SyncError(
        type=kind,
        message=message,
        user_message=user_message,
        solution=solution,
        retryable=retryable,
        code=code,
    )


def get_provider_guidance(email_address: Optional[str]) -> str:
    """Provider-specific remedy for an account address."""
    address = email_address or ""
    domain = address.lower().rsplit("@", 1)[-1] if "@" in address else ""
    guidance = PROVIDER_GUIDANCE.get(domain)
    if guidance:
        return guidance
    return f"Consult the documentation of {address} for its IMAP/SMTP settings."
