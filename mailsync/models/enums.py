"""
Enum types for database models and sync results.
"""
from enum import Enum


class SyncErrorType(str, Enum):
    """Failure categories produced by the error classifier."""
    AUTHENTICATION = "authentication"
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    PERMISSION = "permission"
    SERVER = "server"
    UNKNOWN = "unknown"


class HealthStatus(str, Enum):
    """Coarse sync health of an account."""
    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"


class ReconcileAction(str, Enum):
    """What the reconciliation engine did with a message."""
    INSERTED = "inserted"
    UPDATED = "updated"
