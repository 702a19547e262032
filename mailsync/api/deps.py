"""
API dependencies.
"""
from uuid import UUID

from fastapi import HTTPException, status

from mailsync.services.sync_engine import get_sync_orchestrator

__all__ = ["get_sync_orchestrator", "parse_user_id"]


def parse_user_id(raw: str) -> UUID:
    """
    Validate a user id taken from a request body.

    Raises:
        HTTPException: 400 if missing or not a UUID
    """
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User ID is required",
        )
    try:
        return UUID(raw)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User ID must be a valid UUID",
        )
