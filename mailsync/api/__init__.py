# API routes
from mailsync.api.deps import get_sync_orchestrator, parse_user_id

__all__ = [
    "get_sync_orchestrator",
    "parse_user_id",
]
