"""API routes package."""
from mailsync.api.routes import sync

__all__ = ["sync"]
