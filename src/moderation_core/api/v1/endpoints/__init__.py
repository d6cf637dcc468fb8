# src/moderation_core/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .appeals import router as appeals_router
from .content_flags import router as content_flags_router
from .moderation_queue import router as moderation_queue_router
from .reports import router as reports_router

__all__ = [
    "appeals_router",
    "content_flags_router",
    "moderation_queue_router",
    "reports_router",
]
