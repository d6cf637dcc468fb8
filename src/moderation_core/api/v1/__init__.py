# src/moderation_core/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    appeals_router,
    content_flags_router,
    moderation_queue_router,
    reports_router,
)

__all__ = [
    "appeals_router",
    "content_flags_router",
    "moderation_queue_router",
    "reports_router",
]
