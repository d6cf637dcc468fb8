# src/moderation_core/models/__init__.py
"""SQLAlchemy models for the moderation core."""

from .appeal import Appeal
from .content_flag import ContentFlag
from .enums import (
    AppealStatus,
    ContentFlagType,
    ContentType,
    ModerationAction,
    ReportStatus,
    ReportType,
)
from .moderation_queue import ModerationActionLog, ModerationQueueItem
from .report import Report

__all__ = [
    "Appeal", "AppealStatus",
    "ContentFlag", "ContentFlagType",
    "ContentType",
    "ModerationAction", "ModerationActionLog", "ModerationQueueItem",
    "Report", "ReportStatus", "ReportType",
]
