# src/moderation_core/services/__init__.py
"""Business logic services for the moderation core."""

from .appeals import AppealService
from .content_flags import ContentFlagService
from .errors import (
    ConflictError,
    InvalidTransitionError,
    ModerationError,
    NotFoundError,
    ValidationFailure,
)
from .events import (
    DomainEvent,
    EventDispatcher,
    EventPublisher,
    LoggingDispatcher,
    ModerationMetrics,
    RecordingDispatcher,
)
from .moderation_queue import ModerationQueueService
from .reports import ReportService

__all__ = [
    "AppealService",
    "ConflictError",
    "ContentFlagService",
    "DomainEvent",
    "EventDispatcher",
    "EventPublisher",
    "InvalidTransitionError",
    "LoggingDispatcher",
    "ModerationError",
    "ModerationMetrics",
    "ModerationQueueService",
    "NotFoundError",
    "RecordingDispatcher",
    "ReportService",
    "ValidationFailure",
]
