# src/moderation_core/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of moderation data for serialization and validation.
"""

from .appeal import AppealCreate, AppealResponse, AppealTimeline, AppealUpdate
from .common import DateRange, Page, PageMeta, Paginated, Pagination
from .content_flag import ContentFlagCreate, ContentFlagFilters, ContentFlagResponse
from .moderation_queue import QueueFilters, QueueItemCreate, QueueItemResponse
from .report import ReportCreate, ReportFilters, ReportResponse, ReportUpdate

__all__ = [
    "AppealCreate", "AppealResponse", "AppealTimeline", "AppealUpdate",
    "ContentFlagCreate", "ContentFlagFilters", "ContentFlagResponse",
    "DateRange", "Page", "PageMeta", "Paginated", "Pagination",
    "QueueFilters", "QueueItemCreate", "QueueItemResponse",
    "ReportCreate", "ReportFilters", "ReportResponse", "ReportUpdate",
]
