"""Appeal-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from moderation_core.models.enums import AppealStatus

from .common import DateRange
from .report import ReportResponse


class AppealCreate(BaseModel):
    """Schema for filing an appeal."""

    report_id: str = Field(..., min_length=1)
    appellant_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=5000)


class AppealUpdate(BaseModel):
    """Generic patch for an appeal."""

    status: AppealStatus | None = None
    reviewed_by: str | None = None
    review_notes: str | None = None


class AppealDecision(BaseModel):
    """Reviewer decision payload for approve/reject."""

    reviewer_id: str = Field(..., min_length=1)
    notes: str | None = None


class AppealFilters(DateRange):
    """Filters accepted by ``get_appeals``."""

    appellant_id: str | None = None
    status: AppealStatus | None = None
    reviewed_by: str | None = None


class AppealResponse(BaseModel):
    """Schema for appeal information returned by the API."""

    id: str
    report_id: str
    appellant_id: str
    reason: str
    status: AppealStatus
    reviewed_by: str | None
    reviewed_at: datetime | None
    review_notes: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AppealEligibility(BaseModel):
    """Answer to "may this user appeal this report"."""

    report_id: str
    user_id: str
    can_appeal: bool


class AppealStats(BaseModel):
    """Appeal counts for dashboards."""

    total: int
    pending: int
    approved: int
    rejected: int


class TimelineEvent(BaseModel):
    """One entry in an appeal timeline."""

    type: str
    timestamp: datetime
    actor_id: str | None
    description: str
    details: str | None = None


class AppealTimeline(BaseModel):
    """Chronological history of a report and its appeal."""

    report: ReportResponse
    appeal: AppealResponse | None
    events: list[TimelineEvent]

    model_config = ConfigDict(from_attributes=True)
