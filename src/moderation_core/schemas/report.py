"""Report-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from moderation_core.models.enums import ContentType, ReportStatus, ReportType

from .common import DateRange


class ReportCreate(BaseModel):
    """Schema for submitting a new report."""

    reporter_id: str = Field(..., min_length=1, description="User filing the report")
    reported_user_id: str | None = Field(None, description="User being reported")
    content_id: str | None = Field(None, description="Content being reported")
    content_type: ContentType | None = Field(None, description="Type of the reported content")
    report_type: ReportType
    reason: str | None = Field(None, max_length=500)
    description: str | None = Field(None, max_length=5000)
    priority: int | None = Field(None, ge=1, le=4, description="Overrides the severity default")

    @model_validator(mode="after")
    def _require_target(self) -> ReportCreate:
        if self.content_id is None and self.content_type is not None:
            raise ValueError("content_type requires content_id")
        if self.content_id is not None and self.content_type is None:
            raise ValueError("content_id requires content_type")
        if self.content_id is None and self.reported_user_id is None:
            raise ValueError("a report needs a reported user or a content target")
        return self


class ReportUpdate(BaseModel):
    """Generic moderator patch for a report."""

    status: ReportStatus | None = None
    priority: int | None = Field(None, ge=1, le=4)
    assigned_to: str | None = None
    resolution: str | None = None


class ReportAssign(BaseModel):
    """Assign a report to a moderator."""

    moderator_id: str = Field(..., min_length=1)


class ReportResolve(BaseModel):
    """Close a report with a resolution."""

    moderator_id: str = Field(..., min_length=1)
    resolution: str = Field(..., min_length=1)


class ReportDismiss(BaseModel):
    """Close a report without action."""

    moderator_id: str = Field(..., min_length=1)
    resolution: str | None = None


class ReportFilters(DateRange):
    """Filters accepted by ``get_reports``."""

    status: ReportStatus | None = None
    report_type: ReportType | None = None
    priority: int | None = Field(None, ge=1, le=4)
    assigned_to: str | None = None
    reporter_id: str | None = None
    reported_user_id: str | None = None
    content_id: str | None = None
    content_type: ContentType | None = None


class ReportResponse(BaseModel):
    """Schema for report information returned by the API."""

    id: str
    reporter_id: str
    reported_user_id: str | None
    content_id: str | None
    content_type: ContentType | None
    report_type: ReportType
    reason: str | None
    description: str | None
    priority: int
    status: ReportStatus
    assigned_to: str | None
    assigned_at: datetime | None
    resolution: str | None
    reviewed_by: str | None
    reviewed_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportStats(BaseModel):
    """Report counts for dashboards."""

    total: int
    pending: int
    under_review: int
    resolved: int
    dismissed: int
    by_type: dict[str, int]
    by_priority: dict[int, int]
