"""Content-flag Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from moderation_core.models.enums import ContentFlagType, ContentType

from .common import DateRange


class ContentFlagCreate(BaseModel):
    """Schema for recording a new content flag."""

    content_id: str = Field(..., min_length=1)
    content_type: ContentType
    flag_type: ContentFlagType
    confidence: float = Field(..., ge=0.0, le=1.0, description="Opaque detector score")
    flagged_by: str | None = Field(None, description="User or detector that raised the flag")
    reason: str | None = Field(None, max_length=500)


class ContentFlagUpdate(BaseModel):
    """Edits allowed on an unresolved flag."""

    confidence: float | None = Field(None, ge=0.0, le=1.0)
    reason: str | None = Field(None, max_length=500)


class FlagResolve(BaseModel):
    """Mark a flag resolved."""

    resolver_id: str = Field(..., min_length=1)


class BulkFlagResolve(BaseModel):
    """Mark several flags resolved."""

    flag_ids: list[str] = Field(..., min_length=1)
    resolver_id: str = Field(..., min_length=1)


class ContentFlagFilters(DateRange):
    """Filters accepted by ``get_content_flags``."""

    content_id: str | None = None
    content_type: ContentType | None = None
    flag_type: ContentFlagType | None = None
    is_resolved: bool | None = None
    flagged_by: str | None = None
    min_confidence: float | None = Field(None, ge=0.0, le=1.0)
    max_confidence: float | None = Field(None, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_confidence_range(self) -> ContentFlagFilters:
        if (
            self.min_confidence is not None
            and self.max_confidence is not None
            and self.min_confidence > self.max_confidence
        ):
            raise ValueError("min_confidence must not exceed max_confidence")
        return self


class ContentFlagResponse(BaseModel):
    """Schema for content flag information returned by the API."""

    id: str
    content_id: str
    content_type: ContentType
    flag_type: ContentFlagType
    confidence: float
    flagged_by: str | None
    reason: str | None
    is_resolved: bool
    resolved_by: str | None
    resolved_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ContentFlagStats(BaseModel):
    """Flag counts for dashboards."""

    total: int
    resolved: int
    unresolved: int
    by_type: dict[str, int]
    by_content_type: dict[str, int]
    average_confidence: float


class BulkResult(BaseModel):
    """Number of rows a bulk operation actually changed."""

    count: int
