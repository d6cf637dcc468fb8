"""Moderation-queue Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from moderation_core.models.enums import ContentType, ModerationAction

from .common import DateRange


class QueueItemCreate(BaseModel):
    """Schema for adding content to the moderation queue."""

    content_id: str = Field(..., min_length=1)
    content_type: ContentType
    priority: int | None = Field(None, ge=1, le=4, description="Overrides the computed priority")
    reason: str | None = Field(None, max_length=500)
    flag_ids: list[str] = Field(default_factory=list, description="ContentFlag ids")


class QueueItemUpdate(BaseModel):
    """Edits allowed on an unprocessed queue item."""

    priority: int | None = Field(None, ge=1, le=4)
    reason: str | None = Field(None, max_length=500)
    notes: str | None = None


class QueueAssign(BaseModel):
    """Assign a single queue item."""

    moderator_id: str = Field(..., min_length=1)
    only_if_unassigned: bool = Field(
        False,
        description="Fail with 409 instead of overriding an existing assignee",
    )


class QueueBulkAssign(BaseModel):
    """Claim several unassigned queue items."""

    item_ids: list[str] = Field(..., min_length=1)
    moderator_id: str = Field(..., min_length=1)


class QueueProcess(BaseModel):
    """Record the moderation decision for a queue item."""

    action: ModerationAction
    moderator_id: str = Field(..., min_length=1)
    notes: str | None = None


class QueueFilters(DateRange):
    """Filters accepted by ``get_queue_items``."""

    content_type: ContentType | None = None
    priority: int | None = Field(None, ge=1, le=4)
    assigned_to: str | None = None
    is_processed: bool | None = None


class QueueItemResponse(BaseModel):
    """Schema for queue item information returned by the API."""

    id: str
    content_id: str
    content_type: ContentType
    priority: int
    reason: str | None
    flags: list[str]
    assigned_to: str | None
    is_processed: bool
    processed_at: datetime | None
    action: ModerationAction
    notes: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QueueStats(BaseModel):
    """Queue counts for dashboards."""

    total: int
    processed: int
    unprocessed: int
    assigned: int
    unassigned: int
    by_type: dict[str, int]
    by_priority: dict[int, int]


class QueueItemActionMetadata(BaseModel):
    """Metadata stored on the action-log row written by queue processing."""

    kind: Literal["queue_item"] = "queue_item"
    queue_item_id: str
    original_priority: int = Field(..., ge=1, le=4)
    flags: list[str] = Field(default_factory=list)


class ActionLogFilters(DateRange):
    """Filters accepted by ``get_action_logs``."""

    moderator_id: str | None = None
    target_id: str | None = None
    action: ModerationAction | None = None


class ActionLogResponse(BaseModel):
    """Schema for action-log rows returned by the API."""

    id: str
    moderator_id: str
    action: ModerationAction
    target_id: str
    target_type: str
    reason: str | None
    metadata: QueueItemActionMetadata
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _read_metadata_attribute(cls, data: object) -> object:
        if not isinstance(data, dict):
            extracted: dict[str, object | None] = {}
            for field_name in cls.model_fields:
                attr = "metadata_" if field_name == "metadata" else field_name
                extracted[field_name] = getattr(data, attr, None)
            data = extracted
        return data
