"""Moderation queue endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from moderation_core.api.v1.dependencies import PaginationDep, QueueServiceDep
from moderation_core.models import ModerationQueueItem
from moderation_core.schemas.common import DateRange, Page
from moderation_core.schemas.content_flag import BulkResult
from moderation_core.schemas.moderation_queue import (
    ActionLogFilters,
    ActionLogResponse,
    QueueAssign,
    QueueBulkAssign,
    QueueFilters,
    QueueItemCreate,
    QueueItemResponse,
    QueueItemUpdate,
    QueueProcess,
    QueueStats,
)

router = APIRouter(prefix="/moderation-queue", tags=["moderation-queue"])


@router.post("", response_model=QueueItemResponse, status_code=status.HTTP_201_CREATED)
async def add_to_queue(payload: QueueItemCreate, service: QueueServiceDep) -> ModerationQueueItem:
    """Queue content for review, or escalate its open slot."""
    return service.add_to_queue(
        payload.content_id,
        payload.content_type,
        priority=payload.priority,
        reason=payload.reason,
        flag_ids=payload.flag_ids,
    )


@router.get("", response_model=Page[QueueItemResponse])
async def list_queue_items(
    service: QueueServiceDep,
    pagination: PaginationDep,
    filters: Annotated[QueueFilters, Query()],
) -> dict[str, object]:
    """List queue items, highest priority first."""
    return service.get_queue_items(filters, pagination).as_response()


@router.get("/unassigned", response_model=list[QueueItemResponse])
async def unassigned_items(
    service: QueueServiceDep,
    limit: int | None = Query(None, ge=1),
) -> list[ModerationQueueItem]:
    """Return the next open items nobody has claimed."""
    return service.get_unassigned_items(limit)


@router.get("/assigned/{moderator_id}", response_model=Page[QueueItemResponse])
async def assigned_items(
    moderator_id: str,
    service: QueueServiceDep,
    pagination: PaginationDep,
) -> dict[str, object]:
    """Return the open items claimed by a moderator."""
    return service.get_assigned_items(moderator_id, pagination).as_response()


@router.get("/stats", response_model=QueueStats)
async def queue_stats(
    service: QueueServiceDep,
    window: Annotated[DateRange, Query()],
) -> QueueStats:
    """Return queue counts for dashboards."""
    return service.get_queue_stats(window.date_from, window.date_to)


@router.get("/action-logs", response_model=Page[ActionLogResponse])
async def action_logs(
    service: QueueServiceDep,
    pagination: PaginationDep,
    filters: Annotated[ActionLogFilters, Query()],
) -> dict[str, object]:
    """Return the moderation audit trail."""
    return service.get_action_logs(filters, pagination).as_response()


@router.post("/bulk-assign", response_model=BulkResult)
async def bulk_assign(payload: QueueBulkAssign, service: QueueServiceDep) -> BulkResult:
    """Claim several unassigned items; the count reports how many were won."""
    return BulkResult(count=service.bulk_assign_items(payload.item_ids, payload.moderator_id))


@router.post("/cleanup", response_model=BulkResult)
async def cleanup(
    service: QueueServiceDep,
    days_old: int | None = Query(None, ge=0),
) -> BulkResult:
    """Delete processed items older than ``days_old`` days."""
    return BulkResult(count=service.cleanup_old_items(days_old))


@router.get("/{item_id}", response_model=QueueItemResponse)
async def get_queue_item(item_id: str, service: QueueServiceDep) -> ModerationQueueItem:
    """Fetch a single queue item."""
    return service.get_queue_item_by_id(item_id)


@router.patch("/{item_id}", response_model=QueueItemResponse)
async def update_queue_item(
    item_id: str,
    payload: QueueItemUpdate,
    service: QueueServiceDep,
) -> ModerationQueueItem:
    """Edit an open queue item."""
    return service.update_queue_item(item_id, payload)


@router.post("/{item_id}/assign", response_model=QueueItemResponse)
async def assign_queue_item(
    item_id: str,
    payload: QueueAssign,
    service: QueueServiceDep,
) -> ModerationQueueItem:
    """Assign a queue item to a moderator."""
    return service.assign_queue_item(
        item_id,
        payload.moderator_id,
        only_if_unassigned=payload.only_if_unassigned,
    )


@router.post("/{item_id}/process", response_model=QueueItemResponse)
async def process_queue_item(
    item_id: str,
    payload: QueueProcess,
    service: QueueServiceDep,
) -> ModerationQueueItem:
    """Record the moderation decision for a queue item."""
    return service.process_queue_item(
        item_id,
        payload.action,
        payload.moderator_id,
        payload.notes,
    )


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_queue_item(item_id: str, service: QueueServiceDep) -> None:
    """Delete a queue item."""
    service.delete_queue_item(item_id)
