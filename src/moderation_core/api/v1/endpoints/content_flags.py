"""Content flag registry endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from moderation_core.api.v1.dependencies import ContentFlagServiceDep, PaginationDep
from moderation_core.models import ContentFlag
from moderation_core.schemas.common import DateRange, Page
from moderation_core.schemas.content_flag import (
    BulkFlagResolve,
    BulkResult,
    ContentFlagCreate,
    ContentFlagFilters,
    ContentFlagResponse,
    ContentFlagStats,
    ContentFlagUpdate,
    FlagResolve,
)

router = APIRouter(prefix="/content-flags", tags=["content-flags"])


@router.post("", response_model=ContentFlagResponse, status_code=status.HTTP_201_CREATED)
async def create_content_flag(
    payload: ContentFlagCreate,
    service: ContentFlagServiceDep,
) -> ContentFlag:
    """Record a flag, reusing an open flag of the same type on the same content."""
    return service.create_content_flag(payload)


@router.get("", response_model=Page[ContentFlagResponse])
async def list_content_flags(
    service: ContentFlagServiceDep,
    pagination: PaginationDep,
    filters: Annotated[ContentFlagFilters, Query()],
) -> dict[str, object]:
    """List flags matching the given filters."""
    return service.get_content_flags(filters, pagination).as_response()


@router.get("/high-confidence", response_model=list[ContentFlagResponse])
async def high_confidence_flags(
    service: ContentFlagServiceDep,
    threshold: float | None = Query(None, ge=0.0, le=1.0),
    limit: int | None = Query(None, ge=1),
) -> list[ContentFlag]:
    """Return unresolved flags at or above the threshold, strongest first."""
    return service.get_high_confidence_flags(threshold, limit)


@router.get("/stats", response_model=ContentFlagStats)
async def content_flag_stats(
    service: ContentFlagServiceDep,
    window: Annotated[DateRange, Query()],
) -> ContentFlagStats:
    """Return flag counts for dashboards."""
    return service.get_content_flag_stats(window.date_from, window.date_to)


@router.post("/bulk-resolve", response_model=BulkResult)
async def bulk_resolve_flags(
    payload: BulkFlagResolve,
    service: ContentFlagServiceDep,
) -> BulkResult:
    """Resolve several flags at once."""
    return BulkResult(count=service.bulk_resolve_flags(payload.flag_ids, payload.resolver_id))


@router.get("/content/{content_id}", response_model=list[ContentFlagResponse])
async def flags_for_content(
    content_id: str,
    service: ContentFlagServiceDep,
) -> list[ContentFlag]:
    """Return the unresolved flags on a content item."""
    return service.get_content_flags_by_content_id(content_id)


@router.get("/{flag_id}", response_model=ContentFlagResponse)
async def get_content_flag(flag_id: str, service: ContentFlagServiceDep) -> ContentFlag:
    """Fetch a single flag."""
    return service.get_content_flag_by_id(flag_id)


@router.patch("/{flag_id}", response_model=ContentFlagResponse)
async def update_content_flag(
    flag_id: str,
    payload: ContentFlagUpdate,
    service: ContentFlagServiceDep,
) -> ContentFlag:
    """Edit an unresolved flag."""
    return service.update_content_flag(flag_id, payload)


@router.post("/{flag_id}/resolve", response_model=ContentFlagResponse)
async def resolve_content_flag(
    flag_id: str,
    payload: FlagResolve,
    service: ContentFlagServiceDep,
) -> ContentFlag:
    """Mark a flag resolved."""
    return service.resolve_content_flag(flag_id, payload.resolver_id)


@router.delete("/{flag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_content_flag(flag_id: str, service: ContentFlagServiceDep) -> None:
    """Delete a flag."""
    service.delete_content_flag(flag_id)
