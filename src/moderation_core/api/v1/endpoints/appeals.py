"""Appeal workflow endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from moderation_core.api.v1.dependencies import AppealServiceDep, PaginationDep
from moderation_core.models import Appeal
from moderation_core.schemas.appeal import (
    AppealCreate,
    AppealDecision,
    AppealEligibility,
    AppealFilters,
    AppealResponse,
    AppealStats,
    AppealTimeline,
    AppealUpdate,
)
from moderation_core.schemas.common import DateRange, Page

router = APIRouter(prefix="/appeals", tags=["appeals"])


@router.post("", response_model=AppealResponse, status_code=status.HTTP_201_CREATED)
async def create_appeal(payload: AppealCreate, service: AppealServiceDep) -> Appeal:
    """File an appeal against a report outcome."""
    return service.create_appeal(payload.report_id, payload.appellant_id, payload.reason)


@router.get("", response_model=Page[AppealResponse])
async def list_appeals(
    service: AppealServiceDep,
    pagination: PaginationDep,
    filters: Annotated[AppealFilters, Query()],
) -> dict[str, object]:
    """List appeals matching the given filters."""
    return service.get_appeals(filters, pagination).as_response()


@router.get("/pending", response_model=Page[AppealResponse])
async def pending_appeals(
    service: AppealServiceDep,
    pagination: PaginationDep,
) -> dict[str, object]:
    """List pending appeals, oldest first."""
    return service.get_pending_appeals(pagination).as_response()


@router.get("/stats", response_model=AppealStats)
async def appeal_stats(
    service: AppealServiceDep,
    window: Annotated[DateRange, Query()],
) -> AppealStats:
    """Return appeal counts for dashboards."""
    return service.get_appeal_stats(window.date_from, window.date_to)


@router.get("/eligibility", response_model=AppealEligibility)
async def appeal_eligibility(
    service: AppealServiceDep,
    report_id: str = Query(..., min_length=1),
    user_id: str = Query(..., min_length=1),
) -> AppealEligibility:
    """Tell whether a user may appeal a report."""
    return AppealEligibility(
        report_id=report_id,
        user_id=user_id,
        can_appeal=service.can_user_appeal(report_id, user_id),
    )


@router.get("/timeline/{report_id}", response_model=AppealTimeline)
async def appeal_timeline(report_id: str, service: AppealServiceDep) -> AppealTimeline:
    """Return the chronological history of a report and its appeal."""
    return service.get_appeal_timeline(report_id)


@router.get("/{appeal_id}", response_model=AppealResponse)
async def get_appeal(appeal_id: str, service: AppealServiceDep) -> Appeal:
    """Fetch a single appeal."""
    return service.get_appeal_by_id(appeal_id)


@router.patch("/{appeal_id}", response_model=AppealResponse)
async def update_appeal(
    appeal_id: str,
    payload: AppealUpdate,
    service: AppealServiceDep,
) -> Appeal:
    """Apply a patch to an appeal."""
    return service.update_appeal(appeal_id, payload)


@router.post("/{appeal_id}/approve", response_model=AppealResponse)
async def approve_appeal(
    appeal_id: str,
    payload: AppealDecision,
    service: AppealServiceDep,
) -> Appeal:
    """Approve a pending appeal."""
    return service.approve_appeal(appeal_id, payload.reviewer_id, payload.notes)


@router.post("/{appeal_id}/reject", response_model=AppealResponse)
async def reject_appeal(
    appeal_id: str,
    payload: AppealDecision,
    service: AppealServiceDep,
) -> Appeal:
    """Reject a pending appeal."""
    return service.reject_appeal(appeal_id, payload.reviewer_id, payload.notes)


@router.delete("/{appeal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appeal(appeal_id: str, service: AppealServiceDep) -> None:
    """Delete an appeal."""
    service.delete_appeal(appeal_id)
