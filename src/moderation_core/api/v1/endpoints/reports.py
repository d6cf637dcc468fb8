"""Report intake and review endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from moderation_core.api.v1.dependencies import PaginationDep, ReportServiceDep
from moderation_core.models import Report
from moderation_core.schemas.common import DateRange, Page
from moderation_core.schemas.report import (
    ReportAssign,
    ReportCreate,
    ReportDismiss,
    ReportFilters,
    ReportResolve,
    ReportResponse,
    ReportStats,
    ReportUpdate,
)

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report(payload: ReportCreate, service: ReportServiceDep) -> Report:
    """Submit a new report."""
    return service.create_report(payload)


@router.get("", response_model=Page[ReportResponse])
async def list_reports(
    service: ReportServiceDep,
    pagination: PaginationDep,
    filters: Annotated[ReportFilters, Query()],
) -> dict[str, object]:
    """List reports matching the given filters."""
    return service.get_reports(filters, pagination).as_response()


@router.get("/stats", response_model=ReportStats)
async def report_stats(
    service: ReportServiceDep,
    window: Annotated[DateRange, Query()],
) -> ReportStats:
    """Return report counts for dashboards."""
    return service.get_report_stats(window.date_from, window.date_to)


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(report_id: str, service: ReportServiceDep) -> Report:
    """Fetch a single report."""
    return service.get_report_by_id(report_id)


@router.patch("/{report_id}", response_model=ReportResponse)
async def update_report(
    report_id: str,
    payload: ReportUpdate,
    service: ReportServiceDep,
    updated_by: str | None = Query(None),
) -> Report:
    """Apply a moderator patch to a report."""
    return service.update_report(report_id, payload, updated_by)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(report_id: str, service: ReportServiceDep) -> None:
    """Delete a report."""
    service.delete_report(report_id)


@router.post("/{report_id}/assign", response_model=ReportResponse)
async def assign_report(
    report_id: str,
    payload: ReportAssign,
    service: ReportServiceDep,
) -> Report:
    """Hand a report to a moderator."""
    return service.assign_report(report_id, payload.moderator_id)


@router.post("/{report_id}/resolve", response_model=ReportResponse)
async def resolve_report(
    report_id: str,
    payload: ReportResolve,
    service: ReportServiceDep,
) -> Report:
    """Close a report as resolved."""
    return service.resolve_report(report_id, payload.resolution, payload.moderator_id)


@router.post("/{report_id}/dismiss", response_model=ReportResponse)
async def dismiss_report(
    report_id: str,
    payload: ReportDismiss,
    service: ReportServiceDep,
) -> Report:
    """Close a report without action."""
    return service.dismiss_report(report_id, payload.resolution, payload.moderator_id)
