"""Shared API dependencies for the moderation endpoints."""

from typing import Annotated

from fastapi import Depends, Query, Request, status
from sqlalchemy.orm import Session

from moderation_core.core.settings import Settings
from moderation_core.db.session import get_db
from moderation_core.schemas.common import Pagination
from moderation_core.services import (
    AppealService,
    ConflictError,
    ContentFlagService,
    EventPublisher,
    ModerationError,
    ModerationQueueService,
    NotFoundError,
    ReportService,
    ValidationFailure,
)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_settings(request: Request) -> Settings:
    """Return the settings the application was built with."""
    return request.app.state.settings


def get_publisher(request: Request) -> EventPublisher:
    """Return the application's event publisher."""
    return request.app.state.publisher


SettingsDep = Annotated[Settings, Depends(get_settings)]
PublisherDep = Annotated[EventPublisher, Depends(get_publisher)]


def get_pagination(
    settings: SettingsDep,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    sort_by: str | None = Query(None),
    sort_order: str | None = Query(None, pattern="^(asc|desc)$"),
) -> Pagination:
    """Build a ``Pagination`` from query parameters, capped at the configured page size."""
    size = settings.default_page_size if limit is None else limit
    return Pagination(
        page=page,
        limit=min(size, settings.max_page_size),
        sort_by=sort_by,
        sort_order=sort_order,
    )


PaginationDep = Annotated[Pagination, Depends(get_pagination)]


def get_report_service(db: SessionDep, publisher: PublisherDep) -> ReportService:
    return ReportService(db, publisher)


def get_content_flag_service(db: SessionDep, settings: SettingsDep) -> ContentFlagService:
    return ContentFlagService(
        db,
        flag_threshold=settings.flag_threshold,
        high_confidence_threshold=settings.high_confidence_threshold,
        high_confidence_limit=settings.high_confidence_limit,
    )


def get_queue_service(
    db: SessionDep,
    publisher: PublisherDep,
    settings: SettingsDep,
) -> ModerationQueueService:
    return ModerationQueueService(
        db,
        publisher,
        cleanup_days=settings.queue_cleanup_days,
        unassigned_limit=settings.unassigned_default_limit,
    )


def get_appeal_service(db: SessionDep, publisher: PublisherDep) -> AppealService:
    return AppealService(db, publisher)


ReportServiceDep = Annotated[ReportService, Depends(get_report_service)]
ContentFlagServiceDep = Annotated[ContentFlagService, Depends(get_content_flag_service)]
QueueServiceDep = Annotated[ModerationQueueService, Depends(get_queue_service)]
AppealServiceDep = Annotated[AppealService, Depends(get_appeal_service)]


def status_for(err: ModerationError) -> int:
    """Return the HTTP status code matching a service error.

    Args:
        err: Error raised by a moderation service

    Returns:
        404 for missing entities, 422 for rejected input, 409 for conflicts
    """
    if isinstance(err, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(err, ValidationFailure):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(err, ConflictError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST
