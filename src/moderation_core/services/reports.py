"""Report intake and review services."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from moderation_core.db.time import utcnow
from moderation_core.models import Report, ReportStatus, ReportType
from moderation_core.schemas.common import Paginated, Pagination
from moderation_core.schemas.report import (
    ReportCreate,
    ReportFilters,
    ReportStats,
    ReportUpdate,
)

from .errors import ConflictError, InvalidTransitionError, NotFoundError
from .events import (
    REPORT_DISMISSED,
    REPORT_RESOLVED,
    DomainEvent,
    EventPublisher,
    ReportReviewedPayload,
)
from .query import apply_date_range, coerce, count_by, created_between, paginate

logger = logging.getLogger(__name__)

# Default severity per report type, 4 = most severe.
REPORT_TYPE_PRIORITY: dict[ReportType, int] = {
    ReportType.THREAT: 4,
    ReportType.HATE_SPEECH: 4,
    ReportType.COPYRIGHT_VIOLATION: 3,
    ReportType.HARASSMENT: 3,
    ReportType.INAPPROPRIATE_CONTENT: 2,
    ReportType.SPAM: 2,
    ReportType.MISLEADING: 2,
    ReportType.OTHER: 1,
}

# Allowed status moves; terminal states have no exits.
REPORT_TRANSITIONS: dict[ReportStatus, frozenset[ReportStatus]] = {
    ReportStatus.PENDING: frozenset(
        {ReportStatus.UNDER_REVIEW, ReportStatus.RESOLVED, ReportStatus.DISMISSED}
    ),
    ReportStatus.UNDER_REVIEW: frozenset(
        {ReportStatus.PENDING, ReportStatus.RESOLVED, ReportStatus.DISMISSED}
    ),
    ReportStatus.RESOLVED: frozenset(),
    ReportStatus.DISMISSED: frozenset(),
}

_SORTABLE = {
    "created_at": Report.created_at,
    "priority": Report.priority,
    "status": Report.status,
    "report_type": Report.report_type,
    "reviewed_at": Report.reviewed_at,
}


def calculate_priority(report_type: ReportType) -> int:
    """Return the default severity priority for ``report_type``."""
    return REPORT_TYPE_PRIORITY.get(ReportType(report_type), 1)


class ReportService:
    """Service handling report intake and the report state machine."""

    def __init__(self, db: Session, publisher: EventPublisher | None = None) -> None:
        self.db = db
        self.publisher = publisher or EventPublisher()

    calculate_priority = staticmethod(calculate_priority)

    def create_report(self, data: ReportCreate | Mapping[str, Any]) -> Report:
        """Persist a new report.

        The report is not queued for moderation; callers that want that
        compose ``ModerationQueueService.add_to_queue`` explicitly.
        """
        payload = coerce(ReportCreate, data)
        priority = payload.priority or calculate_priority(payload.report_type)
        report = Report(
            reporter_id=payload.reporter_id,
            reported_user_id=payload.reported_user_id,
            content_id=payload.content_id,
            content_type=payload.content_type,
            report_type=payload.report_type,
            reason=payload.reason,
            description=payload.description,
            priority=priority,
            status=ReportStatus.PENDING,
        )
        self.db.add(report)
        self._commit("create report")
        self.db.refresh(report)
        logger.info("Report created: %s by user %s", report.id, payload.reporter_id)
        return report

    def get_report_by_id(self, report_id: str) -> Report:
        """Return a report or raise ``NotFoundError``."""
        report = self.db.get(Report, report_id)
        if report is None:
            raise NotFoundError("Report", report_id)
        return report

    def get_reports(
        self,
        filters: ReportFilters | Mapping[str, Any] | None = None,
        pagination: Pagination | None = None,
    ) -> Paginated[Report]:
        """Return a filtered page of reports, newest first by default."""
        criteria = coerce(ReportFilters, filters)
        query = self.db.query(Report)
        if criteria.status is not None:
            query = query.filter(Report.status == criteria.status)
        if criteria.report_type is not None:
            query = query.filter(Report.report_type == criteria.report_type)
        if criteria.priority is not None:
            query = query.filter(Report.priority == criteria.priority)
        if criteria.assigned_to is not None:
            query = query.filter(Report.assigned_to == criteria.assigned_to)
        if criteria.reporter_id is not None:
            query = query.filter(Report.reporter_id == criteria.reporter_id)
        if criteria.reported_user_id is not None:
            query = query.filter(Report.reported_user_id == criteria.reported_user_id)
        if criteria.content_id is not None:
            query = query.filter(Report.content_id == criteria.content_id)
        if criteria.content_type is not None:
            query = query.filter(Report.content_type == criteria.content_type)
        query = apply_date_range(query, Report.created_at, criteria.date_from, criteria.date_to)

        return paginate(
            query,
            pagination or Pagination(),
            sortable=_SORTABLE,
            default_sort="created_at",
            default_order="desc",
            tiebreaker=Report.created_at,
        )

    def update_report(
        self,
        report_id: str,
        patch: ReportUpdate | Mapping[str, Any],
        updated_by: str | None = None,
    ) -> Report:
        """Apply a moderator patch.

        Any status change away from PENDING stamps ``reviewed_at`` and
        ``reviewed_by``. Terminal reports refuse every status change and
        every field edit.
        """
        changes = coerce(ReportUpdate, patch)
        report = self.get_report_by_id(report_id)
        fields = changes.model_dump(exclude_unset=True)

        if report.status.is_terminal and fields.keys() - {"status"}:
            raise ConflictError(
                f"Report {report_id} is {report.status.value} and can no longer be edited"
            )

        new_status = fields.get("status")
        if new_status is not None and new_status != report.status:
            self._check_transition(report, new_status)
            report.status = new_status
            if new_status != ReportStatus.PENDING:
                report.reviewed_at = utcnow()
                report.reviewed_by = updated_by
        if "priority" in fields and fields["priority"] is not None:
            report.priority = fields["priority"]
        if "assigned_to" in fields:
            report.assigned_to = fields["assigned_to"]
            report.assigned_at = utcnow() if fields["assigned_to"] else None
        if "resolution" in fields:
            report.resolution = fields["resolution"]

        self._commit("update report")
        logger.info("Report updated: %s by user %s", report_id, updated_by)
        return report

    def delete_report(self, report_id: str) -> bool:
        """Delete a report (its appeal goes with it)."""
        report = self.get_report_by_id(report_id)
        self.db.delete(report)
        self._commit("delete report")
        logger.info("Report deleted: %s", report_id)
        return True

    def assign_report(self, report_id: str, moderator_id: str) -> Report:
        """Hand a report to a moderator, moving PENDING to UNDER_REVIEW."""
        report = self.get_report_by_id(report_id)
        if report.status != ReportStatus.UNDER_REVIEW:
            self._check_transition(report, ReportStatus.UNDER_REVIEW)
        report.status = ReportStatus.UNDER_REVIEW
        report.assigned_to = moderator_id
        report.assigned_at = utcnow()
        self._commit("assign report")
        logger.info("Report %s assigned to moderator %s", report_id, moderator_id)
        return report

    def resolve_report(self, report_id: str, resolution: str, moderator_id: str) -> Report:
        """Close a report as RESOLVED."""
        return self._close(report_id, ReportStatus.RESOLVED, resolution, moderator_id)

    def dismiss_report(self, report_id: str, resolution: str | None, moderator_id: str) -> Report:
        """Close a report as DISMISSED."""
        return self._close(report_id, ReportStatus.DISMISSED, resolution, moderator_id)

    def get_report_stats(
        self,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> ReportStats:
        """Return report counts by status, type and priority."""
        window = created_between(Report.created_at, date_from, date_to)
        by_status = count_by(self.db, Report.status, *window)
        return ReportStats(
            total=sum(by_status.values()),
            pending=by_status.get(ReportStatus.PENDING.value, 0),
            under_review=by_status.get(ReportStatus.UNDER_REVIEW.value, 0),
            resolved=by_status.get(ReportStatus.RESOLVED.value, 0),
            dismissed=by_status.get(ReportStatus.DISMISSED.value, 0),
            by_type=count_by(self.db, Report.report_type, *window),
            by_priority=count_by(self.db, Report.priority, *window),
        )

    def _close(
        self,
        report_id: str,
        status: ReportStatus,
        resolution: str | None,
        moderator_id: str,
    ) -> Report:
        report = self.get_report_by_id(report_id)
        self._check_transition(report, status)
        report.status = status
        report.resolution = resolution
        report.reviewed_at = utcnow()
        report.reviewed_by = moderator_id
        self._commit(f"{status.value.lower()} report")
        logger.info("Report %s %s by moderator %s", report_id, status.value.lower(), moderator_id)

        self.publisher.publish(
            DomainEvent(
                type=REPORT_RESOLVED if status == ReportStatus.RESOLVED else REPORT_DISMISSED,
                target_id=report.id,
                actor_id=moderator_id,
                payload=ReportReviewedPayload(
                    status=status,
                    resolution=resolution,
                    reported_user_id=report.reported_user_id,
                    content_id=report.content_id,
                ),
            )
        )
        return report

    @staticmethod
    def _check_transition(report: Report, requested: ReportStatus) -> None:
        if requested not in REPORT_TRANSITIONS[report.status]:
            raise InvalidTransitionError("Report", report.status.value, requested.value)

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to %s", operation)
            raise
