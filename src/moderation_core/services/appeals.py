"""Appeal workflow: contesting the outcome of a report.

Appeals move PENDING -> APPROVED | REJECTED and never leave a terminal state.
Approving an appeal does not undo the original moderation action; the
``appeal.approved`` event tells the downstream collaborator to do that.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from moderation_core.db.time import as_utc, utcnow
from moderation_core.models import Appeal, AppealStatus, Report
from moderation_core.schemas.appeal import (
    AppealCreate,
    AppealFilters,
    AppealResponse,
    AppealStats,
    AppealTimeline,
    AppealUpdate,
    TimelineEvent,
)
from moderation_core.schemas.common import Paginated, Pagination
from moderation_core.schemas.report import ReportResponse

from .errors import ConflictError, InvalidTransitionError, NotFoundError
from .events import (
    APPEAL_APPROVED,
    APPEAL_REJECTED,
    AppealReviewedPayload,
    DomainEvent,
    EventPublisher,
)
from .query import apply_date_range, coerce, count_by, created_between, paginate

logger = logging.getLogger(__name__)

_SORTABLE = {
    "created_at": Appeal.created_at,
    "reviewed_at": Appeal.reviewed_at,
    "status": Appeal.status,
}


class AppealService:
    """Service handling appeals and their review."""

    def __init__(self, db: Session, publisher: EventPublisher | None = None) -> None:
        self.db = db
        self.publisher = publisher or EventPublisher()

    def can_user_appeal(self, report_id: str, user_id: str) -> bool:
        """Return True if ``user_id`` may appeal the outcome of ``report_id``.

        The report must exist and be closed, the user must be the reported
        party, and the report must not already carry an appeal.
        """
        report = self.db.get(Report, report_id)
        if report is None:
            return False
        if not report.status.is_terminal:
            return False
        if report.reported_user_id is None or report.reported_user_id != user_id:
            return False
        return self._find_by_report(report_id) is None

    def create_appeal(self, report_id: str, appellant_id: str, reason: str) -> Appeal:
        """File a PENDING appeal against ``report_id``.

        Raises:
            ValidationFailure: On empty identifiers or reason.
            NotFoundError: If the report does not exist.
            ConflictError: If the report already has an appeal.
        """
        payload = coerce(
            AppealCreate,
            {"report_id": report_id, "appellant_id": appellant_id, "reason": reason},
        )
        if self.db.get(Report, payload.report_id) is None:
            raise NotFoundError("Report", payload.report_id)
        if self._find_by_report(payload.report_id) is not None:
            raise ConflictError(f"Appeal already exists for report {payload.report_id}")

        appeal = Appeal(
            report_id=payload.report_id,
            appellant_id=payload.appellant_id,
            reason=payload.reason,
            status=AppealStatus.PENDING,
        )
        self.db.add(appeal)
        try:
            self.db.commit()
        except IntegrityError as err:
            self.db.rollback()
            raise ConflictError(
                f"Appeal already exists for report {payload.report_id}"
            ) from err
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to create appeal for report %s", payload.report_id)
            raise

        self.db.refresh(appeal)
        logger.info(
            "Appeal created: %s for report %s by user %s",
            appeal.id,
            payload.report_id,
            payload.appellant_id,
        )
        return appeal

    def get_appeal_by_id(self, appeal_id: str) -> Appeal:
        """Return an appeal or raise ``NotFoundError``."""
        appeal = self.db.get(Appeal, appeal_id)
        if appeal is None:
            raise NotFoundError("Appeal", appeal_id)
        return appeal

    def get_appeals(
        self,
        filters: AppealFilters | Mapping[str, Any] | None = None,
        pagination: Pagination | None = None,
    ) -> Paginated[Appeal]:
        """Return a filtered page of appeals, newest first by default."""
        criteria = coerce(AppealFilters, filters)
        query = self.db.query(Appeal)
        if criteria.appellant_id is not None:
            query = query.filter(Appeal.appellant_id == criteria.appellant_id)
        if criteria.status is not None:
            query = query.filter(Appeal.status == criteria.status)
        if criteria.reviewed_by is not None:
            query = query.filter(Appeal.reviewed_by == criteria.reviewed_by)
        query = apply_date_range(query, Appeal.created_at, criteria.date_from, criteria.date_to)
        return paginate(
            query,
            pagination or Pagination(),
            sortable=_SORTABLE,
            default_sort="created_at",
            default_order="desc",
            tiebreaker=Appeal.created_at,
        )

    def get_appeals_by_appellant(
        self, appellant_id: str, pagination: Pagination | None = None
    ) -> Paginated[Appeal]:
        return self.get_appeals(AppealFilters(appellant_id=appellant_id), pagination)

    def get_appeals_by_reviewer(
        self, reviewer_id: str, pagination: Pagination | None = None
    ) -> Paginated[Appeal]:
        return self.get_appeals(AppealFilters(reviewed_by=reviewer_id), pagination)

    def get_pending_appeals(self, pagination: Pagination | None = None) -> Paginated[Appeal]:
        pagination = pagination or Pagination()
        if pagination.sort_by is None:
            # Oldest first: pending appeals are worked in filing order.
            pagination = pagination.model_copy(
                update={"sort_by": "created_at", "sort_order": pagination.sort_order or "asc"}
            )
        return self.get_appeals(AppealFilters(status=AppealStatus.PENDING), pagination)

    def approve_appeal(self, appeal_id: str, reviewer_id: str, notes: str | None = None) -> Appeal:
        """Approve a pending appeal."""
        return self._decide(appeal_id, AppealStatus.APPROVED, reviewer_id, notes)

    def reject_appeal(self, appeal_id: str, reviewer_id: str, notes: str | None = None) -> Appeal:
        """Reject a pending appeal."""
        return self._decide(appeal_id, AppealStatus.REJECTED, reviewer_id, notes)

    def update_appeal(self, appeal_id: str, patch: AppealUpdate | Mapping[str, Any]) -> Appeal:
        """Apply a generic patch.

        A status change to APPROVED/REJECTED goes through the same guarded
        transition as ``approve_appeal``/``reject_appeal``. A decided appeal
        keeps its status and reviewer; only its notes may still be edited.
        """
        changes = coerce(AppealUpdate, patch)
        appeal = self.get_appeal_by_id(appeal_id)
        fields = changes.model_dump(exclude_unset=True)

        new_status = fields.get("status")
        if new_status is not None and new_status != appeal.status:
            if new_status == AppealStatus.PENDING:
                raise InvalidTransitionError("Appeal", appeal.status.value, new_status.value)
            reviewer = fields.get("reviewed_by") or appeal.reviewed_by
            if reviewer is None:
                raise ConflictError("A decided appeal needs a reviewer")
            notes = fields.get("review_notes", appeal.review_notes)
            return self._decide(appeal_id, new_status, reviewer, notes)

        if appeal.status.is_terminal and fields.get("reviewed_by") not in (None, appeal.reviewed_by):
            raise ConflictError(f"Appeal {appeal_id} is already decided by {appeal.reviewed_by}")
        if "reviewed_by" in fields and not appeal.status.is_terminal:
            appeal.reviewed_by = fields["reviewed_by"]
        if "review_notes" in fields:
            appeal.review_notes = fields["review_notes"]
        self._commit("update appeal")
        logger.info("Appeal updated: %s", appeal_id)
        return appeal

    def delete_appeal(self, appeal_id: str) -> bool:
        """Delete an appeal."""
        appeal = self.get_appeal_by_id(appeal_id)
        self.db.delete(appeal)
        self._commit("delete appeal")
        logger.info("Appeal deleted: %s", appeal_id)
        return True

    def get_appeal_stats(
        self,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> AppealStats:
        """Return appeal counts by status."""
        by_status = count_by(
            self.db,
            Appeal.status,
            *created_between(Appeal.created_at, date_from, date_to),
        )
        return AppealStats(
            total=sum(by_status.values()),
            pending=by_status.get(AppealStatus.PENDING.value, 0),
            approved=by_status.get(AppealStatus.APPROVED.value, 0),
            rejected=by_status.get(AppealStatus.REJECTED.value, 0),
        )

    def get_appeal_timeline(self, report_id: str) -> AppealTimeline:
        """Merge the report lifecycle and its appeal into one chronological list."""
        report = self.db.get(Report, report_id)
        if report is None:
            raise NotFoundError("Report", report_id)
        appeal = self._find_by_report(report_id)

        events = [
            TimelineEvent(
                type="report_created",
                timestamp=as_utc(report.created_at),
                actor_id=report.reporter_id,
                description="Report submitted",
                details=report.reason,
            )
        ]
        if report.assigned_at is not None:
            events.append(
                TimelineEvent(
                    type="report_assigned",
                    timestamp=as_utc(report.assigned_at),
                    actor_id=report.assigned_to,
                    description="Report assigned for review",
                )
            )
        if report.status.is_terminal and report.reviewed_at is not None:
            verb = report.status.value.lower()
            events.append(
                TimelineEvent(
                    type=f"report_{verb}",
                    timestamp=as_utc(report.reviewed_at),
                    actor_id=report.reviewed_by,
                    description=f"Report {verb}",
                    details=report.resolution,
                )
            )
        if appeal is not None:
            events.append(
                TimelineEvent(
                    type="appeal_filed",
                    timestamp=as_utc(appeal.created_at),
                    actor_id=appeal.appellant_id,
                    description="Appeal submitted",
                    details=appeal.reason,
                )
            )
            if appeal.status.is_terminal and appeal.reviewed_at is not None:
                verb = appeal.status.value.lower()
                events.append(
                    TimelineEvent(
                        type=f"appeal_{verb}",
                        timestamp=as_utc(appeal.reviewed_at),
                        actor_id=appeal.reviewed_by,
                        description=f"Appeal {verb}",
                        details=appeal.review_notes or "No review notes provided",
                    )
                )

        events.sort(key=lambda event: event.timestamp)
        return AppealTimeline(
            report=ReportResponse.model_validate(report),
            appeal=AppealResponse.model_validate(appeal) if appeal is not None else None,
            events=events,
        )

    def _decide(
        self,
        appeal_id: str,
        status: AppealStatus,
        reviewer_id: str,
        notes: str | None,
    ) -> Appeal:
        appeal = self.get_appeal_by_id(appeal_id)
        if appeal.status.is_terminal:
            raise InvalidTransitionError("Appeal", appeal.status.value, status.value)

        try:
            won = self.db.execute(
                update(Appeal)
                .where(Appeal.id == appeal_id, Appeal.status == AppealStatus.PENDING)
                .values(
                    status=status,
                    reviewed_by=reviewer_id,
                    reviewed_at=utcnow(),
                    review_notes=notes,
                )
                .execution_options(synchronize_session=False)
            ).rowcount
            if not won:
                self.db.rollback()
                self.db.refresh(appeal)
                raise InvalidTransitionError("Appeal", appeal.status.value, status.value)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to record %s on appeal %s", status.value, appeal_id)
            raise

        self.db.refresh(appeal)
        logger.info("Appeal %s: %s by reviewer %s", status.value.lower(), appeal_id, reviewer_id)
        self.publisher.publish(
            DomainEvent(
                type=APPEAL_APPROVED if status == AppealStatus.APPROVED else APPEAL_REJECTED,
                target_id=appeal.id,
                actor_id=reviewer_id,
                payload=AppealReviewedPayload(
                    report_id=appeal.report_id,
                    appellant_id=appeal.appellant_id,
                    status=status,
                    review_notes=notes,
                ),
            )
        )
        return appeal

    def _find_by_report(self, report_id: str) -> Appeal | None:
        return self.db.query(Appeal).filter(Appeal.report_id == report_id).first()

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to %s", operation)
            raise
