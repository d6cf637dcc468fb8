"""Content flag registry services."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from moderation_core.db.time import utcnow
from moderation_core.models import ContentFlag
from moderation_core.schemas.common import Paginated, Pagination
from moderation_core.schemas.content_flag import (
    ContentFlagCreate,
    ContentFlagFilters,
    ContentFlagStats,
    ContentFlagUpdate,
)

from .errors import ConflictError, NotFoundError, ValidationFailure
from .query import apply_date_range, coerce, count_by, created_between, paginate

logger = logging.getLogger(__name__)

DEFAULT_FLAG_THRESHOLD = 0.7
DEFAULT_HIGH_CONFIDENCE_THRESHOLD = 0.8
DEFAULT_HIGH_CONFIDENCE_LIMIT = 50

_SORTABLE = {
    "created_at": ContentFlag.created_at,
    "confidence": ContentFlag.confidence,
    "flag_type": ContentFlag.flag_type,
    "resolved_at": ContentFlag.resolved_at,
}


def should_flag_content(confidence: float, threshold: float = DEFAULT_FLAG_THRESHOLD) -> bool:
    """Return True when an automated signal warrants a flag."""
    return confidence >= threshold


class ContentFlagService:
    """Service managing confidence-scored content flags."""

    def __init__(
        self,
        db: Session,
        *,
        flag_threshold: float = DEFAULT_FLAG_THRESHOLD,
        high_confidence_threshold: float = DEFAULT_HIGH_CONFIDENCE_THRESHOLD,
        high_confidence_limit: int = DEFAULT_HIGH_CONFIDENCE_LIMIT,
    ) -> None:
        self.db = db
        self.flag_threshold = flag_threshold
        self.high_confidence_threshold = high_confidence_threshold
        self.high_confidence_limit = high_confidence_limit

    def should_flag_content(self, confidence: float, threshold: float | None = None) -> bool:
        """Check ``confidence`` against ``threshold`` (or the configured default)."""
        return should_flag_content(
            confidence,
            self.flag_threshold if threshold is None else threshold,
        )

    def create_content_flag(self, data: ContentFlagCreate | Mapping[str, Any]) -> ContentFlag:
        """Record a flag for a content item.

        An open flag of the same type on the same content is reused: its
        confidence is raised when the new signal is stronger. Resolved flags
        are left alone and a new row is written instead.
        """
        payload = coerce(ContentFlagCreate, data)
        existing = (
            self.db.query(ContentFlag)
            .filter(
                ContentFlag.content_id == payload.content_id,
                ContentFlag.flag_type == payload.flag_type,
                ContentFlag.is_resolved.is_(False),
            )
            .order_by(ContentFlag.created_at.desc())
            .first()
        )
        if existing is not None:
            if payload.confidence > existing.confidence:
                existing.confidence = payload.confidence
                if payload.reason is not None:
                    existing.reason = payload.reason
                self._commit("raise flag confidence")
                logger.info(
                    "Content flag %s confidence raised to %.3f",
                    existing.id,
                    payload.confidence,
                )
            return existing

        flag = ContentFlag(
            content_id=payload.content_id,
            content_type=payload.content_type,
            flag_type=payload.flag_type,
            confidence=payload.confidence,
            flagged_by=payload.flagged_by,
            reason=payload.reason,
        )
        self.db.add(flag)
        self._commit("create content flag")
        self.db.refresh(flag)
        logger.info("Content flag created: %s for content %s", flag.id, payload.content_id)
        return flag

    def get_content_flag_by_id(self, flag_id: str) -> ContentFlag:
        """Return a flag or raise ``NotFoundError``."""
        flag = self.db.get(ContentFlag, flag_id)
        if flag is None:
            raise NotFoundError("ContentFlag", flag_id)
        return flag

    def get_content_flags(
        self,
        filters: ContentFlagFilters | Mapping[str, Any] | None = None,
        pagination: Pagination | None = None,
    ) -> Paginated[ContentFlag]:
        """Return a filtered page of flags, newest first by default."""
        criteria = coerce(ContentFlagFilters, filters)
        query = self.db.query(ContentFlag)
        if criteria.content_id is not None:
            query = query.filter(ContentFlag.content_id == criteria.content_id)
        if criteria.content_type is not None:
            query = query.filter(ContentFlag.content_type == criteria.content_type)
        if criteria.flag_type is not None:
            query = query.filter(ContentFlag.flag_type == criteria.flag_type)
        if criteria.is_resolved is not None:
            query = query.filter(ContentFlag.is_resolved.is_(criteria.is_resolved))
        if criteria.flagged_by is not None:
            query = query.filter(ContentFlag.flagged_by == criteria.flagged_by)
        if criteria.min_confidence is not None:
            query = query.filter(ContentFlag.confidence >= criteria.min_confidence)
        if criteria.max_confidence is not None:
            query = query.filter(ContentFlag.confidence <= criteria.max_confidence)
        query = apply_date_range(
            query, ContentFlag.created_at, criteria.date_from, criteria.date_to
        )

        return paginate(
            query,
            pagination or Pagination(),
            sortable=_SORTABLE,
            default_sort="created_at",
            default_order="desc",
            tiebreaker=ContentFlag.created_at,
        )

    def get_content_flags_by_content_id(self, content_id: str) -> list[ContentFlag]:
        """Return the unresolved flags on ``content_id``, strongest first."""
        return (
            self.db.query(ContentFlag)
            .filter(ContentFlag.content_id == content_id, ContentFlag.is_resolved.is_(False))
            .order_by(ContentFlag.confidence.desc(), ContentFlag.created_at.asc())
            .all()
        )

    def update_content_flag(
        self,
        flag_id: str,
        patch: ContentFlagUpdate | Mapping[str, Any],
    ) -> ContentFlag:
        """Edit the confidence or reason of an unresolved flag."""
        changes = coerce(ContentFlagUpdate, patch)
        flag = self.get_content_flag_by_id(flag_id)
        if flag.is_resolved:
            raise ConflictError(f"ContentFlag {flag_id} is resolved and can no longer change")

        fields = changes.model_dump(exclude_unset=True)
        if fields.get("confidence") is not None:
            flag.confidence = fields["confidence"]
        if "reason" in fields:
            flag.reason = fields["reason"]
        self._commit("update content flag")
        logger.info("Content flag updated: %s", flag_id)
        return flag

    def resolve_content_flag(self, flag_id: str, resolver_id: str) -> ContentFlag:
        """Mark a flag resolved; resolving twice keeps the first stamp."""
        flag = self.get_content_flag_by_id(flag_id)
        if flag.is_resolved:
            return flag
        flag.is_resolved = True
        flag.resolved_at = utcnow()
        flag.resolved_by = resolver_id
        self._commit("resolve content flag")
        logger.info("Content flag resolved: %s by user %s", flag_id, resolver_id)
        return flag

    def bulk_resolve_flags(self, flag_ids: Sequence[str], resolver_id: str) -> int:
        """Resolve every still-open flag in ``flag_ids``; return how many changed."""
        if not flag_ids:
            return 0
        stmt = (
            update(ContentFlag)
            .where(ContentFlag.id.in_(list(flag_ids)), ContentFlag.is_resolved.is_(False))
            .values(is_resolved=True, resolved_at=utcnow(), resolved_by=resolver_id)
            .execution_options(synchronize_session=False)
        )
        try:
            count = int(self.db.execute(stmt).rowcount or 0)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to bulk resolve content flags for %s", resolver_id)
            raise
        logger.info("Bulk resolved %d content flags by user %s", count, resolver_id)
        return count

    def delete_content_flag(self, flag_id: str) -> bool:
        """Delete a flag."""
        flag = self.get_content_flag_by_id(flag_id)
        self.db.delete(flag)
        self._commit("delete content flag")
        logger.info("Content flag deleted: %s", flag_id)
        return True

    def get_high_confidence_flags(
        self,
        threshold: float | None = None,
        limit: int | None = None,
    ) -> list[ContentFlag]:
        """Return unresolved flags at or above ``threshold``, strongest first."""
        threshold = self.high_confidence_threshold if threshold is None else threshold
        limit = self.high_confidence_limit if limit is None else limit
        if not 0.0 <= threshold <= 1.0:
            raise ValidationFailure(f"threshold must lie in [0, 1], got {threshold}")
        if limit < 1:
            raise ValidationFailure(f"limit must be positive, got {limit}")
        return (
            self.db.query(ContentFlag)
            .filter(ContentFlag.is_resolved.is_(False), ContentFlag.confidence >= threshold)
            .order_by(ContentFlag.confidence.desc(), ContentFlag.created_at.asc())
            .limit(limit)
            .all()
        )

    def get_content_flag_stats(
        self,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> ContentFlagStats:
        """Return flag counts and the average confidence in the window."""
        window = created_between(ContentFlag.created_at, date_from, date_to)
        resolved_counts = count_by(self.db, ContentFlag.is_resolved, *window)
        average = self.db.query(func.avg(ContentFlag.confidence)).filter(*window).scalar()
        resolved = resolved_counts.get(True, 0)
        unresolved = resolved_counts.get(False, 0)
        return ContentFlagStats(
            total=resolved + unresolved,
            resolved=resolved,
            unresolved=unresolved,
            by_type=count_by(self.db, ContentFlag.flag_type, *window),
            by_content_type=count_by(self.db, ContentFlag.content_type, *window),
            average_confidence=float(average or 0.0),
        )

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to %s", operation)
            raise
