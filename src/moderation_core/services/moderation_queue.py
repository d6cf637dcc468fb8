"""Moderation queue: deduplicated, priority-banded review scheduling.

The queue is a persisted, polled table. Each content id owns a single open
slot (enforced by a partial unique index); re-adding content mutates that slot
instead of creating another row, and only ever raises its priority.
Assignment and processing rely on conditional ``UPDATE`` statements so that
concurrent moderators never both win the same row.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from moderation_core.db.time import utcnow
from moderation_core.models import (
    ContentFlag,
    ContentType,
    ModerationAction,
    ModerationActionLog,
    ModerationQueueItem,
)
from moderation_core.schemas.common import Paginated, Pagination
from moderation_core.schemas.moderation_queue import (
    ActionLogFilters,
    QueueFilters,
    QueueItemActionMetadata,
    QueueItemUpdate,
    QueueStats,
)

from .errors import ConflictError, NotFoundError, ValidationFailure
from .events import (
    QUEUE_ITEM_PROCESSED,
    DomainEvent,
    EventPublisher,
    QueueItemProcessedPayload,
)
from .query import (
    apply_date_range,
    coerce,
    count_by,
    created_between,
    paginate,
    require_priority,
)

logger = logging.getLogger(__name__)

MIN_PRIORITY = 1
MAX_PRIORITY = 4
# Extra priority granted for attached flags is capped at this many flags.
MAX_FLAG_BONUS = 2

CONTENT_TYPE_PRIORITY: dict[str, int] = {
    ContentType.POST.value: 2,
    ContentType.COMMENT.value: 1,
    ContentType.USER_PROFILE.value: 3,
    ContentType.MEDIA.value: 2,
    ContentType.MESSAGE.value: 1,
}

_QUEUE_SORTABLE = {
    "priority": ModerationQueueItem.priority,
    "created_at": ModerationQueueItem.created_at,
    "processed_at": ModerationQueueItem.processed_at,
    "content_type": ModerationQueueItem.content_type,
}

_LOG_SORTABLE = {
    "timestamp": ModerationActionLog.timestamp,
    "action": ModerationActionLog.action,
    "moderator_id": ModerationActionLog.moderator_id,
}


def calculate_priority(content_type: ContentType | str, flags: Sequence[str] | None = None) -> int:
    """Return the queue priority for content of ``content_type`` with ``flags``.

    Base priority comes from the content type (unknown types count as 1);
    each attached flag adds one, up to ``MAX_FLAG_BONUS``. The result is
    clamped to the 1..4 band.
    """
    key = content_type.value if isinstance(content_type, ContentType) else str(content_type)
    priority = CONTENT_TYPE_PRIORITY.get(key, MIN_PRIORITY)
    if flags:
        priority += min(len(flags), MAX_FLAG_BONUS)
    return max(MIN_PRIORITY, min(priority, MAX_PRIORITY))


def _merge_flag_ids(current: Iterable[str], incoming: Iterable[str]) -> list[str]:
    return list(dict.fromkeys([*current, *incoming]))


class ModerationQueueService:
    """Service owning the moderation queue and the action log."""

    def __init__(
        self,
        db: Session,
        publisher: EventPublisher | None = None,
        *,
        cleanup_days: int = 30,
        unassigned_limit: int = 10,
    ) -> None:
        self.db = db
        self.publisher = publisher or EventPublisher()
        self.cleanup_days = cleanup_days
        self.unassigned_limit = unassigned_limit

    calculate_priority = staticmethod(calculate_priority)

    # ------------------------------------------------------------------ intake

    def add_to_queue(
        self,
        content_id: str,
        content_type: ContentType | str,
        priority: int | None = None,
        reason: str | None = None,
        flag_ids: Sequence[str] | None = None,
    ) -> ModerationQueueItem:
        """Queue ``content_id`` for review, or escalate its existing open slot.

        Args:
            content_id: Identifier of the content under review.
            content_type: Kind of content; drives the computed priority.
            priority: Explicit priority overriding the computed one.
            reason: Why the content is being queued.
            flag_ids: ContentFlag ids supporting the request.

        Returns:
            The open queue item for ``content_id``. Never a second row.

        Raises:
            ValidationFailure: On an unknown content type, an out-of-band
                priority or flag ids that do not exist.
        """
        try:
            content_type = ContentType(content_type)
        except ValueError as err:
            raise ValidationFailure(f"Unknown content type: {content_type!r}") from err
        if priority is not None:
            require_priority(priority)
        flags = _merge_flag_ids([], flag_ids or [])
        self._check_flags_exist(flags)

        resolved_priority = (
            priority if priority is not None else calculate_priority(content_type, flags)
        )

        existing = self._find_open_item(content_id)
        if existing is not None:
            return self._escalate(existing, resolved_priority, reason, flags)

        item = ModerationQueueItem(
            content_id=content_id,
            content_type=content_type,
            priority=resolved_priority,
            reason=reason,
            flags=flags,
        )
        self.db.add(item)
        try:
            self.db.commit()
        except IntegrityError:
            # Another writer opened the slot first; fold into it.
            self.db.rollback()
            existing = self._find_open_item(content_id)
            if existing is None:
                logger.exception("Failed to add %s to moderation queue", content_id)
                raise
            logger.info("Queue slot for %s opened concurrently; escalating it", content_id)
            return self._escalate(existing, resolved_priority, reason, flags)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to add %s to moderation queue", content_id)
            raise

        self.db.refresh(item)
        logger.info("Added to moderation queue: %s for content %s", item.id, content_id)
        return item

    def _escalate(
        self,
        item: ModerationQueueItem,
        priority: int,
        reason: str | None,
        flags: list[str],
    ) -> ModerationQueueItem:
        if priority <= item.priority:
            return item
        previous = item.priority
        item.priority = priority
        if reason:
            item.reason = reason
        item.flags = _merge_flag_ids(item.flags or [], flags)
        self._commit("escalate queue item")
        logger.info(
            "Queue item %s priority raised %d -> %d for content %s",
            item.id,
            previous,
            priority,
            item.content_id,
        )
        return item

    def _find_open_item(self, content_id: str) -> ModerationQueueItem | None:
        return (
            self.db.query(ModerationQueueItem)
            .filter(
                ModerationQueueItem.content_id == content_id,
                ModerationQueueItem.is_processed.is_(False),
            )
            .first()
        )

    def _check_flags_exist(self, flag_ids: list[str]) -> None:
        if not flag_ids:
            return
        found = {
            flag_id
            for (flag_id,) in self.db.query(ContentFlag.id)
            .filter(ContentFlag.id.in_(flag_ids))
            .all()
        }
        missing = [flag_id for flag_id in flag_ids if flag_id not in found]
        if missing:
            raise ValidationFailure(f"Unknown content flag ids: {', '.join(missing)}")

    # ------------------------------------------------------------------- reads

    def get_queue_item_by_id(self, item_id: str) -> ModerationQueueItem:
        """Return a queue item or raise ``NotFoundError``."""
        item = self.db.get(ModerationQueueItem, item_id)
        if item is None:
            raise NotFoundError("ModerationQueueItem", item_id)
        return item

    def get_queue_items(
        self,
        filters: QueueFilters | Mapping[str, Any] | None = None,
        pagination: Pagination | None = None,
    ) -> Paginated[ModerationQueueItem]:
        """Return queue items, highest priority band first and oldest first within a band."""
        criteria = coerce(QueueFilters, filters)
        query = self.db.query(ModerationQueueItem)
        if criteria.content_type is not None:
            query = query.filter(ModerationQueueItem.content_type == criteria.content_type)
        if criteria.priority is not None:
            query = query.filter(ModerationQueueItem.priority == criteria.priority)
        if criteria.assigned_to is not None:
            query = query.filter(ModerationQueueItem.assigned_to == criteria.assigned_to)
        if criteria.is_processed is not None:
            query = query.filter(ModerationQueueItem.is_processed.is_(criteria.is_processed))
        query = apply_date_range(
            query, ModerationQueueItem.created_at, criteria.date_from, criteria.date_to
        )

        return paginate(
            query,
            pagination or Pagination(),
            sortable=_QUEUE_SORTABLE,
            default_sort="priority",
            default_order="desc",
            tiebreaker=ModerationQueueItem.created_at,
        )

    def get_unassigned_items(self, limit: int | None = None) -> list[ModerationQueueItem]:
        """Return up to ``limit`` open, unclaimed items in scheduling order."""
        limit = self.unassigned_limit if limit is None else limit
        if limit < 1:
            raise ValidationFailure(f"limit must be positive, got {limit}")
        return (
            self.db.query(ModerationQueueItem)
            .filter(
                ModerationQueueItem.assigned_to.is_(None),
                ModerationQueueItem.is_processed.is_(False),
            )
            .order_by(ModerationQueueItem.priority.desc(), ModerationQueueItem.created_at.asc())
            .limit(limit)
            .all()
        )

    def get_assigned_items(
        self,
        moderator_id: str,
        pagination: Pagination | None = None,
    ) -> Paginated[ModerationQueueItem]:
        """Return the open items claimed by ``moderator_id``."""
        query = self.db.query(ModerationQueueItem).filter(
            ModerationQueueItem.assigned_to == moderator_id,
            ModerationQueueItem.is_processed.is_(False),
        )
        return paginate(
            query,
            pagination or Pagination(),
            sortable=_QUEUE_SORTABLE,
            default_sort="created_at",
            default_order="desc",
        )

    # -------------------------------------------------------------- assignment

    def assign_queue_item(
        self,
        item_id: str,
        moderator_id: str,
        *,
        only_if_unassigned: bool = False,
    ) -> ModerationQueueItem:
        """Assign a queue item to ``moderator_id``.

        By default the last writer wins, which is what manual reassignment
        needs. With ``only_if_unassigned`` the call becomes a claim that fails
        when another moderator already holds the item.

        Raises:
            NotFoundError: If the item does not exist.
            ConflictError: If the item is processed, or the claim was lost.
        """
        item = self.get_queue_item_by_id(item_id)
        won = self._conditional_assign(
            [item_id],
            moderator_id,
            only_if_unassigned=only_if_unassigned,
        )
        self.db.refresh(item)
        if not won:
            if item.is_processed:
                raise ConflictError(f"Queue item {item_id} is already processed")
            raise ConflictError(
                f"Queue item {item_id} is already assigned to {item.assigned_to}"
            )
        logger.info("Queue item %s assigned to moderator %s", item_id, moderator_id)
        return item

    def bulk_assign_items(self, item_ids: Sequence[str], moderator_id: str) -> int:
        """Claim every open, unassigned item in ``item_ids``.

        Returns:
            The number of rows actually claimed; lower than ``len(item_ids)``
            when some were already taken or processed.
        """
        if not item_ids:
            return 0
        count = self._conditional_assign(
            list(dict.fromkeys(item_ids)),
            moderator_id,
            only_if_unassigned=True,
        )
        logger.info("Bulk assigned %d queue items to moderator %s", count, moderator_id)
        return count

    def _conditional_assign(
        self,
        item_ids: list[str],
        moderator_id: str,
        *,
        only_if_unassigned: bool,
    ) -> int:
        stmt = update(ModerationQueueItem).where(
            ModerationQueueItem.id.in_(item_ids),
            ModerationQueueItem.is_processed.is_(False),
        )
        if only_if_unassigned:
            stmt = stmt.where(ModerationQueueItem.assigned_to.is_(None))
        stmt = stmt.values(assigned_to=moderator_id).execution_options(
            synchronize_session=False
        )
        try:
            count = int(self.db.execute(stmt).rowcount or 0)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to assign queue items to %s", moderator_id)
            raise
        return count

    # -------------------------------------------------------------- processing

    def process_queue_item(
        self,
        item_id: str,
        action: ModerationAction | str,
        moderator_id: str,
        notes: str | None = None,
    ) -> ModerationQueueItem:
        """Record the moderation decision for a queue item.

        The item update and its ``ModerationActionLog`` row are committed in
        the same transaction; if either fails, neither is kept.

        Raises:
            NotFoundError: If the item does not exist.
            ValidationFailure: On an unknown action.
            ConflictError: If the item was already processed.
        """
        try:
            action = ModerationAction(action)
        except ValueError as err:
            raise ValidationFailure(f"Unknown moderation action: {action!r}") from err

        item = self.get_queue_item_by_id(item_id)
        if item.is_processed:
            raise ConflictError(f"Queue item {item_id} is already processed")

        metadata = QueueItemActionMetadata(
            queue_item_id=item.id,
            original_priority=item.priority,
            flags=list(item.flags or []),
        )
        processed_at = utcnow()
        try:
            won = self.db.execute(
                update(ModerationQueueItem)
                .where(
                    ModerationQueueItem.id == item_id,
                    ModerationQueueItem.is_processed.is_(False),
                )
                .values(
                    is_processed=True,
                    processed_at=processed_at,
                    action=action,
                    notes=notes,
                )
                .execution_options(synchronize_session=False)
            ).rowcount
            if not won:
                self.db.rollback()
                raise ConflictError(f"Queue item {item_id} is already processed")
            self.db.add(
                ModerationActionLog(
                    moderator_id=moderator_id,
                    action=action,
                    target_id=item.content_id,
                    target_type=item.content_type.value.lower(),
                    reason=notes,
                    metadata_=metadata.model_dump(),
                    timestamp=processed_at,
                )
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to process queue item %s", item_id)
            raise

        self.db.refresh(item)
        logger.info(
            "Queue item processed: %s with action %s by moderator %s",
            item_id,
            action.value,
            moderator_id,
        )
        self.publisher.publish(
            DomainEvent(
                type=QUEUE_ITEM_PROCESSED,
                target_id=item.content_id,
                actor_id=moderator_id,
                timestamp=processed_at,
                payload=QueueItemProcessedPayload(
                    queue_item_id=item.id,
                    content_id=item.content_id,
                    content_type=item.content_type,
                    action=action,
                    priority=item.priority,
                ),
            )
        )
        return item

    # ----------------------------------------------------------- housekeeping

    def update_queue_item(
        self,
        item_id: str,
        patch: QueueItemUpdate | Mapping[str, Any],
    ) -> ModerationQueueItem:
        """Edit priority, reason or notes on an open item.

        Priority follows the same rule as re-queueing: it may rise, never fall.
        """
        changes = coerce(QueueItemUpdate, patch)
        item = self.get_queue_item_by_id(item_id)
        if item.is_processed:
            raise ConflictError(f"Queue item {item_id} is already processed")

        fields = changes.model_dump(exclude_unset=True)
        new_priority = fields.get("priority")
        if new_priority is not None:
            if new_priority < item.priority:
                raise ValidationFailure(
                    f"Queue priority cannot be lowered ({item.priority} -> {new_priority})"
                )
            item.priority = new_priority
        if "reason" in fields:
            item.reason = fields["reason"]
        if "notes" in fields:
            item.notes = fields["notes"]
        self._commit("update queue item")
        logger.info("Queue item updated: %s", item_id)
        return item

    def delete_queue_item(self, item_id: str) -> bool:
        """Delete a queue item. Its action-log rows are kept."""
        item = self.get_queue_item_by_id(item_id)
        self.db.delete(item)
        self._commit("delete queue item")
        logger.info("Queue item deleted: %s", item_id)
        return True

    def cleanup_old_items(self, days_old: int | None = None) -> int:
        """Delete processed items older than ``days_old`` days; return the count."""
        days_old = self.cleanup_days if days_old is None else days_old
        if days_old < 0:
            raise ValidationFailure(f"days_old must not be negative, got {days_old}")
        cutoff = utcnow() - timedelta(days=days_old)
        try:
            result = self.db.execute(
                delete(ModerationQueueItem)
                .where(
                    ModerationQueueItem.is_processed.is_(True),
                    ModerationQueueItem.processed_at < cutoff,
                )
                .execution_options(synchronize_session=False)
            )
            count = int(result.rowcount or 0)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to clean up processed queue items")
            raise
        logger.info("Cleaned up %d old processed queue items", count)
        return count

    def get_queue_stats(
        self,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> QueueStats:
        """Return queue counts by state, content type and priority."""
        window = created_between(ModerationQueueItem.created_at, date_from, date_to)
        by_processed = count_by(self.db, ModerationQueueItem.is_processed, *window)
        total = sum(by_processed.values())
        unassigned = (
            self.db.query(ModerationQueueItem)
            .filter(ModerationQueueItem.assigned_to.is_(None), *window)
            .count()
        )
        return QueueStats(
            total=total,
            processed=by_processed.get(True, 0),
            unprocessed=by_processed.get(False, 0),
            assigned=total - unassigned,
            unassigned=unassigned,
            by_type=count_by(self.db, ModerationQueueItem.content_type, *window),
            by_priority=count_by(self.db, ModerationQueueItem.priority, *window),
        )

    def get_action_logs(
        self,
        filters: ActionLogFilters | Mapping[str, Any] | None = None,
        pagination: Pagination | None = None,
    ) -> Paginated[ModerationActionLog]:
        """Return a page of the audit trail, newest first by default."""
        criteria = coerce(ActionLogFilters, filters)
        query = self.db.query(ModerationActionLog)
        if criteria.moderator_id is not None:
            query = query.filter(ModerationActionLog.moderator_id == criteria.moderator_id)
        if criteria.target_id is not None:
            query = query.filter(ModerationActionLog.target_id == criteria.target_id)
        if criteria.action is not None:
            query = query.filter(ModerationActionLog.action == criteria.action)
        query = apply_date_range(
            query, ModerationActionLog.timestamp, criteria.date_from, criteria.date_to
        )
        return paginate(
            query,
            pagination or Pagination(),
            sortable=_LOG_SORTABLE,
            default_sort="timestamp",
            default_order="desc",
        )

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to %s", operation)
            raise
