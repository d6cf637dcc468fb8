"""Domain events emitted by the moderation core.

The core never delivers notifications itself. After a privileged write
commits, services hand a ``DomainEvent`` to an injected ``EventPublisher``,
which forwards it to an ``EventDispatcher`` (socket fan-out, message bus, ...)
and bumps in-process counters. Both steps are best-effort: a failing
dispatcher or counter is logged and never aborts the write that triggered it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from moderation_core.db.time import utcnow
from moderation_core.models.enums import (
    AppealStatus,
    ContentType,
    ModerationAction,
    ReportStatus,
)

logger = logging.getLogger(__name__)

QUEUE_ITEM_PROCESSED = "queue_item.processed"
REPORT_RESOLVED = "report.resolved"
REPORT_DISMISSED = "report.dismissed"
APPEAL_APPROVED = "appeal.approved"
APPEAL_REJECTED = "appeal.rejected"


class QueueItemProcessedPayload(BaseModel):
    """Payload for a processed queue item."""

    kind: Literal["queue_item"] = "queue_item"
    queue_item_id: str
    content_id: str
    content_type: ContentType
    action: ModerationAction
    priority: int


class ReportReviewedPayload(BaseModel):
    """Payload for a report reaching a terminal state."""

    kind: Literal["report"] = "report"
    status: ReportStatus
    resolution: str | None = None
    reported_user_id: str | None = None
    content_id: str | None = None


class AppealReviewedPayload(BaseModel):
    """Payload for an appeal decision."""

    kind: Literal["appeal"] = "appeal"
    report_id: str
    appellant_id: str
    status: AppealStatus
    review_notes: str | None = None


EventPayload = Annotated[
    QueueItemProcessedPayload | ReportReviewedPayload | AppealReviewedPayload,
    Field(discriminator="kind"),
]


class DomainEvent(BaseModel):
    """Envelope handed to the notification dispatcher."""

    type: str
    target_id: str
    actor_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    payload: EventPayload


@runtime_checkable
class EventDispatcher(Protocol):
    """Transport that delivers domain events to interested parties."""

    def dispatch(self, event: DomainEvent) -> None:
        """Deliver ``event``; may raise, callers treat delivery as best-effort."""


class LoggingDispatcher:
    """Dispatcher that only writes events to the log."""

    def dispatch(self, event: DomainEvent) -> None:
        logger.info(
            "Domain event %s target=%s actor=%s",
            event.type,
            event.target_id,
            event.actor_id,
        )


class RecordingDispatcher:
    """Dispatcher that keeps every event in memory, for tests and local tooling."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    def dispatch(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[DomainEvent]:
        """Return the recorded events with the given type."""
        return [event for event in self.events if event.type == event_type]


@dataclass
class ModerationMetrics:
    """In-process counters for moderation activity."""

    event_counts: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    dispatch_failures: int = 0

    def record_event(self, event_type: str) -> None:
        """Count one emitted event."""
        self.event_counts[event_type] += 1

    def record_dispatch_failure(self) -> None:
        """Count one dispatcher failure."""
        self.dispatch_failures += 1

    def snapshot(self) -> dict[str, object]:
        """Return a plain copy of the counters."""
        return {
            "events": dict(self.event_counts),
            "dispatch_failures": self.dispatch_failures,
        }


class EventPublisher:
    """Fan a domain event out to the dispatcher and the metrics counters."""

    def __init__(
        self,
        dispatcher: EventDispatcher | None = None,
        metrics: ModerationMetrics | None = None,
    ) -> None:
        self.dispatcher: EventDispatcher = dispatcher or LoggingDispatcher()
        self.metrics = metrics or ModerationMetrics()

    def publish(self, event: DomainEvent) -> None:
        """Deliver ``event`` without letting side-effect failures escape."""
        try:
            self.metrics.record_event(event.type)
        except Exception:
            logger.warning("Failed to record metrics for %s", event.type, exc_info=True)

        try:
            self.dispatcher.dispatch(event)
        except Exception:
            logger.warning(
                "Dispatcher failed for %s on %s; continuing",
                event.type,
                event.target_id,
                exc_info=True,
            )
            try:
                self.metrics.record_dispatch_failure()
            except Exception:  # pragma: no cover - counters are plain ints
                logger.debug("Failed to record dispatch failure", exc_info=True)
