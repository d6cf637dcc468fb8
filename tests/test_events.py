# tests/test_events.py
"""Tests for domain event publishing and its failure isolation."""

import logging

import pytest
from pydantic import TypeAdapter

from moderation_core.models import ContentType, ModerationAction, ModerationActionLog
from moderation_core.services import (
    DomainEvent,
    EventDispatcher,
    EventPublisher,
    LoggingDispatcher,
    ModerationMetrics,
    ModerationQueueService,
    RecordingDispatcher,
)
from moderation_core.services.events import (
    QUEUE_ITEM_PROCESSED,
    AppealReviewedPayload,
    EventPayload,
    QueueItemProcessedPayload,
)


class ExplodingDispatcher:
    def dispatch(self, event: DomainEvent) -> None:
        raise ConnectionError("socket server unavailable")


class BrokenMetrics(ModerationMetrics):
    def record_event(self, event_type: str) -> None:
        raise RuntimeError("counter backend down")


def test_dispatchers_satisfy_protocol() -> None:
    assert isinstance(LoggingDispatcher(), EventDispatcher)
    assert isinstance(RecordingDispatcher(), EventDispatcher)


def test_payload_union_is_discriminated_by_kind() -> None:
    adapter = TypeAdapter(EventPayload)

    payload = adapter.validate_python(
        {
            "kind": "appeal",
            "report_id": "r1",
            "appellant_id": "u1",
            "status": "APPROVED",
        }
    )

    assert isinstance(payload, AppealReviewedPayload)


def test_publisher_counts_events(metrics: ModerationMetrics) -> None:
    recorder = RecordingDispatcher()
    publisher = EventPublisher(recorder, metrics)
    event = DomainEvent(
        type=QUEUE_ITEM_PROCESSED,
        target_id="c1",
        actor_id="m1",
        payload=QueueItemProcessedPayload(
            queue_item_id="q1",
            content_id="c1",
            content_type=ContentType.POST,
            action=ModerationAction.WARNING,
            priority=2,
        ),
    )

    publisher.publish(event)
    publisher.publish(event)

    assert len(recorder.events) == 2
    assert metrics.snapshot() == {"events": {QUEUE_ITEM_PROCESSED: 2}, "dispatch_failures": 0}


def test_dispatch_failure_does_not_abort_processing(db_session, caplog) -> None:
    metrics = ModerationMetrics()
    service = ModerationQueueService(db_session, EventPublisher(ExplodingDispatcher(), metrics))
    item = service.add_to_queue("c1", ContentType.POST)

    with caplog.at_level(logging.WARNING, logger="moderation_core.services.events"):
        processed = service.process_queue_item(item.id, ModerationAction.WARNING, "m1")

    assert processed.is_processed is True
    assert db_session.query(ModerationActionLog).count() == 1
    assert metrics.dispatch_failures == 1
    assert "Dispatcher failed" in caplog.text


def test_metrics_failure_does_not_block_dispatch(db_session) -> None:
    recorder = RecordingDispatcher()
    service = ModerationQueueService(db_session, EventPublisher(recorder, BrokenMetrics()))
    item = service.add_to_queue("c1", ContentType.POST)

    service.process_queue_item(item.id, ModerationAction.NONE, "m1")

    assert [event.type for event in recorder.of_type(QUEUE_ITEM_PROCESSED)] == [
        QUEUE_ITEM_PROCESSED
    ]


def test_domain_event_requires_valid_payload() -> None:
    with pytest.raises(ValueError):
        DomainEvent(type="x", target_id="t", actor_id="a", payload={"kind": "unknown"})
