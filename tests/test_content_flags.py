# tests/test_content_flags.py
"""Tests for the content flag registry."""

import logging

import pytest
from sqlalchemy.exc import SQLAlchemyError

from moderation_core.models import ContentFlagType, ContentType
from moderation_core.services import ConflictError, NotFoundError, ValidationFailure
from moderation_core.services.content_flags import ContentFlagService, should_flag_content


@pytest.mark.parametrize(
    ("confidence", "expected"),
    [(0.69, False), (0.7, True), (0.95, True), (0.0, False)],
)
def test_should_flag_content_default_threshold(confidence: float, expected: bool) -> None:
    assert should_flag_content(confidence) is expected


def test_service_threshold_comes_from_configuration(db_session) -> None:
    service = ContentFlagService(db_session, flag_threshold=0.5)

    assert service.should_flag_content(0.55) is True
    assert service.should_flag_content(0.55, threshold=0.6) is False


def test_create_flag(make_flag) -> None:
    flag = make_flag(confidence=0.91, flagged_by="detector-a", reason="link farm")

    assert flag.id
    assert flag.is_resolved is False
    assert flag.flag_type == ContentFlagType.SPAM
    assert flag.flagged_by == "detector-a"


def test_confidence_outside_unit_interval_is_rejected(make_flag) -> None:
    with pytest.raises(ValidationFailure):
        make_flag(confidence=1.2)


def test_open_flag_of_same_type_is_reused(make_flag, flag_service) -> None:
    first = make_flag(confidence=0.75)
    weaker = make_flag(confidence=0.6)
    stronger = make_flag(confidence=0.92)

    assert weaker.id == first.id
    assert stronger.id == first.id
    assert flag_service.get_content_flag_by_id(first.id).confidence == pytest.approx(0.92)
    assert flag_service.get_content_flags({"content_id": "c1"}).total == 1


def test_resolved_flag_is_not_reopened(make_flag, flag_service) -> None:
    first = make_flag()
    flag_service.resolve_content_flag(first.id, "mod-1")

    second = make_flag()

    assert second.id != first.id
    assert flag_service.get_content_flag_by_id(first.id).is_resolved is True


def test_resolve_is_idempotent(make_flag, flag_service) -> None:
    flag = make_flag()
    resolved = flag_service.resolve_content_flag(flag.id, "mod-1")
    stamp = resolved.resolved_at

    again = flag_service.resolve_content_flag(flag.id, "mod-2")

    assert again.resolved_by == "mod-1"
    assert again.resolved_at == stamp


def test_bulk_resolve_counts_only_open_flags(make_flag, flag_service) -> None:
    spam = make_flag(flag_type=ContentFlagType.SPAM)
    hate = make_flag(flag_type=ContentFlagType.HATE_SPEECH)
    already = make_flag(flag_type=ContentFlagType.VIOLENCE)
    flag_service.resolve_content_flag(already.id, "mod-1")

    count = flag_service.bulk_resolve_flags([spam.id, hate.id, already.id], "mod-2")

    assert count == 2
    assert flag_service.get_content_flag_by_id(spam.id).resolved_by == "mod-2"
    assert flag_service.get_content_flag_by_id(already.id).resolved_by == "mod-1"


def test_bulk_resolve_failure_rolls_back_and_logs(
    make_flag, flag_service, db_session, monkeypatch, caplog
) -> None:
    flag_id = make_flag().id

    def fail(*args, **kwargs):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(db_session, "execute", fail)
    with caplog.at_level(logging.ERROR, logger="moderation_core.services.content_flags"):
        with pytest.raises(SQLAlchemyError):
            flag_service.bulk_resolve_flags([flag_id], "mod-1")
    monkeypatch.undo()

    assert "Failed to bulk resolve content flags" in caplog.text
    assert flag_service.get_content_flag_by_id(flag_id).is_resolved is False


def test_bulk_resolve_with_no_ids(flag_service) -> None:
    assert flag_service.bulk_resolve_flags([], "mod-1") == 0


def test_update_only_unresolved(make_flag, flag_service) -> None:
    flag = make_flag(confidence=0.8)

    updated = flag_service.update_content_flag(flag.id, {"confidence": 0.4, "reason": "reviewed"})
    assert updated.confidence == pytest.approx(0.4)
    assert updated.reason == "reviewed"

    flag_service.resolve_content_flag(flag.id, "mod-1")
    with pytest.raises(ConflictError):
        flag_service.update_content_flag(flag.id, {"confidence": 0.9})


def test_flags_by_content_id_strongest_first(make_flag, flag_service) -> None:
    make_flag(flag_type=ContentFlagType.SPAM, confidence=0.72)
    make_flag(flag_type=ContentFlagType.HARASSMENT, confidence=0.97)
    resolved = make_flag(flag_type=ContentFlagType.OTHER, confidence=0.99)
    flag_service.resolve_content_flag(resolved.id, "mod-1")
    make_flag(content_id="c2", confidence=0.88)

    flags = flag_service.get_content_flags_by_content_id("c1")

    assert [flag.flag_type for flag in flags] == [
        ContentFlagType.HARASSMENT,
        ContentFlagType.SPAM,
    ]


def test_high_confidence_flags(make_flag, flag_service) -> None:
    make_flag(content_id="c1", confidence=0.85)
    make_flag(content_id="c2", confidence=0.95)
    make_flag(content_id="c3", confidence=0.5)
    resolved = make_flag(content_id="c4", confidence=0.99)
    flag_service.resolve_content_flag(resolved.id, "mod-1")

    flags = flag_service.get_high_confidence_flags()
    assert [flag.content_id for flag in flags] == ["c2", "c1"]

    assert len(flag_service.get_high_confidence_flags(threshold=0.4, limit=1)) == 1

    with pytest.raises(ValidationFailure):
        flag_service.get_high_confidence_flags(threshold=1.5)


def test_get_content_flags_confidence_window(make_flag, flag_service) -> None:
    make_flag(content_id="c1", confidence=0.3)
    make_flag(content_id="c2", confidence=0.6)
    make_flag(content_id="c3", confidence=0.9, content_type=ContentType.MEDIA)

    page = flag_service.get_content_flags({"min_confidence": 0.5, "max_confidence": 0.95})
    assert page.total == 2

    media = flag_service.get_content_flags({"content_type": "MEDIA"})
    assert [flag.content_id for flag in media.items] == ["c3"]

    with pytest.raises(ValidationFailure):
        flag_service.get_content_flags({"min_confidence": 0.9, "max_confidence": 0.1})


def test_flag_stats(make_flag, flag_service) -> None:
    make_flag(content_id="c1", confidence=0.8)
    resolved = make_flag(content_id="c2", flag_type=ContentFlagType.VIOLENCE, confidence=0.6)
    flag_service.resolve_content_flag(resolved.id, "mod-1")

    stats = flag_service.get_content_flag_stats()

    assert stats.total == 2
    assert stats.resolved == 1
    assert stats.unresolved == 1
    assert stats.by_type == {"SPAM": 1, "VIOLENCE": 1}
    assert stats.by_content_type == {"POST": 2}
    assert stats.average_confidence == pytest.approx(0.7)


def test_delete_flag(make_flag, flag_service) -> None:
    flag = make_flag()

    assert flag_service.delete_content_flag(flag.id) is True
    with pytest.raises(NotFoundError):
        flag_service.get_content_flag_by_id(flag.id)
