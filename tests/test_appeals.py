# tests/test_appeals.py
"""Tests for the appeal workflow."""

import pytest

from moderation_core.models import Appeal, AppealStatus, ContentType, ModerationAction
from moderation_core.services import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailure,
)
from moderation_core.services.events import APPEAL_APPROVED, APPEAL_REJECTED


@pytest.fixture()
def closed_report(report_service, make_report):
    report = make_report()
    report_service.assign_report(report.id, "m1")
    return report_service.resolve_report(report.id, "content removed", "m1")


@pytest.fixture()
def appeal(appeal_service, closed_report) -> Appeal:
    return appeal_service.create_appeal(closed_report.id, "owner-1", "the post was satire")


def test_removed_content_appeal_is_approved(
    queue_service, report_service, appeal_service, make_report, dispatcher
) -> None:
    report = make_report()
    item = queue_service.add_to_queue("c1", ContentType.POST)
    queue_service.process_queue_item(item.id, ModerationAction.CONTENT_REMOVAL, "m1")
    report_service.resolve_report(report.id, "content removed", "m1")

    assert appeal_service.can_user_appeal(report.id, "owner-1") is True
    filed = appeal_service.create_appeal(report.id, "owner-1", "context was missing")

    approved = appeal_service.approve_appeal(filed.id, "m2")

    assert approved.status == AppealStatus.APPROVED
    assert approved.reviewed_by == "m2"
    assert approved.reviewed_at is not None
    events = dispatcher.of_type(APPEAL_APPROVED)
    assert len(events) == 1
    assert events[0].payload.report_id == report.id


def test_can_user_appeal_rules(appeal_service, report_service, make_report, closed_report) -> None:
    open_report = make_report()

    assert appeal_service.can_user_appeal("missing", "owner-1") is False
    assert appeal_service.can_user_appeal(open_report.id, "owner-1") is False
    assert appeal_service.can_user_appeal(closed_report.id, "someone-else") is False
    assert appeal_service.can_user_appeal(closed_report.id, "owner-1") is True

    appeal_service.create_appeal(closed_report.id, "owner-1", "please reconsider")
    assert appeal_service.can_user_appeal(closed_report.id, "owner-1") is False


def test_dismissed_report_is_appealable(appeal_service, report_service, make_report) -> None:
    report = make_report()
    report_service.dismiss_report(report.id, "no violation", "m1")

    assert appeal_service.can_user_appeal(report.id, "owner-1") is True


def test_second_appeal_for_report_conflicts(appeal_service, closed_report, appeal) -> None:
    with pytest.raises(ConflictError):
        appeal_service.create_appeal(closed_report.id, "owner-1", "trying again")


def test_appeal_against_missing_report(appeal_service) -> None:
    with pytest.raises(NotFoundError):
        appeal_service.create_appeal("missing", "owner-1", "reason")


def test_appeal_requires_reason(appeal_service, closed_report) -> None:
    with pytest.raises(ValidationFailure):
        appeal_service.create_appeal(closed_report.id, "owner-1", "")


def test_reject_appeal(appeal_service, appeal, dispatcher) -> None:
    rejected = appeal_service.reject_appeal(appeal.id, "m2", "policy applies")

    assert rejected.status == AppealStatus.REJECTED
    assert rejected.review_notes == "policy applies"
    assert len(dispatcher.of_type(APPEAL_REJECTED)) == 1


@pytest.mark.parametrize("first", ["approve", "reject"])
def test_terminal_appeal_cannot_be_redecided(appeal_service, appeal, first: str) -> None:
    if first == "approve":
        appeal_service.approve_appeal(appeal.id, "m2", "fair point")
    else:
        appeal_service.reject_appeal(appeal.id, "m2", "no")

    with pytest.raises(InvalidTransitionError):
        appeal_service.approve_appeal(appeal.id, "m3")
    with pytest.raises(InvalidTransitionError):
        appeal_service.reject_appeal(appeal.id, "m3")
    with pytest.raises(InvalidTransitionError):
        appeal_service.update_appeal(appeal.id, {"status": "PENDING"})

    stored = appeal_service.get_appeal_by_id(appeal.id)
    assert stored.reviewed_by == "m2"


def test_update_appeal_notes_and_status(appeal_service, appeal, dispatcher) -> None:
    noted = appeal_service.update_appeal(appeal.id, {"review_notes": "looking into it"})
    assert noted.status == AppealStatus.PENDING
    assert noted.review_notes == "looking into it"

    decided = appeal_service.update_appeal(
        appeal.id, {"status": "REJECTED", "reviewed_by": "m2"}
    )
    assert decided.status == AppealStatus.REJECTED
    assert decided.reviewed_at is not None
    assert len(dispatcher.of_type(APPEAL_REJECTED)) == 1

    with pytest.raises(ConflictError):
        appeal_service.update_appeal(appeal.id, {"reviewed_by": "m3"})


def test_update_to_decided_status_needs_reviewer(appeal_service, appeal) -> None:
    with pytest.raises(ConflictError):
        appeal_service.update_appeal(appeal.id, {"status": "APPROVED"})


def test_timeline_is_chronological(appeal_service, closed_report, appeal) -> None:
    appeal_service.approve_appeal(appeal.id, "m2")

    timeline = appeal_service.get_appeal_timeline(closed_report.id)

    assert [event.type for event in timeline.events] == [
        "report_created",
        "report_assigned",
        "report_resolved",
        "appeal_filed",
        "appeal_approved",
    ]
    stamps = [event.timestamp for event in timeline.events]
    assert stamps == sorted(stamps)
    assert timeline.events[-1].details == "No review notes provided"
    assert timeline.appeal is not None
    assert timeline.appeal.status == AppealStatus.APPROVED


def test_timeline_without_appeal(appeal_service, make_report) -> None:
    report = make_report()

    timeline = appeal_service.get_appeal_timeline(report.id)

    assert timeline.appeal is None
    assert [event.type for event in timeline.events] == ["report_created"]


def test_timeline_for_missing_report(appeal_service) -> None:
    with pytest.raises(NotFoundError):
        appeal_service.get_appeal_timeline("missing")


def test_listing_and_stats(appeal_service, report_service, make_report) -> None:
    appeals = []
    for index in range(3):
        report = make_report(reported_user_id=f"owner-{index}")
        report_service.resolve_report(report.id, "removed", "m1")
        appeals.append(appeal_service.create_appeal(report.id, f"owner-{index}", "unfair"))
    appeal_service.approve_appeal(appeals[0].id, "m2")
    appeal_service.reject_appeal(appeals[1].id, "m3")

    pending = appeal_service.get_pending_appeals()
    assert [item.id for item in pending.items] == [appeals[2].id]

    by_owner = appeal_service.get_appeals_by_appellant("owner-1")
    assert [item.id for item in by_owner.items] == [appeals[1].id]

    by_reviewer = appeal_service.get_appeals_by_reviewer("m2")
    assert [item.id for item in by_reviewer.items] == [appeals[0].id]

    stats = appeal_service.get_appeal_stats()
    assert (stats.total, stats.pending, stats.approved, stats.rejected) == (3, 1, 1, 1)


def test_deleting_report_removes_its_appeal(appeal_service, report_service, closed_report, appeal) -> None:
    report_service.delete_report(closed_report.id)

    with pytest.raises(NotFoundError):
        appeal_service.get_appeal_by_id(appeal.id)


def test_delete_appeal(appeal_service, closed_report, appeal) -> None:
    assert appeal_service.delete_appeal(appeal.id) is True
    assert appeal_service.can_user_appeal(closed_report.id, "owner-1") is True
