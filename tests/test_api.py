# tests/test_api.py
"""HTTP adapter tests using FastAPI's TestClient."""

from typing import Any

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from moderation_core.core.settings import Settings
from moderation_core.services.events import QUEUE_ITEM_PROCESSED


def _create_report(client: TestClient, **overrides: Any) -> dict[str, Any]:
    payload = {
        "reporter_id": "reporter-1",
        "reported_user_id": "owner-1",
        "content_id": "c1",
        "content_type": "POST",
        "report_type": "HARASSMENT",
    }
    payload.update(overrides)
    response = client.post("/api/v1/reports", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_and_fetch_report(client: TestClient) -> None:
    report = _create_report(client)
    assert report["priority"] == 3
    assert report["status"] == "PENDING"

    fetched = client.get(f"/api/v1/reports/{report['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["id"] == report["id"]


def test_missing_report_is_404(client: TestClient) -> None:
    response = client.get("/api/v1/reports/does-not-exist")
    assert response.status_code == 404
    assert "not found" in response.json()["detail"]


def test_report_without_target_is_422(client: TestClient) -> None:
    response = client.post(
        "/api/v1/reports",
        json={"reporter_id": "u1", "report_type": "SPAM"},
    )
    assert response.status_code == 422


def test_list_reports_paginates(client: TestClient) -> None:
    for index in range(3):
        _create_report(client, reporter_id=f"r{index}", report_type="SPAM")

    response = client.get("/api/v1/reports", params={"report_type": "SPAM", "limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 2
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}


def test_page_size_cap_cannot_exceed_pagination_bound() -> None:
    with pytest.raises(ValidationError):
        Settings(DATABASE_URL="sqlite://", MAX_PAGE_SIZE=500)

    assert Settings(DATABASE_URL="sqlite://", MAX_PAGE_SIZE=100).max_page_size == 100


def test_bad_sort_key_is_422(client: TestClient) -> None:
    response = client.get("/api/v1/reports", params={"sort_by": "nope"})
    assert response.status_code == 422


def test_reopening_resolved_report_is_409(client: TestClient) -> None:
    report = _create_report(client)
    resolved = client.post(
        f"/api/v1/reports/{report['id']}/resolve",
        json={"moderator_id": "m1", "resolution": "removed"},
    )
    assert resolved.status_code == 200
    assert resolved.json()["status"] == "RESOLVED"

    response = client.post(
        f"/api/v1/reports/{report['id']}/assign",
        json={"moderator_id": "m2"},
    )
    assert response.status_code == 409


def test_queue_flow_over_http(client: TestClient, dispatcher) -> None:
    flag = client.post(
        "/api/v1/content-flags",
        json={"content_id": "c1", "content_type": "POST", "flag_type": "SPAM", "confidence": 0.9},
    )
    assert flag.status_code == 201

    queued = client.post(
        "/api/v1/moderation-queue",
        json={"content_id": "c1", "content_type": "POST", "flag_ids": [flag.json()["id"]]},
    )
    assert queued.status_code == 201
    item = queued.json()
    assert item["priority"] == 3

    requeued = client.post(
        "/api/v1/moderation-queue",
        json={"content_id": "c1", "content_type": "POST", "priority": 1},
    )
    assert requeued.json()["id"] == item["id"]
    assert requeued.json()["priority"] == 3

    claimed = client.post(
        "/api/v1/moderation-queue/bulk-assign",
        json={"item_ids": [item["id"]], "moderator_id": "m1"},
    )
    assert claimed.json() == {"count": 1}

    lost = client.post(
        f"/api/v1/moderation-queue/{item['id']}/assign",
        json={"moderator_id": "m2", "only_if_unassigned": True},
    )
    assert lost.status_code == 409

    processed = client.post(
        f"/api/v1/moderation-queue/{item['id']}/process",
        json={"action": "CONTENT_REMOVAL", "moderator_id": "m1"},
    )
    assert processed.status_code == 200
    assert processed.json()["is_processed"] is True

    again = client.post(
        f"/api/v1/moderation-queue/{item['id']}/process",
        json={"action": "USER_BAN", "moderator_id": "m1"},
    )
    assert again.status_code == 409

    logs = client.get("/api/v1/moderation-queue/action-logs")
    assert logs.status_code == 200
    entries = logs.json()["data"]
    assert len(entries) == 1
    assert entries[0]["target_id"] == "c1"
    assert entries[0]["metadata"]["queue_item_id"] == item["id"]

    assert len(dispatcher.of_type(QUEUE_ITEM_PROCESSED)) == 1
    metrics = client.get("/metrics").json()
    assert metrics["events"] == {QUEUE_ITEM_PROCESSED: 1}


def test_unassigned_view(client: TestClient) -> None:
    for content_id, priority in [("a", 1), ("b", 4), ("c", 2)]:
        client.post(
            "/api/v1/moderation-queue",
            json={"content_id": content_id, "content_type": "COMMENT", "priority": priority},
        )

    response = client.get("/api/v1/moderation-queue/unassigned", params={"limit": 2})

    assert [item["content_id"] for item in response.json()] == ["b", "c"]


def test_appeal_flow_over_http(client: TestClient) -> None:
    report = _create_report(client)
    client.post(
        f"/api/v1/reports/{report['id']}/resolve",
        json={"moderator_id": "m1", "resolution": "removed"},
    )

    eligibility = client.get(
        "/api/v1/appeals/eligibility",
        params={"report_id": report["id"], "user_id": "owner-1"},
    )
    assert eligibility.json()["can_appeal"] is True

    created = client.post(
        "/api/v1/appeals",
        json={"report_id": report["id"], "appellant_id": "owner-1", "reason": "satire"},
    )
    assert created.status_code == 201
    appeal = created.json()

    duplicate = client.post(
        "/api/v1/appeals",
        json={"report_id": report["id"], "appellant_id": "owner-1", "reason": "again"},
    )
    assert duplicate.status_code == 409

    approved = client.post(
        f"/api/v1/appeals/{appeal['id']}/approve",
        json={"reviewer_id": "m2", "notes": "context restored"},
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "APPROVED"

    rejected = client.post(
        f"/api/v1/appeals/{appeal['id']}/reject",
        json={"reviewer_id": "m3"},
    )
    assert rejected.status_code == 409

    timeline = client.get(f"/api/v1/appeals/timeline/{report['id']}")
    assert timeline.status_code == 200
    assert [event["type"] for event in timeline.json()["events"]] == [
        "report_created",
        "report_resolved",
        "appeal_filed",
        "appeal_approved",
    ]


def test_stats_endpoints(client: TestClient) -> None:
    _create_report(client)

    assert client.get("/api/v1/reports/stats").json()["total"] == 1
    assert client.get("/api/v1/content-flags/stats").json()["total"] == 0
    assert client.get("/api/v1/moderation-queue/stats").json()["total"] == 0
    assert client.get("/api/v1/appeals/stats").json()["total"] == 0


def test_inverted_date_window_is_422(client: TestClient) -> None:
    response = client.get(
        "/api/v1/reports/stats",
        params={"date_from": "2026-02-01T00:00:00Z", "date_to": "2026-01-01T00:00:00Z"},
    )
    assert response.status_code == 422
