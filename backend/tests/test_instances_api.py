from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def create(client, auth_headers, scheduled_for, hours=4, **overrides):
    payload = {
        "workspace_id": "ws-1",
        "form_id": "form-1",
        "instance_name": "Ad hoc audit",
        "scheduled_for": scheduled_for.isoformat(),
        "due_at": (scheduled_for + timedelta(hours=hours)).isoformat(),
    }
    payload.update(overrides)
    return client.post("/api/v1/instances/", json=payload, headers=auth_headers)


def act(client, auth_headers, instance_id, action, **extra):
    return client.patch(f"/api/v1/instances/{instance_id}", json={"action": action, **extra}, headers=auth_headers)


def test_manual_instance_status_depends_on_schedule(client: TestClient, auth_headers):
    past = create(client, auth_headers, NOW - timedelta(hours=1))
    future = create(client, auth_headers, NOW + timedelta(hours=1))

    assert past.status_code == 201
    assert past.json()["status"] == "ready"
    assert past.json()["cadence_id"] is None
    assert past.json()["metadata"]["source"] == "manual"
    assert future.json()["status"] == "pending"


def test_manual_instance_validation(client: TestClient, auth_headers):
    naive = create(client, auth_headers, datetime(2026, 3, 2, 12, 0))
    assert naive.status_code == 422

    inverted = create(client, auth_headers, NOW, hours=-1)
    assert inverted.status_code == 422


def test_full_lifecycle(client: TestClient, auth_headers):
    instance_id = create(client, auth_headers, NOW - timedelta(hours=1)).json()["id"]

    started = act(client, auth_headers, instance_id, "start")
    assert started.status_code == 200
    assert started.json()["status"] == "in_progress"
    assert started.json()["started_at"] is not None

    completed = act(client, auth_headers, instance_id, "complete", submission_id="sub-42")
    assert completed.status_code == 200
    data = completed.json()
    assert data["status"] == "completed"
    assert data["submission_id"] == "sub-42"
    assert data["completed_by"] == "admin"

    reset = act(client, auth_headers, instance_id, "reset")
    assert reset.json()["status"] == "ready"
    assert reset.json()["submission_id"] is None


def test_complete_requires_submission(client: TestClient, auth_headers):
    instance_id = create(client, auth_headers, NOW - timedelta(hours=1)).json()["id"]
    assert act(client, auth_headers, instance_id, "complete").status_code == 422


@pytest.mark.parametrize("action", ["start", "complete"])
def test_pending_instance_cannot_start_or_complete(client: TestClient, auth_headers, action):
    instance_id = create(client, auth_headers, NOW + timedelta(hours=1)).json()["id"]
    response = act(client, auth_headers, instance_id, action, submission_id="sub-1")
    assert response.status_code == 409
    assert "pending" in response.json()["detail"]


def test_skip_records_reason(client: TestClient, auth_headers):
    instance_id = create(client, auth_headers, NOW + timedelta(hours=1)).json()["id"]
    response = act(client, auth_headers, instance_id, "skip", skip_reason="site closed")
    assert response.status_code == 200
    assert response.json()["status"] == "skipped"
    assert response.json()["metadata"]["skip_reason"] == "site closed"
    assert act(client, auth_headers, instance_id, "skip").status_code == 409


def test_get_instance(client: TestClient, auth_headers):
    instance_id = create(client, auth_headers, NOW).json()["id"]
    assert client.get(f"/api/v1/instances/{instance_id}", headers=auth_headers).json()["id"] == instance_id
    assert client.get("/api/v1/instances/999", headers=auth_headers).status_code == 404


def test_list_filters_and_ordering(client: TestClient, auth_headers):
    create(client, auth_headers, NOW + timedelta(days=2))
    create(client, auth_headers, NOW - timedelta(hours=1))
    create(client, auth_headers, NOW + timedelta(days=1), form_id="form-2")
    create(client, auth_headers, NOW, workspace_id="ws-2")

    response = client.get("/api/v1/instances/", params={"workspace_id": "ws-1"}, headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 3
    times = [i["scheduled_for"] for i in data["instances"]]
    assert times == sorted(times)

    ready = client.get("/api/v1/instances/", params={"workspace_id": "ws-1", "status": "ready"}, headers=auth_headers)
    assert ready.json()["count"] == 1

    by_form = client.get("/api/v1/instances/", params={"workspace_id": "ws-1", "form_id": "form-2"}, headers=auth_headers)
    assert by_form.json()["count"] == 1

    windowed = client.get(
        "/api/v1/instances/",
        params={
            "workspace_id": "ws-1",
            "start_date": NOW.isoformat(),
            "end_date": (NOW + timedelta(days=1)).isoformat(),
        },
        headers=auth_headers,
    )
    assert windowed.json()["count"] == 1


def test_list_rejects_naive_bounds(client: TestClient, auth_headers):
    response = client.get(
        "/api/v1/instances/",
        params={"workspace_id": "ws-1", "start_date": "2026-03-01T00:00:00"},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_calendar_view(client: TestClient, auth_headers):
    create(client, auth_headers, NOW + timedelta(hours=2), hours=6)

    response = client.get("/api/v1/instances/", params={"workspace_id": "ws-1", "view": "calendar"}, headers=auth_headers)
    assert response.status_code == 200
    event = response.json()["events"][0]
    assert event["title"] == "Ad hoc audit"
    assert event["start"].startswith("2026-03-02T14:00:00")
    assert event["end"].startswith("2026-03-02T20:00:00")
    assert event["status"] == "pending"
