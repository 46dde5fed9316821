from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from capacity_scheduler.dependencies.services import get_scheduler
from capacity_scheduler.main import app
from capacity_scheduler.services.cache import TTLCache
from capacity_scheduler.services.mock_store import build_mock_store
from capacity_scheduler.services.scheduler import AppointmentScheduler

BOOKING = {
    "business_id": "rest-1001",
    "user_id": "user-1",
    "start_time": "2025-06-01T13:00:00Z",
    "end_time": "2025-06-01T14:00:00Z",
    "party_size": 2,
}


@pytest.fixture
def client():
    store = build_mock_store()
    scheduler = AppointmentScheduler(
        store.appointments,
        store.businesses,
        TTLCache(),
        fallback_timezone="UTC",
        now=lambda: datetime(2025, 6, 2, 15, 0, tzinfo=timezone.utc),
    )
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_create_and_fetch_appointment(client: TestClient) -> None:
    created = client.post("/tools/appointment/create", json=BOOKING)
    assert created.status_code == 200
    body = created.json()
    assert body["status"] == "pending"
    assert body["party_size"] == 2

    fetched = client.post("/tools/appointment/get", json={"appointment_id": body["id"]})
    assert fetched.status_code == 200
    assert fetched.json()["id"] == body["id"]


def test_overlap_returns_conflict(client: TestClient) -> None:
    client.post("/tools/appointment/create", json=BOOKING)

    response = client.post(
        "/tools/appointment/create",
        json={**BOOKING, "start_time": "2025-06-01T13:30:00Z", "end_time": "2025-06-01T14:30:00Z"},
    )

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "CONFLICT"


def test_error_codes_map_to_http_statuses(client: TestClient) -> None:
    inverted = client.post(
        "/tools/appointment/create",
        json={**BOOKING, "end_time": "2025-06-01T12:00:00Z"},
    )
    missing = client.post("/tools/appointment/get", json={"appointment_id": "APT-99999"})
    bad_status = client.post(
        "/tools/appointment/by-status", json={"business_id": "rest-1001", "status": "booked"}
    )

    assert inverted.status_code == 422
    assert inverted.json()["detail"]["code"] == "VALIDATION_ERROR"
    assert missing.status_code == 404
    assert bad_status.status_code == 422


def test_update_list_and_delete(client: TestClient) -> None:
    appointment_id = client.post("/tools/appointment/create", json=BOOKING).json()["id"]

    updated = client.post(
        "/tools/appointment/update",
        json={"appointment_id": appointment_id, "status": "confirmed"},
    )
    assert updated.status_code == 200
    assert updated.json()["status"] == "confirmed"
    assert updated.json()["start_time"].startswith("2025-06-01T13:00:00")

    listed = client.post(
        "/tools/appointment/list",
        json={"business_id": "rest-1001", "start": "2025-06-01T00:00:00Z", "end": "2025-06-02T00:00:00Z"},
    )
    assert [item["id"] for item in listed.json()] == [appointment_id]

    deleted = client.post("/tools/appointment/delete", json={"appointment_id": appointment_id})
    assert deleted.json() == {"appointment_id": appointment_id, "deleted": True}
    again = client.post("/tools/appointment/delete", json={"appointment_id": appointment_id})
    assert again.status_code == 404


def test_availability_route(client: TestClient) -> None:
    appointment_id = client.post("/tools/appointment/create", json=BOOKING).json()["id"]
    payload = {
        "business_id": "rest-1001",
        "start_time": "2025-06-01T13:30:00Z",
        "end_time": "2025-06-01T14:30:00Z",
    }

    busy = client.post("/tools/appointment/availability", json=payload)
    own = client.post(
        "/tools/appointment/availability", json={**payload, "exclude_id": appointment_id}
    )

    assert busy.json()["available"] is False
    assert own.json()["available"] is True


def test_capacity_routes_use_camel_case(client: TestClient) -> None:
    client.post("/tools/appointment/create", json=BOOKING)

    daily = client.post("/tools/capacity/daily", json={"business_id": "rest-1001", "date": "2025-06-01"})
    summary = client.post(
        "/tools/capacity/utilization",
        json={"business_id": "rest-1001", "start": "2025-06-01T04:00:00Z", "end": "2025-06-02T03:59:00Z"},
    )
    calendar = client.post(
        "/tools/capacity/calendar",
        json={"business_id": "rest-1001", "start": "2025-06-01T04:00:00Z", "end": "2025-06-02T04:00:00Z"},
    )

    assert daily.json() == {
        "date": "2025-06-01",
        "totalCapacity": 50,
        "bookedCapacity": 2,
        "utilizationPercentage": 4.0,
    }
    assert summary.json()["totalAppointments"] == 1
    assert summary.json()["dailyUtilization"] == {"2025-06-01": 2}
    assert summary.json()["peakHours"] == ["09:00"]
    assert calendar.json()["capacity"]["bookedCapacity"] == 2


def test_voice_booking_always_returns_200(client: TestClient) -> None:
    booked = client.post(
        "/tools/voice/book",
        json={"business_id": "rest-1001", "user_id": "U1", "natural_language_time": "tomorrow 10 AM"},
    )
    failed = client.post(
        "/tools/voice/book",
        json={"business_id": "ghost", "user_id": "U1", "natural_language_time": "tomorrow 10 AM"},
    )

    assert booked.status_code == 200
    assert booked.json()["success"] is True
    assert booked.json()["appointment"]["start_time"].startswith("2025-06-03T14:00:00")
    assert failed.status_code == 200
    assert failed.json() == {"success": False, "message": "Business ghost not found", "appointment": None}


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
