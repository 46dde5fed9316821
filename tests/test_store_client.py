import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from capacity_scheduler.clients.store import StoreClient
from capacity_scheduler.schemas.appointment import DateRange
from capacity_scheduler.schemas.business import RestaurantDetails
from capacity_scheduler.services.capacity import CapacityResolver
from capacity_scheduler.services.exceptions import DownstreamServiceError, NotFoundError
from capacity_scheduler.services.store import HttpAppointmentStore, HttpBusinessDirectory

BASE_URL = "http://store.test"

APPOINTMENT = {
    "id": "APT-1",
    "business_id": "rest-1001",
    "user_id": "user-1",
    "start_time": "2025-06-01T13:00:00Z",
    "end_time": "2025-06-01T14:00:00Z",
    "party_size": 2,
    "status": "pending",
}


def _client(handler) -> StoreClient:
    return StoreClient(BASE_URL, token="secret", transport=httpx.MockTransport(handler))


def test_read_retries_once_after_timeout() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ReadTimeout("slow store", request=request)
        return httpx.Response(200, json=[APPOINTMENT])

    store = HttpAppointmentStore(_client(handler))
    appointments = asyncio.run(store.get_by_business_id("rest-1001"))

    assert len(calls) == 2
    assert appointments[0].id == "APT-1"
    assert calls[0].headers["Authorization"] == "Bearer secret"


def test_read_gives_up_after_second_timeout() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ReadTimeout("slow store", request=request)

    with pytest.raises(DownstreamServiceError) as excinfo:
        asyncio.run(_client(handler).get("/appointments"))

    assert len(calls) == 2
    assert excinfo.value.code == "STORE_ERROR"
    assert isinstance(excinfo.value.cause, httpx.TimeoutException)


def test_writes_are_not_retried() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ReadTimeout("slow store", request=request)

    store = HttpAppointmentStore(_client(handler))
    with pytest.raises(DownstreamServiceError):
        asyncio.run(
            store.create(
                {
                    "business_id": "rest-1001",
                    "user_id": "user-1",
                    "start_time": datetime(2025, 6, 1, 13, tzinfo=timezone.utc),
                    "end_time": datetime(2025, 6, 1, 14, tzinfo=timezone.utc),
                }
            )
        )

    assert len(calls) == 1
    assert calls[0].method == "POST"


def test_create_serialises_datetimes() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(json.loads(request.content))
        return httpx.Response(201, json=APPOINTMENT)

    store = HttpAppointmentStore(_client(handler))
    created = asyncio.run(
        store.create(
            {
                "business_id": "rest-1001",
                "user_id": "user-1",
                "start_time": datetime(2025, 6, 1, 13, tzinfo=timezone.utc),
                "end_time": datetime(2025, 6, 1, 14, tzinfo=timezone.utc),
            }
        )
    )

    assert seen["start_time"] == "2025-06-01T13:00:00+00:00"
    assert created.party_size == 2


def test_range_and_status_are_sent_as_query_params() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(dict(request.url.params))
        return httpx.Response(200, json=[])

    store = HttpAppointmentStore(_client(handler))
    window = DateRange(
        start=datetime(2025, 6, 1, tzinfo=timezone.utc),
        end=datetime(2025, 6, 2, tzinfo=timezone.utc),
    )
    asyncio.run(store.get_by_status("rest-1001", "confirmed", window))

    assert seen[0] == {
        "business_id": "rest-1001",
        "status": "confirmed",
        "start": "2025-06-01T00:00:00+00:00",
        "end": "2025-06-02T00:00:00+00:00",
    }


def test_missing_records_map_to_none_or_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "not found"})

    store = HttpAppointmentStore(_client(handler))

    assert asyncio.run(store.get_by_id("APT-404")) is None
    with pytest.raises(NotFoundError):
        asyncio.run(store.update("APT-404", {"status": "confirmed"}))
    with pytest.raises(NotFoundError):
        asyncio.run(store.delete("APT-404"))


def test_server_errors_carry_status_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "maintenance"})

    with pytest.raises(DownstreamServiceError) as excinfo:
        asyncio.run(HttpAppointmentStore(_client(handler)).get_by_business_id("rest-1001"))

    assert excinfo.value.status_code == 503


def test_business_directory_merges_details() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/businesses/rest-1001":
            return httpx.Response(
                200,
                json={"id": 1001, "name": "Harbour", "type": "restaurant", "timezone": "America/New_York"},
            )
        if request.url.path == "/businesses/rest-1001/details":
            return httpx.Response(200, json={"id": 7, "seating_capacity": 80})
        return httpx.Response(404)

    directory = HttpBusinessDirectory(_client(handler))
    business = asyncio.run(directory.get_business_with_details("rest-1001"))

    assert business.business_id == "1001"
    assert isinstance(business.details, RestaurantDetails)
    assert CapacityResolver().resolve_total_capacity(business) == 80
    assert asyncio.run(directory.exists("rest-1001")) is True
    assert asyncio.run(directory.exists("ghost")) is False


def test_business_directory_tolerates_failed_detail_lookup() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/details"):
            return httpx.Response(500)
        return httpx.Response(200, json={"id": "retail-1002", "type": "retail"})

    business = asyncio.run(
        HttpBusinessDirectory(_client(handler)).get_business_with_details("retail-1002")
    )

    assert CapacityResolver().resolve_total_capacity(business) == 50


def test_client_without_base_url_is_not_configured() -> None:
    client = StoreClient(None)

    assert client.configured is False
    with pytest.raises(RuntimeError):
        asyncio.run(client.get("/appointments"))
