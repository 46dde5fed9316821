import os
import sys
from datetime import datetime, timezone

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from capacity_scheduler.services.cache import TTLCache
from capacity_scheduler.services.mock_store import MockDataStore, build_mock_store
from capacity_scheduler.services.scheduler import AppointmentScheduler


# Monday, 2 June 2025, 11:00 in New York
FIXED_NOW = datetime(2025, 6, 2, 15, 0, tzinfo=timezone.utc)


class ManualClock:
    """Monotonic clock stand-in that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def mock_store() -> MockDataStore:
    return build_mock_store()


@pytest.fixture
def cache(clock: ManualClock) -> TTLCache:
    return TTLCache(300, clock=clock)


@pytest.fixture
def scheduler(mock_store: MockDataStore, cache: TTLCache) -> AppointmentScheduler:
    return AppointmentScheduler(
        mock_store.appointments,
        mock_store.businesses,
        cache,
        now=lambda: FIXED_NOW,
    )
