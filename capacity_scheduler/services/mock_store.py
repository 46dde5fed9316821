from __future__ import annotations

import itertools
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from capacity_scheduler.schemas.appointment import (
    ACTIVE_STATUSES,
    Appointment,
    DateRange,
)
from capacity_scheduler.schemas.business import BusinessProfile
from capacity_scheduler.services.exceptions import NotFoundError
from capacity_scheduler.services.overlap import intervals_overlap


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _BaseRepository:
    def __init__(self, prefix: str) -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def _next_id(self) -> str:
        return f"{self._prefix}-{next(self._counter):05d}"


class InMemoryBusinessDirectory:
    """Business profiles and type details held in process memory."""

    def __init__(self, *, seed: bool = True) -> None:
        self._businesses: Dict[str, BusinessProfile] = {}
        if seed:
            self._seed_businesses()

    def _seed_businesses(self) -> None:
        self.add_business(
            {
                "id": "rest-1001",
                "name": "Harbour Table",
                "type": "restaurant",
                "timezone": "America/New_York",
                "seating_capacity": 50,
            }
        )
        self.add_business(
            {
                "id": "retail-1002",
                "name": "Corner Market",
                "type": "retail",
                "timezone": "America/Chicago",
                "inventory_size": 1200,
            }
        )
        self.add_business(
            {
                "id": "svc-1003",
                "name": "Bright Smile Dental",
                "type": "service",
                "timezone": "Europe/London",
            }
        )

    def add_business(self, record: Dict[str, Any] | BusinessProfile) -> BusinessProfile:
        profile = (
            record
            if isinstance(record, BusinessProfile)
            else BusinessProfile.model_validate(record)
        )
        self._businesses[profile.business_id] = profile
        return profile

    async def exists(self, business_id: str) -> bool:
        return str(business_id) in self._businesses

    async def get_business_with_details(self, business_id: str) -> Optional[BusinessProfile]:
        profile = self._businesses.get(str(business_id))
        return profile.model_copy(deep=True) if profile is not None else None


class InMemoryAppointmentStore(_BaseRepository):
    """Appointment rows held in process memory.

    Range filters match the hosted store: a row belongs to a range when it
    starts at or after ``range.start`` and ends at or before ``range.end``.
    """

    def __init__(self) -> None:
        super().__init__("APT")
        self._appointments: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def _in_range(record: Dict[str, Any], date_range: Optional[DateRange]) -> bool:
        if date_range is None:
            return True
        return (
            record["start_time"] >= date_range.start
            and record["end_time"] <= date_range.end
        )

    def _select(self, predicate) -> List[Appointment]:
        rows = [record for record in self._appointments.values() if predicate(record)]
        rows.sort(key=lambda record: record["start_time"])
        return [Appointment.model_validate(record) for record in rows]

    async def get_by_business_id(
        self, business_id: str, date_range: Optional[DateRange] = None
    ) -> List[Appointment]:
        return self._select(
            lambda record: record["business_id"] == business_id
            and self._in_range(record, date_range)
        )

    async def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        record = self._appointments.get(appointment_id)
        return Appointment.model_validate(record) if record is not None else None

    async def create(self, data: Dict[str, Any]) -> Appointment:
        now = _utc_now()
        record = {
            "id": self._next_id(),
            "description": None,
            "party_size": 1,
            **data,
            "status": data.get("status") or "pending",
            "created_at": now,
            "updated_at": now,
        }
        self._appointments[record["id"]] = record
        return Appointment.model_validate(record)

    async def update(self, appointment_id: str, patch: Dict[str, Any]) -> Appointment:
        record = self._appointments.get(appointment_id)
        if record is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        record.update(patch)
        record["updated_at"] = _utc_now()
        return Appointment.model_validate(record)

    async def delete(self, appointment_id: str) -> None:
        if self._appointments.pop(appointment_id, None) is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")

    async def get_by_status(
        self,
        business_id: str,
        status: str,
        date_range: Optional[DateRange] = None,
    ) -> List[Appointment]:
        return self._select(
            lambda record: record["business_id"] == business_id
            and record["status"] == status
            and self._in_range(record, date_range)
        )

    async def is_time_slot_available(
        self,
        business_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> bool:
        for record in self._appointments.values():
            if record["business_id"] != business_id or record["id"] == exclude_id:
                continue
            if record["status"] not in ACTIVE_STATUSES:
                continue
            if intervals_overlap(start, end, record["start_time"], record["end_time"]):
                return False
        return True

    def __len__(self) -> int:
        return len(self._appointments)


@dataclass
class MockDataStore:
    businesses: InMemoryBusinessDirectory
    appointments: InMemoryAppointmentStore


def build_mock_store(*, seed: bool = True) -> MockDataStore:
    return MockDataStore(
        businesses=InMemoryBusinessDirectory(seed=seed),
        appointments=InMemoryAppointmentStore(),
    )
