"""Durable store contracts and their HTTP backed implementations."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from capacity_scheduler.clients.store import StoreClient
from capacity_scheduler.schemas.appointment import Appointment, DateRange
from capacity_scheduler.schemas.business import BusinessProfile
from capacity_scheduler.services.exceptions import DownstreamServiceError, NotFoundError

logger = logging.getLogger(__name__)


class AppointmentStore(Protocol):
    async def get_by_business_id(
        self, business_id: str, date_range: Optional[DateRange] = None
    ) -> List[Appointment]:
        ...

    async def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        ...

    async def create(self, data: Dict[str, Any]) -> Appointment:
        ...

    async def update(self, appointment_id: str, patch: Dict[str, Any]) -> Appointment:
        ...

    async def delete(self, appointment_id: str) -> None:
        ...

    async def get_by_status(
        self,
        business_id: str,
        status: str,
        date_range: Optional[DateRange] = None,
    ) -> List[Appointment]:
        ...

    async def is_time_slot_available(
        self,
        business_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> bool:
        ...


class BusinessDirectory(Protocol):
    async def exists(self, business_id: str) -> bool:
        ...

    async def get_business_with_details(self, business_id: str) -> Optional[BusinessProfile]:
        ...


def _range_params(date_range: Optional[DateRange]) -> Dict[str, Any]:
    if date_range is None:
        return {}
    return {"start": date_range.start.isoformat(), "end": date_range.end.isoformat()}


def _json_ready(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in data.items()
    }


class HttpAppointmentStore:
    """Appointment store served by a remote REST backend."""

    def __init__(self, client: StoreClient) -> None:
        self._client = client

    async def get_by_business_id(
        self, business_id: str, date_range: Optional[DateRange] = None
    ) -> List[Appointment]:
        data = await self._client.get(
            "/appointments", {"business_id": business_id, **_range_params(date_range)}
        )
        return [Appointment.model_validate(item) for item in data or []]

    async def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        data = await self._client.get(f"/appointments/{appointment_id}", missing_ok=True)
        return Appointment.model_validate(data) if data else None

    async def create(self, data: Dict[str, Any]) -> Appointment:
        created = await self._client.post("/appointments", _json_ready(data))
        return Appointment.model_validate(created)

    async def update(self, appointment_id: str, patch: Dict[str, Any]) -> Appointment:
        try:
            updated = await self._client.patch(
                f"/appointments/{appointment_id}", _json_ready(patch)
            )
        except DownstreamServiceError as exc:
            if exc.status_code == 404:
                raise NotFoundError(f"Appointment {appointment_id} not found", cause=exc) from exc
            raise
        return Appointment.model_validate(updated)

    async def delete(self, appointment_id: str) -> None:
        try:
            await self._client.delete(f"/appointments/{appointment_id}")
        except DownstreamServiceError as exc:
            if exc.status_code == 404:
                raise NotFoundError(f"Appointment {appointment_id} not found", cause=exc) from exc
            raise

    async def get_by_status(
        self,
        business_id: str,
        status: str,
        date_range: Optional[DateRange] = None,
    ) -> List[Appointment]:
        data = await self._client.get(
            "/appointments",
            {"business_id": business_id, "status": status, **_range_params(date_range)},
        )
        return [Appointment.model_validate(item) for item in data or []]

    async def is_time_slot_available(
        self,
        business_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> bool:
        params = {
            "business_id": business_id,
            "start": start.isoformat(),
            "end": end.isoformat(),
        }
        if exclude_id:
            params["exclude_id"] = exclude_id
        data = await self._client.get("/appointments/availability", params)
        return bool(data and data.get("available"))


class HttpBusinessDirectory:
    """Business lookups against the remote profile service."""

    def __init__(self, client: StoreClient) -> None:
        self._client = client

    async def exists(self, business_id: str) -> bool:
        data = await self._client.get(f"/businesses/{business_id}", missing_ok=True)
        return data is not None

    async def get_business_with_details(self, business_id: str) -> Optional[BusinessProfile]:
        profile = await self._client.get(f"/businesses/{business_id}", missing_ok=True)
        if profile is None:
            return None
        try:
            details = await self._client.get(
                f"/businesses/{business_id}/details", missing_ok=True
            )
        except DownstreamServiceError as exc:
            logger.warning(
                "Detail lookup for business %s failed (%s); continuing without details",
                business_id,
                exc,
            )
            details = None
        payload = dict(profile)
        if details:
            payload.update({key: value for key, value in details.items() if key != "id"})
        return BusinessProfile.model_validate(payload)
