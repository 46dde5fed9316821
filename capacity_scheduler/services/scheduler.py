"""Appointment orchestration: bookings, availability and capacity reporting.

The scheduler is the only component that writes appointments. Every write
funnels through the overlap check while holding the owning business's lock,
and every successful write clears the cached reads of that business before
returning.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar
from zoneinfo import ZoneInfo

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from capacity_scheduler.schemas.appointment import (
    ACTIVE_STATUSES,
    UTILIZATION_STATUSES,
    Appointment,
    AppointmentCreate,
    AppointmentUpdate,
    BusinessCapacity,
    CalendarData,
    DateRange,
    UtilizationSummary,
    VoiceAppointmentRequest,
    VoiceAppointmentResponse,
)
from capacity_scheduler.schemas.business import BusinessProfile
from capacity_scheduler.services.cache import TTLCache
from capacity_scheduler.services.capacity import CapacityResolver
from capacity_scheduler.services.exceptions import (
    OPERATION_FAILED,
    ConflictError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from capacity_scheduler.services.overlap import OverlapOracle
from capacity_scheduler.services.store import AppointmentStore, BusinessDirectory
from capacity_scheduler.services.timeparse import (
    format_local_datetime,
    load_timezone,
    local_timezone_name,
    parse_natural_time_to_utc,
)
from capacity_scheduler.services.validation import (
    require,
    to_utc,
    validate_date_range,
    validate_range,
    validate_status,
    validate_transition,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_DURATION_MINUTES = 60
BUSINESS_CACHE_PREFIXES = ("appointments", "calendar", "capacity", "utilization")
HOUR_RANKING_SIZE = 3
VOICE_FAILURE_MESSAGE = "Failed to create appointment. Please try again."


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _wrap_failures(message: str):
    """Let service errors through and wrap anything else as an operation failure."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except ServiceError:
                raise
            except Exception as exc:
                logger.exception("Unexpected error: %s", message)
                raise ServiceError(message, code=OPERATION_FAILED, cause=exc) from exc

        return wrapper

    return decorator


def _coerce(model: Type[ModelT], data: Any) -> ModelT:
    if isinstance(data, model):
        return data
    if data is None:
        data = {}
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "payload"
        raise ValidationError(f"Invalid {location}: {first.get('msg')}", cause=exc) from exc


def _range_key(date_range: Optional[DateRange]) -> str:
    if date_range is None:
        return "all"
    return f"{date_range.start.isoformat()}:{date_range.end.isoformat()}"


def _format_hour(hour: int) -> str:
    return f"{hour:02d}:00"


class AppointmentScheduler:
    def __init__(
        self,
        store: AppointmentStore,
        businesses: BusinessDirectory,
        cache: TTLCache,
        *,
        capacity_resolver: CapacityResolver | None = None,
        default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
        fallback_timezone: str | None = None,
        enforce_status_transitions: bool = False,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._businesses = businesses
        self._cache = cache
        self._oracle = OverlapOracle(store)
        self._capacity = capacity_resolver or CapacityResolver()
        self._default_duration = default_duration_minutes
        self._fallback_timezone = fallback_timezone
        self._enforce_transitions = enforce_status_transitions
        self._now = now or _utc_now
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._generations: Dict[str, int] = defaultdict(int)
        self._write_generation = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @_wrap_failures("Failed to fetch appointments")
    async def get_appointments(
        self, business_id: str, date_range: DateRange | None
    ) -> List[Appointment]:
        require(business_id, "Business ID")
        date_range = validate_date_range(date_range)
        logger.info("Fetching appointments for business %s", business_id)
        await self._require_business(business_id)
        key = f"appointments:{business_id}:{_range_key(date_range)}"
        return await self._cached(
            key, lambda: self._store.get_by_business_id(business_id, date_range), business_id
        )

    @_wrap_failures("Failed to fetch appointment")
    async def get_appointment(self, appointment_id: str) -> Appointment:
        require(appointment_id, "Appointment ID")
        return await self._cached(
            f"appointment:{appointment_id}", lambda: self._load_appointment(appointment_id)
        )

    @_wrap_failures("Failed to fetch appointments by status")
    async def get_by_status(
        self,
        business_id: str,
        status: str,
        date_range: DateRange | None = None,
    ) -> List[Appointment]:
        require(business_id, "Business ID")
        validate_status(status)
        if date_range is not None:
            date_range = validate_date_range(date_range)
        await self._require_business(business_id)
        key = f"appointments:{business_id}:{status}:{_range_key(date_range)}"
        return await self._cached(
            key,
            lambda: self._store.get_by_status(business_id, status, date_range),
            business_id,
        )

    @_wrap_failures("Failed to fetch calendar data")
    async def get_calendar_data(
        self, business_id: str, date_range: DateRange | None
    ) -> CalendarData:
        require(business_id, "Business ID")
        first_day = date_range.start if date_range is not None else None
        date_range = validate_date_range(date_range)
        key = f"calendar:{business_id}:{_range_key(date_range)}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        generation = self._generation(business_id)
        appointments = await self.get_appointments(business_id, date_range)
        capacity = await self.get_business_capacity(business_id, first_day)
        calendar = CalendarData(appointments=appointments, capacity=capacity)
        self._store_if_fresh(key, calendar, business_id, generation)
        return calendar

    @_wrap_failures("Failed to check time slot availability")
    async def is_time_slot_available(
        self,
        business_id: str,
        start: Any,
        end: Any,
        exclude_id: str | None = None,
    ) -> bool:
        require(business_id, "Business ID")
        start_utc, end_utc = validate_range(start, end)
        await self._require_business(business_id)
        return await self._oracle.is_slot_available(business_id, start_utc, end_utc, exclude_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    @_wrap_failures("Failed to create appointment")
    async def create(self, data: AppointmentCreate | Dict[str, Any]) -> Appointment:
        request = _coerce(AppointmentCreate, data)
        require(request.business_id, "Business ID")
        require(request.user_id, "User ID")
        require(request.start_time, "Start time")
        require(request.end_time, "End time")
        start_utc, end_utc = validate_range(request.start_time, request.end_time)
        party_size = self._validate_party_size(
            request.party_size if request.party_size is not None else 1
        )
        status = validate_status(request.status or "pending")
        business_id = request.business_id

        logger.info(
            "Creating appointment for business %s from %s to %s",
            business_id,
            start_utc.isoformat(),
            end_utc.isoformat(),
        )
        async with self._locks[business_id]:
            await self._require_business(business_id)
            if not await self._oracle.is_slot_available(business_id, start_utc, end_utc):
                raise ConflictError("Time slot is not available")
            appointment = await self._store.create(
                {
                    "business_id": business_id,
                    "user_id": request.user_id,
                    "start_time": start_utc,
                    "end_time": end_utc,
                    "description": request.description,
                    "party_size": party_size,
                    "status": status,
                }
            )
            self._invalidate(business_id, appointment.id)
        return appointment

    @_wrap_failures("Failed to update appointment")
    async def update(
        self, appointment_id: str, data: AppointmentUpdate | Dict[str, Any]
    ) -> Appointment:
        require(appointment_id, "Appointment ID")
        patch = {
            field: value
            for field, value in _coerce(AppointmentUpdate, data)
            .model_dump(exclude_unset=True)
            .items()
            if value is not None or field == "description"
        }
        if not patch:
            raise ValidationError("No fields provided to update")

        existing = await self._load_appointment(appointment_id)
        logger.info(
            "Updating appointment %s for business %s", appointment_id, existing.business_id
        )
        if "status" in patch:
            validate_status(patch["status"])
            if self._enforce_transitions:
                validate_transition(existing.status, patch["status"])
        if "party_size" in patch:
            self._validate_party_size(patch["party_size"])

        times_changed = "start_time" in patch or "end_time" in patch
        if not times_changed and not self._reactivates(existing.status, patch):
            updated = await self._store.update(appointment_id, patch)
            self._invalidate(existing.business_id, appointment_id)
            return updated

        async with self._locks[existing.business_id]:
            current = await self._load_appointment(appointment_id)
            start_utc, end_utc = validate_range(
                patch.get("start_time", current.start_time),
                patch.get("end_time", current.end_time),
            )
            if patch.get("status", current.status) in ACTIVE_STATUSES:
                available = await self._oracle.is_slot_available(
                    current.business_id, start_utc, end_utc, exclude_id=appointment_id
                )
                if not available:
                    raise ConflictError("Time slot is not available")
            if times_changed:
                patch["start_time"], patch["end_time"] = start_utc, end_utc
            updated = await self._store.update(appointment_id, patch)
            self._invalidate(current.business_id, appointment_id)
        return updated

    @_wrap_failures("Failed to delete appointment")
    async def delete(self, appointment_id: str) -> None:
        require(appointment_id, "Appointment ID")
        existing = await self._load_appointment(appointment_id)
        logger.info(
            "Deleting appointment %s for business %s", appointment_id, existing.business_id
        )
        await self._store.delete(appointment_id)
        self._invalidate(existing.business_id, appointment_id)

    # ------------------------------------------------------------------
    # Capacity
    # ------------------------------------------------------------------
    @_wrap_failures("Failed to compute business capacity")
    async def get_business_capacity(
        self, business_id: str, day: date | datetime | str
    ) -> BusinessCapacity:
        require(business_id, "Business ID")
        require(day, "Date")
        business = await self._require_business_details(business_id)
        tz = self._business_timezone(business)
        local_day = self._local_day(day, tz)

        key = f"capacity:{business_id}:{local_day.isoformat()}"
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached

        generation = self._generation(business_id)
        window = self._local_window(local_day, local_day, tz)
        appointments = await self._store.get_by_business_id(business_id, window)
        booked = sum(
            appointment.party_size
            for appointment in appointments
            if appointment.status in ACTIVE_STATUSES
        )
        total = self._capacity.resolve_total_capacity(business)
        snapshot = BusinessCapacity(
            date=local_day.isoformat(),
            total_capacity=total,
            booked_capacity=booked,
            utilization_percentage=min(100.0, booked / total * 100) if total > 0 else 0.0,
        )
        self._store_if_fresh(key, snapshot, business_id, generation)
        return snapshot

    @_wrap_failures("Failed to compute utilization summary")
    async def get_utilization_summary(
        self, business_id: str, date_range: DateRange | None
    ) -> UtilizationSummary:
        require(business_id, "Business ID")
        requested = date_range
        date_range = validate_date_range(date_range)
        key = f"utilization:{business_id}:{_range_key(date_range)}"
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached

        generation = self._generation(business_id)
        business = await self._require_business_details(business_id)
        tz = self._business_timezone(business)
        first = self._local_day(requested.start, tz)
        last = self._local_day(requested.end, tz)
        window = self._local_window(first, last, tz)
        appointments = [
            appointment
            for appointment in await self._store.get_by_business_id(business_id, window)
            if appointment.status in UTILIZATION_STATUSES
        ]

        daily: Dict[str, int] = {}
        cursor = first
        while cursor <= last:
            daily[cursor.isoformat()] = 0
            cursor += timedelta(days=1)

        hourly: Dict[int, int] = defaultdict(int)
        for appointment in appointments:
            local_start = appointment.start_time.astimezone(tz)
            day_key = local_start.date().isoformat()
            daily[day_key] = daily.get(day_key, 0) + appointment.party_size
            hourly[local_start.hour] += appointment.party_size

        capacity = self._capacity.resolve_total_capacity(business)
        denominator = capacity * len(daily)
        booked_total = sum(daily.values())
        average = min(100.0, booked_total / denominator * 100) if denominator > 0 else 0.0

        busiest = sorted(hourly.items(), key=lambda item: (-item[1], item[0]))
        quietest = sorted(hourly.items(), key=lambda item: (item[1], item[0]))
        summary = UtilizationSummary(
            total_appointments=len(appointments),
            average_utilization=average,
            daily_utilization=daily,
            peak_hours=[_format_hour(hour) for hour, _ in busiest[:HOUR_RANKING_SIZE]],
            slow_hours=[_format_hour(hour) for hour, _ in quietest[:HOUR_RANKING_SIZE]],
        )
        self._store_if_fresh(key, summary, business_id, generation)
        return summary

    # ------------------------------------------------------------------
    # Voice channel
    # ------------------------------------------------------------------
    async def create_from_natural_language(
        self, data: VoiceAppointmentRequest | Dict[str, Any]
    ) -> VoiceAppointmentResponse:
        """Book from a spoken time phrase; failures come back as a message."""

        try:
            request = _coerce(VoiceAppointmentRequest, data)
            require(request.business_id, "Business ID")
            require(request.user_id, "User ID")
            require(request.natural_language_time, "Appointment time")
            duration = request.duration_minutes or self._default_duration
            if duration <= 0:
                raise ValidationError("Duration must be a positive number of minutes")

            timezone_name = await self._resolve_timezone(
                request.business_id, request.user_timezone
            )
            start_iso = parse_natural_time_to_utc(
                request.natural_language_time, timezone_name, now=self._now()
            )
            start_utc = to_utc(start_iso, field="start time")
            appointment = await self.create(
                AppointmentCreate(
                    business_id=request.business_id,
                    user_id=request.user_id,
                    start_time=start_utc,
                    end_time=start_utc + timedelta(minutes=duration),
                    description=request.description,
                    party_size=request.party_size,
                    status=request.status,
                )
            )
        except ServiceError as exc:
            logger.info("Voice booking rejected: %s", exc.message)
            return VoiceAppointmentResponse(success=False, message=exc.message)
        except Exception:
            logger.exception("Unexpected error while booking from natural language")
            return VoiceAppointmentResponse(success=False, message=VOICE_FAILURE_MESSAGE)

        return VoiceAppointmentResponse(
            success=True,
            message=(
                "Appointment booked successfully on "
                f"{format_local_datetime(appointment.start_time, timezone_name)}"
            ),
            appointment=appointment,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _cached(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        business_id: str | None = None,
    ) -> Any:
        hit = self._cache.get(key)
        if hit is not None:
            logger.debug("Cache hit for %s", key)
            return hit
        logger.debug("Cache miss for %s", key)
        generation = self._generation(business_id)
        value = await loader()
        self._store_if_fresh(key, value, business_id, generation)
        return value

    def _generation(self, business_id: str | None) -> int:
        if business_id is None:
            return self._write_generation
        return self._generations[business_id]

    def _store_if_fresh(
        self, key: str, value: Any, business_id: str | None, generation: int
    ) -> None:
        # A write that landed while the value was loading makes it stale.
        if self._generation(business_id) != generation:
            logger.debug("Discarding %s loaded across a write", key)
            return
        self._cache.set(key, value)

    def _invalidate(self, business_id: str, appointment_id: str | None = None) -> None:
        self._generations[business_id] += 1
        self._write_generation += 1
        if appointment_id:
            self._cache.clear(f"appointment:{appointment_id}")
        for prefix in BUSINESS_CACHE_PREFIXES:
            self._cache.clear_by_prefix(f"{prefix}:{business_id}:")

    async def _load_appointment(self, appointment_id: str) -> Appointment:
        appointment = await self._store.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    async def _require_business(self, business_id: str) -> None:
        if not await self._businesses.exists(business_id):
            raise NotFoundError(f"Business {business_id} not found")

    async def _require_business_details(self, business_id: str) -> BusinessProfile:
        business = await self._businesses.get_business_with_details(business_id)
        if business is None:
            raise NotFoundError(f"Business {business_id} not found")
        return business

    async def _resolve_timezone(self, business_id: str, user_timezone: str | None) -> str:
        if user_timezone:
            return user_timezone
        try:
            business = await self._businesses.get_business_with_details(business_id)
        except ServiceError as exc:
            logger.warning(
                "Timezone lookup for business %s failed: %s", business_id, exc.message
            )
            business = None
        if business is not None and business.timezone:
            return business.timezone
        fallback = self._fallback_timezone or local_timezone_name()
        logger.warning(
            "No timezone configured for business %s; falling back to %s",
            business_id,
            fallback,
        )
        return fallback

    def _business_timezone(self, business: BusinessProfile) -> ZoneInfo:
        name = business.timezone or self._fallback_timezone or "UTC"
        try:
            return load_timezone(name)
        except ValidationError:
            logger.warning(
                "Business %s has unknown timezone %s; using UTC", business.business_id, name
            )
            return ZoneInfo("UTC")

    @staticmethod
    def _local_window(first: date, last: date, tz: ZoneInfo) -> DateRange:
        """UTC bounds from local midnight of ``first`` to the midnight after ``last``."""

        return DateRange(
            start=datetime.combine(first, time.min, tzinfo=tz).astimezone(timezone.utc),
            end=datetime.combine(last + timedelta(days=1), time.min, tzinfo=tz).astimezone(
                timezone.utc
            ),
        )

    @staticmethod
    def _local_day(value: date | datetime | str, tz: ZoneInfo) -> date:
        if isinstance(value, str):
            raw = value.strip()
            try:
                return date.fromisoformat(raw)
            except ValueError:
                pass
            try:
                value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            except ValueError as exc:
                raise ValidationError(f"Invalid date: {raw!r}", cause=exc) from exc
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.date()
            return value.astimezone(tz).date()
        if isinstance(value, date):
            return value
        raise ValidationError(f"Invalid date: expected a date, got {type(value).__name__}")

    @staticmethod
    def _reactivates(current_status: str, patch: Dict[str, Any]) -> bool:
        """True when the patch moves an inactive appointment back into a blocking status."""

        return (
            current_status not in ACTIVE_STATUSES
            and patch.get("status", current_status) in ACTIVE_STATUSES
        )

    @staticmethod
    def _validate_party_size(party_size: int) -> int:
        if party_size < 1:
            raise ValidationError("Party size must be a positive integer")
        return party_size
