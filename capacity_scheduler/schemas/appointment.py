from __future__ import annotations

from datetime import date as date_type, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

APPOINTMENT_STATUSES = ("pending", "confirmed", "cancelled", "completed", "no_show")
ACTIVE_STATUSES = ("pending", "confirmed")
UTILIZATION_STATUSES = ("confirmed", "completed", "pending")

ALLOWED_TRANSITIONS: Dict[str, tuple[str, ...]] = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("completed", "cancelled", "no_show"),
    "cancelled": (),
    "completed": (),
    "no_show": (),
}


class DateRange(BaseModel):
    start: datetime
    end: datetime


class Appointment(BaseModel):
    """One reservation as stored and returned to callers."""

    id: str
    business_id: str
    user_id: str
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None
    party_size: int = 1
    status: str = "pending"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AppointmentCreate(BaseModel):
    business_id: Optional[str] = None
    user_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    party_size: Optional[int] = None
    status: Optional[str] = None


class AppointmentUpdate(BaseModel):
    """Partial update; only fields present in the payload are applied."""

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    party_size: Optional[int] = None
    status: Optional[str] = None


class AppointmentListRequest(BaseModel):
    business_id: str
    start: datetime
    end: datetime


class AppointmentStatusRequest(BaseModel):
    business_id: str
    status: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class AvailabilityRequest(BaseModel):
    business_id: str
    start_time: datetime
    end_time: datetime
    exclude_id: Optional[str] = None


class AvailabilityResponse(BaseModel):
    business_id: str
    start_time: datetime
    end_time: datetime
    available: bool


class BusinessCapacity(BaseModel):
    """Derived capacity snapshot for one calendar day."""

    model_config = ConfigDict(populate_by_name=True)

    date: str
    total_capacity: int = Field(alias="totalCapacity")
    booked_capacity: int = Field(alias="bookedCapacity")
    utilization_percentage: float = Field(alias="utilizationPercentage")


class UtilizationSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_appointments: int = Field(alias="totalAppointments")
    average_utilization: float = Field(alias="averageUtilization")
    daily_utilization: Dict[str, int] = Field(default_factory=dict, alias="dailyUtilization")
    peak_hours: List[str] = Field(default_factory=list, alias="peakHours")
    slow_hours: List[str] = Field(default_factory=list, alias="slowHours")


class CalendarData(BaseModel):
    appointments: List[Appointment]
    capacity: BusinessCapacity


class CapacityRequest(BaseModel):
    business_id: str
    date: date_type


class VoiceAppointmentRequest(BaseModel):
    business_id: Optional[str] = None
    user_id: Optional[str] = None
    natural_language_time: Optional[str] = None
    user_timezone: Optional[str] = None
    duration_minutes: Optional[int] = None
    party_size: Optional[int] = None
    description: Optional[str] = None
    status: Optional[str] = None


class VoiceAppointmentResponse(BaseModel):
    success: bool
    message: str
    appointment: Optional[Appointment] = None


class AppointmentLookupRequest(BaseModel):
    appointment_id: str


class AppointmentUpdateRequest(AppointmentUpdate):
    appointment_id: str


class AppointmentDeleteResponse(BaseModel):
    appointment_id: str
    deleted: bool = True


class UtilizationRequest(AppointmentListRequest):
    pass


class CalendarRequest(AppointmentListRequest):
    pass
