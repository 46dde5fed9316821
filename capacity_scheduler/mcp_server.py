# capacity_scheduler/mcp_server.py
from __future__ import annotations

import logging
from datetime import date as date_type
from typing import Optional

from mcp.server.fastmcp import Context, FastMCP
from pydantic import BaseModel, Field

from capacity_scheduler.dependencies.services import get_scheduler_cached
from capacity_scheduler.schemas.appointment import (
    BusinessCapacity,
    VoiceAppointmentRequest,
    VoiceAppointmentResponse,
)
from capacity_scheduler.services.exceptions import ServiceError

log = logging.getLogger("capacity_scheduler.mcp")

# Name shown to MCP clients
mcp = FastMCP("capacity_scheduler_mcp")


# --------------------------
# Tool I/O models
# --------------------------
class VoiceBookInput(BaseModel):
    business_id: str = Field(..., description="Business ID, e.g. 'rest-1001'")
    user_id: str = Field(..., description="Caller or customer identifier")
    natural_language_time: str = Field(
        ..., description="Spoken time phrase, e.g. 'tomorrow 10 AM' or 'next Friday 3:30pm'"
    )
    user_timezone: Optional[str] = Field(
        None, description="IANA timezone of the caller; defaults to the business timezone"
    )
    duration_minutes: Optional[int] = Field(None, description="Booking length in minutes")
    party_size: Optional[int] = Field(None, description="Number of guests")
    description: Optional[str] = None


class AvailabilityInput(BaseModel):
    business_id: str
    start_time: str = Field(..., description="Start time ISO 8601, e.g. '2025-06-01T13:00:00Z'")
    end_time: str = Field(..., description="End time ISO 8601")
    exclude_id: Optional[str] = Field(None, description="Appointment to ignore, when rescheduling")


class AvailabilityOutput(BaseModel):
    available: bool
    message: str


class CapacityInput(BaseModel):
    business_id: str
    date: date_type


# --------------------------
# Tools
# --------------------------
@mcp.tool(
    name="appointments_book_voice",
    description="Book an appointment from a natural-language time phrase",
)
async def appointments_book_voice(input: VoiceBookInput, ctx: Context) -> VoiceAppointmentResponse:
    log.debug("appointments_book_voice input=%s", input.model_dump())
    out = await get_scheduler_cached().create_from_natural_language(
        VoiceAppointmentRequest(**input.model_dump())
    )
    log.debug("appointments_book_voice output=%s", out.model_dump())
    return out


@mcp.tool(
    name="appointments_check_availability",
    description="Check whether a time slot is free for a business",
)
async def appointments_check_availability(
    input: AvailabilityInput, ctx: Context
) -> AvailabilityOutput:
    log.debug("appointments_check_availability input=%s", input.model_dump())
    try:
        available = await get_scheduler_cached().is_time_slot_available(
            input.business_id, input.start_time, input.end_time, input.exclude_id
        )
    except ServiceError as exc:
        return AvailabilityOutput(available=False, message=exc.message)
    message = "Time slot is available" if available else "Time slot is not available"
    return AvailabilityOutput(available=available, message=message)


@mcp.tool(name="business_capacity", description="Daily capacity and utilization for a business")
async def business_capacity(input: CapacityInput, ctx: Context) -> BusinessCapacity:
    log.debug("business_capacity input=%s", input.model_dump())
    return await get_scheduler_cached().get_business_capacity(input.business_id, input.date)
