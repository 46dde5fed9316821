from typing import List

from fastapi import APIRouter, Depends

from capacity_scheduler.dependencies.services import get_scheduler
from capacity_scheduler.schemas.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentDeleteResponse,
    AppointmentListRequest,
    AppointmentLookupRequest,
    AppointmentStatusRequest,
    AppointmentUpdateRequest,
    AvailabilityRequest,
    AvailabilityResponse,
    DateRange,
)
from capacity_scheduler.services import AppointmentScheduler
from capacity_scheduler.services.exceptions import ServiceError
from capacity_scheduler.tools.errors import to_http_error

router = APIRouter()


@router.post("/create", response_model=Appointment)
async def create_appointment(
    req: AppointmentCreate,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    try:
        return await scheduler.create(req)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/get", response_model=Appointment)
async def get_appointment(
    req: AppointmentLookupRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    try:
        return await scheduler.get_appointment(req.appointment_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/update", response_model=Appointment)
async def update_appointment(
    req: AppointmentUpdateRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    patch = req.model_dump(exclude_unset=True, exclude={"appointment_id"})
    try:
        return await scheduler.update(req.appointment_id, patch)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/delete", response_model=AppointmentDeleteResponse)
async def delete_appointment(
    req: AppointmentLookupRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    try:
        await scheduler.delete(req.appointment_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return AppointmentDeleteResponse(appointment_id=req.appointment_id)


@router.post("/list", response_model=List[Appointment])
async def list_appointments(
    req: AppointmentListRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    try:
        return await scheduler.get_appointments(
            req.business_id, DateRange(start=req.start, end=req.end)
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/by-status", response_model=List[Appointment])
async def list_appointments_by_status(
    req: AppointmentStatusRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    date_range = None
    if req.start is not None and req.end is not None:
        date_range = DateRange(start=req.start, end=req.end)
    try:
        return await scheduler.get_by_status(req.business_id, req.status, date_range)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/availability", response_model=AvailabilityResponse)
async def check_availability(
    req: AvailabilityRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    try:
        available = await scheduler.is_time_slot_available(
            req.business_id, req.start_time, req.end_time, req.exclude_id
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return AvailabilityResponse(
        business_id=req.business_id,
        start_time=req.start_time,
        end_time=req.end_time,
        available=available,
    )
