from fastapi import APIRouter, Depends

from capacity_scheduler.dependencies.services import get_scheduler
from capacity_scheduler.schemas.appointment import (
    BusinessCapacity,
    CalendarData,
    CalendarRequest,
    CapacityRequest,
    DateRange,
    UtilizationRequest,
    UtilizationSummary,
)
from capacity_scheduler.services import AppointmentScheduler
from capacity_scheduler.services.exceptions import ServiceError
from capacity_scheduler.tools.errors import to_http_error

router = APIRouter()


@router.post("/daily", response_model=BusinessCapacity)
async def daily_capacity(
    req: CapacityRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    try:
        return await scheduler.get_business_capacity(req.business_id, req.date)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/utilization", response_model=UtilizationSummary)
async def utilization_summary(
    req: UtilizationRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    try:
        return await scheduler.get_utilization_summary(
            req.business_id, DateRange(start=req.start, end=req.end)
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/calendar", response_model=CalendarData)
async def calendar_data(
    req: CalendarRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    try:
        return await scheduler.get_calendar_data(
            req.business_id, DateRange(start=req.start, end=req.end)
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc
