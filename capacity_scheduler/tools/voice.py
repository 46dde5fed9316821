from fastapi import APIRouter, Depends

from capacity_scheduler.dependencies.services import get_scheduler
from capacity_scheduler.schemas.appointment import (
    VoiceAppointmentRequest,
    VoiceAppointmentResponse,
)
from capacity_scheduler.services import AppointmentScheduler

router = APIRouter()


@router.post("/book", response_model=VoiceAppointmentResponse)
async def book_from_voice(
    req: VoiceAppointmentRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    # Always 200: the voice agent reads ``message`` back to the caller.
    return await scheduler.create_from_natural_language(req)
