"""Appointment and provider schedule API routes."""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from clinic_ops.api.dependencies import get_actions
from clinic_ops.api.requests import (
    AddScheduleBlockRequest,
    BookAppointmentSlotRequest,
    DashboardRequest,
    FindOpenSlotsRequest,
    ScheduleAppointmentRequest,
    SetAppointmentStatusRequest,
)
from clinic_ops.api.responses import to_response
from clinic_ops.services.actions import ClinicActions

router = APIRouter(prefix="/scheduling", tags=["Scheduling"])


@router.post("/appointments")
async def schedule_appointment(
    request: ScheduleAppointmentRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    appointment = await actions.schedule_appointment(request.actor.to_actor(), **request.operation_fields())
    return to_response(appointment=appointment)


@router.post("/appointments/status")
async def set_appointment_status(
    request: SetAppointmentStatusRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    appointment = await actions.set_appointment_status(
        request.actor.to_actor(),
        request.appointment_id,
        request.status,
    )
    return to_response(appointment=appointment)


@router.post("/blocks")
async def add_provider_schedule_block(
    request: AddScheduleBlockRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    block = await actions.add_provider_schedule_block(request.actor.to_actor(), **request.operation_fields())
    return to_response(block=block)


@router.post("/open-slots")
async def find_open_slots(
    request: FindOpenSlotsRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    """
    Candidate slots for a provider on one day.

    Slots must fit inside an available block when the provider has any,
    and must not overlap appointments or booked/break/hold blocks.
    """
    slots = await actions.find_open_slots(request.actor.to_actor(), **request.operation_fields())
    return to_response(slots=slots, count=len(slots))


@router.post("/book")
async def book_appointment_slot(
    request: BookAppointmentSlotRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    booking = await actions.book_appointment_slot(request.actor.to_actor(), **request.operation_fields())
    return to_response(appointment=booking.appointment, schedule_block=booking.schedule_block)


@router.post("/dashboard")
async def get_dashboard(
    request: DashboardRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    """Day schedule, recalls due and open task counts."""
    dashboard = await actions.get_dashboard(request.actor.to_actor(), request.day)
    return dashboard.to_dict()
