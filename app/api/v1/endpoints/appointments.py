"""Appointment endpoints."""

from datetime import date

from fastapi import APIRouter, HTTPException, Query, status

from app.dependencies import CurrentActorId, Scheduling
from app.domain.enums import AppointmentStatus
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    CancelRequest,
    CompleteRequest,
    ConfirmAppointmentRequest,
    NoShowRequest,
    NoShowSweepRequest,
    NoShowSweepResult,
    RescheduleRequest,
    WorkflowResult,
)

router = APIRouter()


@router.post(
    "/",
    response_model=WorkflowResult,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book appointment",
)
async def schedule_appointment(
    data: AppointmentCreate,
    actor_id: CurrentActorId,
    service: Scheduling,
) -> WorkflowResult:
    """
    Book an appointment in a free slot.

    Args:
        data: Appointment creation data
        actor_id: Caller identity
        service: Scheduling service

    Returns:
        Created appointment and any post-commit warnings
    """
    return await service.schedule_appointment(actor_id, data)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    actor_id: CurrentActorId,
    service: Scheduling,
    patient_id: str | None = Query(None),
    doctor_id: str | None = Query(None),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
) -> AppointmentListResponse:
    """
    List appointments of one patient or one doctor.

    Exactly one of ``patient_id`` and ``doctor_id`` must be given. The status
    filter applies to doctor listings only.
    """
    if (patient_id is None) == (doctor_id is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide exactly one of patient_id or doctor_id",
        )
    if patient_id is not None:
        return await service.list_patient_appointments(patient_id, from_date, to_date)
    return await service.list_doctor_appointments(doctor_id, status_filter, from_date, to_date)


@router.post(
    "/no-show-sweep",
    response_model=NoShowSweepResult,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Mark overdue appointments as no-show",
)
async def run_no_show_sweep(
    data: NoShowSweepRequest,
    actor_id: CurrentActorId,
    service: Scheduling,
) -> NoShowSweepResult:
    """Run one bounded no-show sweep."""
    return await service.run_no_show_sweep(
        grace_minutes=data.grace_minutes,
        batch_size=data.batch_size,
        actor_id=actor_id,
    )


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment",
)
async def get_appointment(
    appointment_id: int,
    actor_id: CurrentActorId,
    service: Scheduling,
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    return await service.get_appointment(appointment_id)


@router.post(
    "/{appointment_id}/confirm",
    response_model=WorkflowResult,
    tags=["Appointments"],
    summary="Doctor confirms or rejects a patient booking",
)
async def confirm_appointment(
    appointment_id: int,
    data: ConfirmAppointmentRequest,
    actor_id: CurrentActorId,
    service: Scheduling,
) -> WorkflowResult:
    return await service.confirm_appointment(actor_id, appointment_id, data)


@router.post(
    "/{appointment_id}/reschedule",
    response_model=WorkflowResult,
    tags=["Appointments"],
    summary="Move appointment to a new slot",
)
async def reschedule_appointment(
    appointment_id: int,
    data: RescheduleRequest,
    actor_id: CurrentActorId,
    service: Scheduling,
) -> WorkflowResult:
    return await service.reschedule_appointment(actor_id, appointment_id, data)


@router.post(
    "/{appointment_id}/check-in",
    response_model=WorkflowResult,
    tags=["Appointments"],
    summary="Check in patient",
)
async def check_in_patient(
    appointment_id: int,
    actor_id: CurrentActorId,
    service: Scheduling,
) -> WorkflowResult:
    return await service.check_in_patient(actor_id, appointment_id)


@router.post(
    "/{appointment_id}/complete",
    response_model=WorkflowResult,
    tags=["Appointments"],
    summary="Complete appointment",
)
async def complete_appointment(
    appointment_id: int,
    data: CompleteRequest,
    actor_id: CurrentActorId,
    service: Scheduling,
) -> WorkflowResult:
    return await service.complete_appointment(actor_id, appointment_id, data)


@router.post(
    "/{appointment_id}/cancel",
    response_model=WorkflowResult,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: int,
    data: CancelRequest,
    actor_id: CurrentActorId,
    service: Scheduling,
) -> WorkflowResult:
    """
    Cancel an appointment.

    Cancelling an appointment that is already cancelled returns 409.
    """
    return await service.cancel_appointment(actor_id, appointment_id, data)


@router.post(
    "/{appointment_id}/no-show",
    response_model=WorkflowResult,
    tags=["Appointments"],
    summary="Mark appointment as no-show",
)
async def mark_no_show(
    appointment_id: int,
    data: NoShowRequest,
    actor_id: CurrentActorId,
    service: Scheduling,
) -> WorkflowResult:
    return await service.mark_no_show(actor_id, appointment_id, data)
