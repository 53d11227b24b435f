"""Doctor dashboard endpoints."""

from fastapi import APIRouter, status

from app.dependencies import CurrentActorId, Dashboard, Scheduling
from app.schemas.appointments import AppointmentListResponse
from app.schemas.dashboard import DoctorStats

router = APIRouter()


@router.get(
    "/{doctor_id}/dashboard",
    response_model=DoctorStats,
    status_code=status.HTTP_200_OK,
    tags=["Doctors"],
    summary="Doctor dashboard counts",
)
async def get_doctor_stats(
    doctor_id: str,
    actor_id: CurrentActorId,
    service: Dashboard,
) -> DoctorStats:
    """
    Today's appointments, pending reviews, pending check-ins and upcoming days.

    Args:
        doctor_id: Doctor ID
        actor_id: Caller identity
        service: Dashboard service

    Returns:
        The four dashboard counts
    """
    return await service.get_doctor_stats(doctor_id)


@router.get(
    "/{doctor_id}/consultations/pending",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Doctors"],
    summary="Consultation requests awaiting the doctor",
)
async def list_pending_consultations(
    doctor_id: str,
    actor_id: CurrentActorId,
    service: Scheduling,
) -> AppointmentListResponse:
    return await service.list_pending_consultations(doctor_id)
