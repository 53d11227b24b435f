"""Consultation request endpoints."""

from fastapi import APIRouter, status

from app.dependencies import CurrentActorId, Review, Scheduling
from app.schemas.appointments import (
    AcceptRequest,
    ConsultationRequestSubmit,
    DeclineRequest,
    FrontdeskConsultationCreate,
    ReviewRequest,
    WorkflowResult,
)

router = APIRouter()


@router.post(
    "/",
    response_model=WorkflowResult,
    status_code=status.HTTP_201_CREATED,
    tags=["Consultations"],
    summary="Submit consultation request",
)
async def submit_consultation_request(
    data: ConsultationRequestSubmit,
    actor_id: CurrentActorId,
    service: Scheduling,
) -> WorkflowResult:
    """
    Patient submits a consultation request for a preferred slot.

    Args:
        data: Concern, doctor and preferred slot
        actor_id: Caller identity; must be the patient
        service: Scheduling service

    Returns:
        Stored request and any post-commit warnings
    """
    return await service.submit_consultation_request(actor_id, data)


@router.post(
    "/frontdesk",
    response_model=WorkflowResult,
    status_code=status.HTTP_201_CREATED,
    tags=["Consultations"],
    summary="Frontdesk creates approved consultation",
)
async def create_consultation_from_frontdesk(
    data: FrontdeskConsultationCreate,
    actor_id: CurrentActorId,
    service: Scheduling,
) -> WorkflowResult:
    return await service.create_consultation_from_frontdesk(actor_id, data)


@router.post(
    "/{appointment_id}/review",
    response_model=WorkflowResult,
    tags=["Consultations"],
    summary="Frontdesk review",
)
async def review_consultation_request(
    appointment_id: int,
    data: ReviewRequest,
    actor_id: CurrentActorId,
    service: Review,
) -> WorkflowResult:
    """
    Approve, ask for more information, or reject a consultation request.

    Approving requires ``proposed_date`` and ``proposed_time``; asking for
    more information requires ``review_notes``.
    """
    return await service.review_consultation_request(actor_id, appointment_id, data)


@router.post(
    "/{appointment_id}/accept",
    response_model=WorkflowResult,
    tags=["Consultations"],
    summary="Doctor accepts request",
)
async def accept_consultation_request(
    appointment_id: int,
    data: AcceptRequest,
    actor_id: CurrentActorId,
    service: Review,
) -> WorkflowResult:
    return await service.accept_consultation_request(actor_id, appointment_id, data)


@router.post(
    "/{appointment_id}/decline",
    response_model=WorkflowResult,
    tags=["Consultations"],
    summary="Doctor declines request",
)
async def decline_consultation_request(
    appointment_id: int,
    data: DeclineRequest,
    actor_id: CurrentActorId,
    service: Review,
) -> WorkflowResult:
    return await service.decline_consultation_request(actor_id, appointment_id, data)


@router.post(
    "/{appointment_id}/confirm",
    response_model=WorkflowResult,
    tags=["Consultations"],
    summary="Patient confirms scheduled consultation",
)
async def confirm_consultation(
    appointment_id: int,
    actor_id: CurrentActorId,
    service: Review,
) -> WorkflowResult:
    return await service.confirm_consultation(actor_id, appointment_id)
