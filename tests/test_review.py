"""Tests for consultation request review."""

from datetime import date, timedelta

import pytest
from conftest import DOCTOR_ID, FRONTDESK_ID, NOW, OTHER_DOCTOR_ID, OTHER_PATIENT_ID, PATIENT_ID

from app.config import Settings
from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidTransitionException,
    ValidationException,
)
from app.domain.enums import AppointmentStatus, ConsultationRequestStatus
from app.schemas.appointments import (
    AcceptRequest,
    AppointmentCreate,
    CancelRequest,
    CompleteRequest,
    ConsultationRequestSubmit,
    DeclineRequest,
    FrontdeskConsultationCreate,
    ReviewRequest,
)
from app.services.review_service import ReviewService
from app.services.scheduling_service import SchedulingService

S = ConsultationRequestStatus


async def submit(scheduling: SchedulingService, time: str = "10:00") -> int:
    result = await scheduling.submit_consultation_request(
        PATIENT_ID,
        ConsultationRequestSubmit(
            patient_id=PATIENT_ID,
            doctor_id=DOCTOR_ID,
            concern_description="Recurring headaches",
            preferred_date=date(2025, 6, 1),
            preferred_time=time,
        ),
    )
    return result.appointment.id


@pytest.mark.asyncio
async def test_approve_submitted_request_books_proposed_slot(
    scheduling: SchedulingService, review: ReviewService, notifier
) -> None:
    appointment_id = await submit(scheduling)

    result = await review.review_consultation_request(
        FRONTDESK_ID,
        appointment_id,
        ReviewRequest(action="approve", proposed_date=date(2025, 6, 10), proposed_time="09:00"),
    )

    appointment = result.appointment
    assert appointment.consultation.consultation_request_status == S.SCHEDULED
    assert appointment.status == AppointmentStatus.SCHEDULED
    assert appointment.appointment_date == date(2025, 6, 10)
    assert appointment.time == "09:00"
    assert appointment.consultation.reviewed_by == FRONTDESK_ID
    assert appointment.consultation.reviewed_at == NOW
    assert result.warnings == []
    assert "Consultation Request Approved" in notifier.subjects
    assert "New Consultation Scheduled" in notifier.subjects


@pytest.mark.asyncio
async def test_needs_more_info_requires_notes(scheduling: SchedulingService, review: ReviewService) -> None:
    appointment_id = await submit(scheduling)
    before = await scheduling.get_appointment(appointment_id)

    with pytest.raises(ValidationException):
        await review.review_consultation_request(
            FRONTDESK_ID, appointment_id, ReviewRequest(action="needs_more_info", review_notes="")
        )

    after = await scheduling.get_appointment(appointment_id)
    assert after == before


@pytest.mark.asyncio
async def test_needs_more_info_then_approve(scheduling: SchedulingService, review: ReviewService) -> None:
    appointment_id = await submit(scheduling)

    asked = await review.review_consultation_request(
        FRONTDESK_ID,
        appointment_id,
        ReviewRequest(action="needs_more_info", review_notes="How long has this lasted?"),
    )
    assert asked.appointment.consultation.consultation_request_status == S.NEEDS_MORE_INFO
    assert asked.appointment.status == AppointmentStatus.PENDING

    approved = await review.review_consultation_request(
        FRONTDESK_ID,
        appointment_id,
        ReviewRequest(action="approve", proposed_date=date(2025, 6, 1), proposed_time="10:00"),
    )
    assert approved.appointment.consultation.consultation_request_status == S.SCHEDULED


@pytest.mark.asyncio
async def test_approve_requires_date_and_time(scheduling: SchedulingService, review: ReviewService) -> None:
    appointment_id = await submit(scheduling)

    with pytest.raises(ValidationException):
        await review.review_consultation_request(
            FRONTDESK_ID, appointment_id, ReviewRequest(action="approve", proposed_date=date(2025, 6, 10))
        )
    with pytest.raises(ValidationException):
        await review.review_consultation_request(
            FRONTDESK_ID,
            appointment_id,
            ReviewRequest(
                action="approve", proposed_date=NOW.date() - timedelta(days=1), proposed_time="09:00"
            ),
        )


@pytest.mark.asyncio
async def test_only_reviewer_role_may_review(scheduling: SchedulingService, review: ReviewService) -> None:
    appointment_id = await submit(scheduling)

    with pytest.raises(ForbiddenException):
        await review.review_consultation_request(
            DOCTOR_ID, appointment_id, ReviewRequest(action="reject")
        )


@pytest.mark.asyncio
async def test_reject_cancels_and_closes_request(
    scheduling: SchedulingService, review: ReviewService, notifier
) -> None:
    appointment_id = await submit(scheduling)

    result = await review.review_consultation_request(
        FRONTDESK_ID, appointment_id, ReviewRequest(action="reject", review_notes="Not a specialist case")
    )

    assert result.appointment.status == AppointmentStatus.CANCELLED
    assert result.appointment.consultation.consultation_request_status == S.REJECTED
    assert "[Frontdesk Rejected] Not a specialist case" in result.appointment.note
    assert notifier.subjects[-1] == "Consultation Request Update"

    with pytest.raises(InvalidTransitionException):
        await review.review_consultation_request(FRONTDESK_ID, appointment_id, ReviewRequest(action="reject"))


@pytest.mark.asyncio
async def test_approve_into_taken_slot_changes_nothing(
    scheduling: SchedulingService, review: ReviewService
) -> None:
    appointment_id = await submit(scheduling)
    await scheduling.schedule_appointment(
        FRONTDESK_ID,
        AppointmentCreate(
            patient_id=OTHER_PATIENT_ID, doctor_id=DOCTOR_ID, appointment_date=date(2025, 6, 10), time="09:00"
        ),
    )
    before = await scheduling.get_appointment(appointment_id)

    with pytest.raises(ConflictException):
        await review.review_consultation_request(
            FRONTDESK_ID,
            appointment_id,
            ReviewRequest(action="approve", proposed_date=date(2025, 6, 10), proposed_time="9:00 AM"),
        )

    after = await scheduling.get_appointment(appointment_id)
    assert after == before
    assert after.consultation.consultation_request_status == S.SUBMITTED
    assert after.status == AppointmentStatus.PENDING


@pytest.mark.asyncio
async def test_doctor_cannot_accept_request_awaiting_information(
    scheduling: SchedulingService, review: ReviewService
) -> None:
    appointment_id = await submit(scheduling)
    await review.review_consultation_request(
        FRONTDESK_ID, appointment_id, ReviewRequest(action="needs_more_info", review_notes="Any allergies?")
    )
    with pytest.raises(InvalidTransitionException):
        await review.accept_consultation_request(DOCTOR_ID, appointment_id, AcceptRequest())


@pytest.mark.asyncio
async def test_doctor_accepts_approved_request_with_slot(
    scheduling: SchedulingService, review: ReviewService
) -> None:
    created = await scheduling.create_consultation_from_frontdesk(
        FRONTDESK_ID,
        _frontdesk_consultation(),
    )
    appointment_id = created.appointment.id

    with pytest.raises(ForbiddenException):
        await review.accept_consultation_request(OTHER_DOCTOR_ID, appointment_id, AcceptRequest())
    with pytest.raises(ValidationException):
        await review.accept_consultation_request(
            DOCTOR_ID, appointment_id, AcceptRequest(appointment_date=date(2025, 6, 3))
        )

    result = await review.accept_consultation_request(
        DOCTOR_ID,
        appointment_id,
        AcceptRequest(appointment_date=date(2025, 6, 3), time="15:00", notes="Bring previous scans"),
    )
    assert result.appointment.consultation.consultation_request_status == S.SCHEDULED
    assert result.appointment.consultation.reviewed_by == DOCTOR_ID
    assert result.appointment.status == AppointmentStatus.SCHEDULED
    assert result.appointment.time == "15:00"
    assert "[Doctor Accepted] Bring previous scans" in result.appointment.note


@pytest.mark.asyncio
async def test_doctor_declines(scheduling: SchedulingService, review: ReviewService) -> None:
    appointment_id = await submit(scheduling)

    result = await review.decline_consultation_request(
        DOCTOR_ID, appointment_id, DeclineRequest(reason="Fully booked")
    )
    assert result.appointment.status == AppointmentStatus.CANCELLED
    assert result.appointment.consultation.consultation_request_status == S.REJECTED
    assert "[Doctor Declined] Fully booked" in result.appointment.note


@pytest.mark.asyncio
async def test_declining_completed_appointment_fails(
    scheduling: SchedulingService, review: ReviewService
) -> None:
    created = await scheduling.create_consultation_from_frontdesk(FRONTDESK_ID, _frontdesk_consultation())
    appointment_id = created.appointment.id
    completed = await scheduling.complete_appointment(
        DOCTOR_ID, appointment_id, CompleteRequest(outcome="Resolved")
    )

    with pytest.raises(InvalidTransitionException):
        await review.decline_consultation_request(DOCTOR_ID, appointment_id, DeclineRequest(reason="late"))

    stored = await scheduling.get_appointment(appointment_id)
    assert stored == completed.appointment


@pytest.mark.asyncio
async def test_patient_confirms_scheduled_consultation(
    scheduling: SchedulingService, review: ReviewService
) -> None:
    appointment_id = await submit(scheduling)

    with pytest.raises(InvalidTransitionException):
        await review.confirm_consultation(PATIENT_ID, appointment_id)

    await review.review_consultation_request(
        FRONTDESK_ID,
        appointment_id,
        ReviewRequest(action="approve", proposed_date=date(2025, 6, 1), proposed_time="10:00"),
    )

    with pytest.raises(ForbiddenException):
        await review.confirm_consultation(OTHER_PATIENT_ID, appointment_id)

    result = await review.confirm_consultation(PATIENT_ID, appointment_id)
    assert result.appointment.consultation.consultation_request_status == S.CONFIRMED
    assert result.appointment.consultation.reviewed_by == FRONTDESK_ID
    assert result.appointment.status == AppointmentStatus.SCHEDULED


@pytest.mark.asyncio
async def test_pending_consultations_for_doctor(scheduling: SchedulingService, review: ReviewService) -> None:
    await submit(scheduling)
    approved = await scheduling.create_consultation_from_frontdesk(FRONTDESK_ID, _frontdesk_consultation())

    pending = await scheduling.list_pending_consultations(DOCTOR_ID)

    assert [a.id for a in pending.items] == [approved.appointment.id]


def _frontdesk_consultation() -> FrontdeskConsultationCreate:
    return FrontdeskConsultationCreate(
        patient_id=OTHER_PATIENT_ID,
        doctor_id=DOCTOR_ID,
        appointment_date=date(2025, 6, 2),
        time="11:00",
        concern_description="Knee pain",
    )


@pytest.mark.asyncio
async def test_closed_requests_do_not_fill_pending_list(db_session, clock, notifier, seeded) -> None:
    config = Settings(DATABASE_URL="sqlite+aiosqlite://", HISTORY_QUERY_LIMIT=1)
    scheduling = SchedulingService(db_session, clock=clock, notifier=notifier, config=config)
    cancelled = await scheduling.create_consultation_from_frontdesk(FRONTDESK_ID, _frontdesk_consultation())
    await scheduling.cancel_appointment(FRONTDESK_ID, cancelled.appointment.id, CancelRequest())
    open_request = await scheduling.create_consultation_from_frontdesk(
        FRONTDESK_ID,
        FrontdeskConsultationCreate(
            patient_id=OTHER_PATIENT_ID,
            doctor_id=DOCTOR_ID,
            appointment_date=date(2025, 6, 5),
            time="11:00",
            concern_description="Knee pain follow-up",
        ),
    )

    pending = await scheduling.list_pending_consultations(DOCTOR_ID)

    assert [a.id for a in pending.items] == [open_request.appointment.id]
