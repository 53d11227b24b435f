"""Consultation request review: frontdesk triage, doctor decision, patient confirmation."""

import structlog

from app.core.exceptions import ForbiddenException, InvalidTransitionException, ValidationException
from app.database import transaction
from app.domain import consultation_workflow, lifecycle
from app.domain.appointment import Appointment
from app.domain.enums import AppointmentStatus, ConsultationRequestStatus, ReviewAction
from app.schemas.appointments import AcceptRequest, DeclineRequest, ReviewRequest, WorkflowResult
from app.services.workflow import WorkflowService

logger = structlog.get_logger(__name__)


def _ensure_open(appointment: Appointment, target: ConsultationRequestStatus) -> None:
    """A consultation request on a closed appointment cannot move any further."""
    if lifecycle.is_terminal(appointment.status):
        raise InvalidTransitionException(
            axis="consultation_request",
            from_status=appointment.consultation_status.value if appointment.consultation_status else None,
            to_status=target.value,
            message=f"Appointment is {appointment.status.value}; its consultation request is closed",
        )


class ReviewService(WorkflowService):
    """Service for moving consultation requests through review."""

    async def review_consultation_request(
        self, actor_id: str, appointment_id: int, data: ReviewRequest
    ) -> WorkflowResult:
        """
        Frontdesk triage of a consultation request.

        ``approve`` needs a proposed date and time and books that slot, so the
        request ends ``SCHEDULED`` and the appointment ``SCHEDULED``.
        ``needs_more_info`` needs review notes. ``reject`` cancels the
        appointment and closes the request as ``REJECTED``.

        All checks run before anything is written; a failed check leaves the
        appointment exactly as it was.

        Raises:
            NotFoundException: Unknown actor or appointment
            ForbiddenException: Actor is not a reviewer
            ValidationException: Missing slot, past date or missing notes
            InvalidTransitionException: Illegal edge on either axis
            ConflictException: Proposed slot is taken
        """
        now = self.clock.now()
        async with transaction(self.db):
            actor = await self._require_actor(actor_id)
            self._require_role(
                actor,
                {self.config.reviewer_role},
                "Only Frontdesk staff can review consultation requests",
            )
            appointment = await self._load(appointment_id)

            if data.action == ReviewAction.REJECT:
                updated = appointment.transition_to(AppointmentStatus.CANCELLED)
                if appointment.consultation is not None:
                    updated = updated.force_consultation_status(
                        ConsultationRequestStatus.REJECTED,
                        reviewed_by=actor_id,
                        reviewed_at=now,
                        review_notes=data.review_notes,
                    )
                updated = updated.with_note(
                    "Frontdesk Rejected", data.review_notes or "Consultation request declined."
                )
            else:
                with_slot = data.action == ReviewAction.APPROVE
                if with_slot:
                    if data.proposed_date is None or data.proposed_time is None:
                        raise ValidationException(
                            "Proposed date and time are required when approving",
                            details={"fields": ["proposed_date", "proposed_time"]},
                        )
                    self._ensure_not_past(data.proposed_date, now, field="proposed_date")
                elif not (data.review_notes and data.review_notes.strip()):
                    raise ValidationException(
                        "Review notes are required when requesting more information",
                        details={"field": "review_notes"},
                    )

                path = consultation_workflow.review_path(
                    appointment.consultation_status, data.action, with_slot
                )
                _ensure_open(appointment, path[-1])
                updated = appointment.apply_consultation_path(
                    path, reviewed_by=actor_id, reviewed_at=now, review_notes=data.review_notes
                )
                if with_slot:
                    status = lifecycle.ensure_slot_status(appointment.status)
                    await self.guard.ensure_slot_free(
                        appointment.doctor_id,
                        appointment.patient_id,
                        data.proposed_date,
                        data.proposed_time,
                        exclude_id=appointment.id,
                    )
                    updated = updated.model_copy(update={"status": status}).with_slot(
                        data.proposed_date, data.proposed_time
                    )
            saved = await self.repo.update(updated, now)

        warnings: list[str] = []
        if data.action == ReviewAction.APPROVE:
            await self._notify_patient(
                warnings,
                saved.patient_id,
                "Consultation Request Approved",
                f"Your consultation request has been approved for {saved.appointment_date.isoformat()} "
                f"at {saved.time}. Please confirm the appointment.",
            )
            await self._notify_actor(
                warnings,
                saved.doctor_id,
                "New Consultation Scheduled",
                f"A consultation has been scheduled with you on {saved.appointment_date.isoformat()} "
                f"at {saved.time}.",
            )
        elif data.action == ReviewAction.NEEDS_MORE_INFO:
            await self._notify_patient(
                warnings,
                saved.patient_id,
                "Additional Information Needed",
                f"We need more information about your consultation request: {data.review_notes}",
            )
        else:
            await self._notify_patient(
                warnings,
                saved.patient_id,
                "Consultation Request Update",
                "We are unable to schedule your consultation request at this time."
                + (f" Reason: {data.review_notes}" if data.review_notes else ""),
            )

        details = f"Frontdesk reviewed consultation request: {data.action.value}"
        if data.review_notes:
            details += f". Notes: {data.review_notes}"
        await self._audit(warnings, actor_id, saved, "UPDATE", "ConsultationRequest", details)
        return self._result(saved, warnings)

    async def accept_consultation_request(
        self, actor_id: str, appointment_id: int, data: AcceptRequest
    ) -> WorkflowResult:
        """
        Assigned doctor accepts a request under review or already approved.

        Without a slot the request only becomes ``APPROVED``. With a slot it
        continues to ``SCHEDULED`` and the appointment is booked there.
        """
        now = self.clock.now()
        with_slot = data.appointment_date is not None or data.time is not None
        async with transaction(self.db):
            await self._require_actor(actor_id)
            appointment = await self._load(appointment_id)
            self._require_assigned_doctor(actor_id, appointment)

            if with_slot:
                if data.appointment_date is None or data.time is None:
                    raise ValidationException(
                        "Both date and time are required to schedule the consultation",
                        details={"fields": ["appointment_date", "time"]},
                    )
                self._ensure_not_past(data.appointment_date, now)

            path = consultation_workflow.accept_path(appointment.consultation_status, with_slot)
            _ensure_open(appointment, path[-1])
            updated = appointment.apply_consultation_path(
                path, reviewed_by=actor_id, reviewed_at=now, review_notes=data.notes
            )
            if with_slot:
                status = lifecycle.ensure_slot_status(appointment.status)
                await self.guard.ensure_slot_free(
                    appointment.doctor_id,
                    appointment.patient_id,
                    data.appointment_date,
                    data.time,
                    exclude_id=appointment.id,
                )
                updated = updated.model_copy(update={"status": status}).with_slot(
                    data.appointment_date, data.time
                )
            if data.notes:
                updated = updated.with_note("Doctor Accepted", data.notes)
            saved = await self.repo.update(updated, now)

        warnings: list[str] = []
        body = "Your consultation request has been accepted by your doctor."
        if with_slot:
            body += f" It is scheduled for {saved.appointment_date.isoformat()} at {saved.time}."
        await self._notify_patient(warnings, saved.patient_id, "Consultation Request Accepted", body)
        await self._audit(
            warnings,
            actor_id,
            saved,
            "UPDATE",
            "ConsultationRequest",
            f"Doctor accepted consultation request ({saved.consultation_status.value})",
        )
        return self._result(saved, warnings)

    async def decline_consultation_request(
        self, actor_id: str, appointment_id: int, data: DeclineRequest
    ) -> WorkflowResult:
        """Assigned doctor declines; the appointment is cancelled."""
        now = self.clock.now()
        async with transaction(self.db):
            await self._require_actor(actor_id)
            appointment = await self._load(appointment_id)
            self._require_assigned_doctor(actor_id, appointment)

            updated = appointment.transition_to(AppointmentStatus.CANCELLED)
            if appointment.consultation is not None:
                updated = updated.force_consultation_status(
                    ConsultationRequestStatus.REJECTED,
                    reviewed_by=actor_id,
                    reviewed_at=now,
                    review_notes=data.reason,
                )
            updated = updated.with_note("Doctor Declined", data.reason or "No reason provided")
            saved = await self.repo.update(updated, now)

        warnings: list[str] = []
        await self._notify_patient(
            warnings,
            saved.patient_id,
            "Consultation Request Update",
            "Your doctor is unable to take this consultation request."
            + (f" Reason: {data.reason}" if data.reason else ""),
        )
        await self._audit(
            warnings,
            actor_id,
            saved,
            "UPDATE",
            "ConsultationRequest",
            f"Doctor declined consultation request. Reason: {data.reason or 'No reason provided'}",
        )
        return self._result(saved, warnings)

    async def confirm_consultation(self, actor_id: str, appointment_id: int) -> WorkflowResult:
        """Patient confirms a scheduled consultation."""
        now = self.clock.now()
        async with transaction(self.db):
            await self._require_actor(actor_id)
            appointment = await self._load(appointment_id)
            if appointment.patient_id != actor_id:
                raise ForbiddenException(
                    "Only the patient can confirm their consultation",
                    details={"actor_id": actor_id, "appointment_id": appointment.id},
                )
            _ensure_open(appointment, ConsultationRequestStatus.CONFIRMED)
            updated = appointment.apply_consultation_path([ConsultationRequestStatus.CONFIRMED])
            status = lifecycle.ensure_slot_status(appointment.status)
            updated = updated.model_copy(update={"status": status})
            saved = await self.repo.update(updated, now)

        warnings: list[str] = []
        await self._notify_patient(
            warnings,
            saved.patient_id,
            "Consultation Confirmed",
            f"Thank you for confirming your consultation on {saved.appointment_date.isoformat()} "
            f"at {saved.time}.",
        )
        await self._audit(
            warnings, actor_id, saved, "UPDATE", "ConsultationRequest", "Patient confirmed consultation"
        )
        return self._result(saved, warnings)
