"""Scheduling use cases: booking, confirmation, rescheduling, check-in and closure."""

from datetime import date, datetime, timedelta

import structlog

from app.core.exceptions import (
    AppException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from app.database import transaction
from app.domain import consultation_workflow, lifecycle
from app.domain.appointment import Appointment, CheckInInfo, NoShowInfo
from app.domain.enums import (
    ActorRole,
    AppointmentOrigin,
    AppointmentStatus,
    ConfirmationAction,
    ConsultationRequestStatus,
)
from app.domain.slots import minutes_late
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    CancelRequest,
    CompleteRequest,
    ConfirmAppointmentRequest,
    ConsultationRequestSubmit,
    FrontdeskConsultationCreate,
    NoShowRequest,
    NoShowSweepResult,
    RescheduleRequest,
    WorkflowResult,
)
from app.services.workflow import STAFF_ROLES, WorkflowService

logger = structlog.get_logger(__name__)

SYSTEM_ACTOR = "system"
CONSULTATION_REQUEST_TYPE = "Consultation Request"


class SchedulingService(WorkflowService):
    """Service for booking and moving appointments through their lifecycle."""

    async def schedule_appointment(self, actor_id: str, data: AppointmentCreate) -> WorkflowResult:
        """
        Book an appointment in a free slot.

        Frontdesk bookings start ``PENDING``; patient-portal bookings start
        ``PENDING_DOCTOR_CONFIRMATION`` and wait for the doctor. Patients may
        only book for themselves and always through the portal.

        Raises:
            NotFoundException: Unknown actor or patient
            ForbiddenException: Patient booking for someone else
            ValidationException: Date in the past
            ConflictException: Doctor or patient already holds the slot
        """
        now = self.clock.now()
        async with transaction(self.db):
            actor = await self._require_actor(actor_id)
            origin = data.origin
            if actor["role"] == ActorRole.PATIENT.value:
                if data.patient_id != actor_id:
                    raise ForbiddenException(
                        "Patients can only book appointments for themselves",
                        details={"actor_id": actor_id, "patient_id": data.patient_id},
                    )
                origin = AppointmentOrigin.PATIENT_PORTAL

            patient = await self._require_patient(data.patient_id)
            self._ensure_not_past(data.appointment_date, now)
            await self.guard.ensure_slot_free(
                data.doctor_id, data.patient_id, data.appointment_date, data.time
            )

            status = (
                AppointmentStatus.PENDING
                if origin == AppointmentOrigin.FRONTDESK
                else AppointmentStatus.PENDING_DOCTOR_CONFIRMATION
            )
            appointment = Appointment(
                patient_id=data.patient_id,
                doctor_id=data.doctor_id,
                appointment_date=data.appointment_date,
                time=data.time,
                status=status,
                type=data.type,
                note=data.note,
                reason=data.reason,
            )
            saved = await self.repo.save(appointment, now)

        warnings: list[str] = []
        await self._notify(
            warnings,
            patient["email"],
            "Appointment Scheduled",
            f"Your appointment on {saved.appointment_date.isoformat()} at {saved.time} "
            f"has been booked and is {saved.status.value.replace('_', ' ').lower()}.",
        )
        await self._audit(
            warnings,
            actor_id,
            saved,
            "CREATE",
            "Appointment",
            f"Appointment booked via {origin.value} for {saved.appointment_date.isoformat()} at {saved.time}",
        )
        return self._result(saved, warnings)

    async def submit_consultation_request(
        self, actor_id: str, data: ConsultationRequestSubmit
    ) -> WorkflowResult:
        """
        Patient asks for a consultation at a preferred slot.

        The request is stored as a ``PENDING`` appointment whose consultation
        status is ``SUBMITTED``; frontdesk triages it afterwards.
        """
        now = self.clock.now()
        concern = data.concern_description.strip()
        async with transaction(self.db):
            await self._require_actor(actor_id)
            if data.patient_id != actor_id:
                raise ForbiddenException(
                    "Patients can only submit consultation requests for themselves",
                    details={"actor_id": actor_id, "patient_id": data.patient_id},
                )
            if not concern:
                raise ValidationException(
                    "Concern description is required", details={"field": "concern_description"}
                )

            patient = await self._require_patient(data.patient_id)
            self._ensure_not_past(data.preferred_date, now, field="preferred_date")
            await self.guard.ensure_slot_free(
                data.doctor_id, data.patient_id, data.preferred_date, data.preferred_time
            )

            note = f"Patient Concern: {concern}"
            if data.notes:
                note += f"\n\nAdditional Notes: {data.notes}"
            appointment = Appointment(
                patient_id=data.patient_id,
                doctor_id=data.doctor_id,
                appointment_date=data.preferred_date,
                time=data.preferred_time,
                status=AppointmentStatus.PENDING,
                type=CONSULTATION_REQUEST_TYPE,
                note=note,
                reason=concern,
            ).apply_consultation_path([ConsultationRequestStatus.SUBMITTED])
            saved = await self.repo.save(appointment, now)

        warnings: list[str] = []
        await self._notify(
            warnings,
            patient["email"],
            "Consultation Request Received",
            "We received your consultation request. Our frontdesk team will review it "
            "and get back to you shortly.",
        )
        await self._audit(
            warnings, actor_id, saved, "CREATE", "ConsultationRequest", "Patient submitted consultation request"
        )
        return self._result(saved, warnings)

    async def create_consultation_from_frontdesk(
        self, actor_id: str, data: FrontdeskConsultationCreate
    ) -> WorkflowResult:
        """Frontdesk books a consultation that is already approved."""
        now = self.clock.now()
        concern = data.concern_description.strip()
        async with transaction(self.db):
            actor = await self._require_actor(actor_id)
            self._require_role(
                actor,
                {self.config.reviewer_role},
                "Only Frontdesk staff can create consultation appointments",
            )
            if not concern:
                raise ValidationException(
                    "Concern description is required", details={"field": "concern_description"}
                )

            patient = await self._require_patient(data.patient_id)
            self._ensure_not_past(data.appointment_date, now)
            await self.guard.ensure_slot_free(
                data.doctor_id, data.patient_id, data.appointment_date, data.time
            )

            note = f"Patient Concern: {concern}"
            if data.notes:
                note += f"\n\nAdditional Notes: {data.notes}"
            note += f"\n\nCreated by: Frontdesk staff on {now.isoformat(timespec='minutes')}"
            appointment = Appointment(
                patient_id=data.patient_id,
                doctor_id=data.doctor_id,
                appointment_date=data.appointment_date,
                time=data.time,
                status=AppointmentStatus.PENDING,
                type="Consultation",
                note=note,
                reason=concern,
            ).apply_consultation_path(
                [ConsultationRequestStatus.APPROVED], reviewed_by=actor_id, reviewed_at=now
            )
            saved = await self.repo.save(appointment, now)

        warnings: list[str] = []
        await self._notify(
            warnings,
            patient["email"],
            "Consultation Appointment Scheduled",
            f"A consultation has been scheduled for you on {saved.appointment_date.isoformat()} "
            f"at {saved.time}.",
        )
        await self._audit(
            warnings,
            actor_id,
            saved,
            "CREATE",
            "ConsultationRequest",
            "Frontdesk created consultation appointment",
        )
        return self._result(saved, warnings)

    async def confirm_appointment(
        self, actor_id: str, appointment_id: int, data: ConfirmAppointmentRequest
    ) -> WorkflowResult:
        """
        Assigned doctor confirms or rejects a patient-booked appointment.

        Only ``PENDING_DOCTOR_CONFIRMATION`` appointments can be decided.
        """
        now = self.clock.now()
        async with transaction(self.db):
            await self._require_actor(actor_id)
            appointment = await self._load(appointment_id)
            self._require_assigned_doctor(actor_id, appointment)

            if appointment.status != AppointmentStatus.PENDING_DOCTOR_CONFIRMATION:
                target = (
                    AppointmentStatus.SCHEDULED
                    if data.action == ConfirmationAction.CONFIRM
                    else AppointmentStatus.CANCELLED
                )
                raise InvalidTransitionException(
                    axis="appointment",
                    from_status=appointment.status.value,
                    to_status=target.value,
                    message=(
                        "Only appointments awaiting doctor confirmation can be confirmed or "
                        f"rejected. Current status: {appointment.status.value}"
                    ),
                )

            if data.action == ConfirmationAction.CONFIRM:
                updated = appointment.transition_to(AppointmentStatus.SCHEDULED)
                if data.notes:
                    updated = updated.with_note("Doctor Confirmed", data.notes)
            else:
                reason = (data.rejection_reason or "").strip()
                if not reason:
                    raise ValidationException(
                        "Rejection reason is required", details={"field": "rejection_reason"}
                    )
                updated = appointment.transition_to(AppointmentStatus.CANCELLED).with_note(
                    "Doctor Rejected", reason
                )
            saved = await self.repo.update(updated, now)

        warnings: list[str] = []
        if data.action == ConfirmationAction.CONFIRM:
            subject = "Appointment Confirmed"
            body = (
                f"Your appointment on {saved.appointment_date.isoformat()} at {saved.time} "
                "has been confirmed by your doctor."
            )
        else:
            subject = "Appointment Not Confirmed"
            body = (
                f"Your doctor could not confirm the appointment on {saved.appointment_date.isoformat()}. "
                f"Reason: {data.rejection_reason}"
            )
        await self._notify_patient(warnings, saved.patient_id, subject, body)
        await self._audit(
            warnings,
            actor_id,
            saved,
            data.action.value.upper(),
            "Appointment",
            f"Doctor {data.action.value}ed appointment",
        )
        return self._result(saved, warnings)

    async def reschedule_appointment(
        self, actor_id: str, appointment_id: int, data: RescheduleRequest
    ) -> WorkflowResult:
        """
        Move an appointment to a new slot.

        The appointment never conflicts with its own current slot. Pending
        appointments become ``SCHEDULED`` once moved.
        """
        now = self.clock.now()
        async with transaction(self.db):
            actor = await self._require_actor(actor_id)
            self._require_role(actor, STAFF_ROLES, "Only clinic staff can reschedule appointments")
            appointment = await self._load(appointment_id)
            if actor["role"] == ActorRole.DOCTOR.value:
                self._require_assigned_doctor(actor_id, appointment)

            status = lifecycle.ensure_slot_status(appointment.status)
            self._ensure_not_past(data.appointment_date, now)
            await self.guard.ensure_slot_free(
                appointment.doctor_id,
                appointment.patient_id,
                data.appointment_date,
                data.time,
                exclude_id=appointment.id,
            )

            previous = f"{appointment.appointment_date.isoformat()} {appointment.time}"
            text = f"From {previous} to {data.appointment_date.isoformat()} {data.time}."
            if data.reason:
                text += f" Reason: {data.reason}"
            updated = (
                appointment.model_copy(update={"status": status})
                .with_slot(data.appointment_date, data.time)
                .with_note("Rescheduled", text)
            )
            saved = await self.repo.update(updated, now)

        warnings: list[str] = []
        await self._notify_patient(
            warnings,
            saved.patient_id,
            "Appointment Rescheduled",
            f"Your appointment has been moved to {saved.appointment_date.isoformat()} at {saved.time}.",
        )
        await self._audit(warnings, actor_id, saved, "RESCHEDULE", "Appointment", text)
        return self._result(saved, warnings)

    async def check_in_patient(self, actor_id: str, appointment_id: int) -> WorkflowResult:
        """
        Record the patient's arrival.

        A pending appointment becomes ``SCHEDULED``. Checking in twice is a
        no-op that returns the stored appointment.
        """
        now = self.clock.now()
        async with transaction(self.db):
            actor = await self._require_actor(actor_id)
            self._require_role(actor, STAFF_ROLES, "Only clinic staff can check in patients")
            appointment = await self._load(appointment_id)

            if appointment.check_in is not None:
                saved = appointment
                already_checked_in = True
            else:
                already_checked_in = False
                if appointment.status not in lifecycle.NO_SHOW_ELIGIBLE_STATUSES | lifecycle.INITIAL_STATUSES:
                    raise InvalidTransitionException(
                        axis="appointment",
                        from_status=appointment.status.value,
                        to_status="CHECKED_IN",
                        message=f"Cannot check in to a {appointment.status.value.lower()} appointment",
                    )
                late = minutes_late(appointment.starts_at, now)
                updated = appointment.with_check_in(
                    CheckInInfo(
                        checked_in_at=now,
                        checked_in_by=actor_id,
                        is_late=late is not None,
                        late_by_minutes=late,
                    )
                )
                if appointment.status in lifecycle.INITIAL_STATUSES:
                    updated = updated.transition_to(AppointmentStatus.SCHEDULED)
                saved = await self.repo.update(updated, now)

        warnings: list[str] = []
        if already_checked_in:
            await self._audit(warnings, actor_id, saved, "VIEW", "Appointment", "Patient already checked in")
        else:
            details = "Patient checked in"
            if saved.check_in and saved.check_in.is_late:
                details += f" ({saved.check_in.late_by_minutes} minutes late)"
            await self._audit(warnings, actor_id, saved, "CHECK_IN", "Appointment", details)
        return self._result(saved, warnings)

    async def complete_appointment(
        self, actor_id: str, appointment_id: int, data: CompleteRequest
    ) -> WorkflowResult:
        """Assigned doctor closes the appointment with a consultation outcome."""
        now = self.clock.now()
        async with transaction(self.db):
            await self._require_actor(actor_id)
            appointment = await self._load(appointment_id)
            self._require_assigned_doctor(actor_id, appointment)
            updated = appointment.transition_to(AppointmentStatus.COMPLETED).with_note(
                "Consultation Completed", data.outcome
            )
            saved = await self.repo.update(updated, now)

        warnings: list[str] = []
        await self._audit(warnings, actor_id, saved, "COMPLETE", "Appointment", "Consultation completed")
        return self._result(saved, warnings)

    async def cancel_appointment(
        self, actor_id: str, appointment_id: int, data: CancelRequest
    ) -> WorkflowResult:
        """
        Cancel an appointment.

        Cancelling twice raises ``InvalidTransitionException`` and leaves the
        stored row untouched.
        """
        now = self.clock.now()
        async with transaction(self.db):
            actor = await self._require_actor(actor_id)
            appointment = await self._load(appointment_id)
            if actor["role"] == ActorRole.PATIENT.value:
                if appointment.patient_id != actor_id:
                    raise ForbiddenException(
                        "Patients can only cancel their own appointments",
                        details={"actor_id": actor_id, "appointment_id": appointment.id},
                    )
            elif actor["role"] == ActorRole.DOCTOR.value:
                self._require_assigned_doctor(actor_id, appointment)

            updated = appointment.transition_to(AppointmentStatus.CANCELLED)
            if data.reason:
                updated = updated.with_note("Cancelled", data.reason)
            saved = await self.repo.update(updated, now)

        warnings: list[str] = []
        await self._notify_patient(
            warnings,
            saved.patient_id,
            "Appointment Cancelled",
            f"Your appointment on {saved.appointment_date.isoformat()} at {saved.time} has been cancelled.",
        )
        await self._audit(
            warnings, actor_id, saved, "CANCEL", "Appointment", data.reason or "Appointment cancelled"
        )
        return self._result(saved, warnings)

    async def mark_no_show(
        self, actor_id: str, appointment_id: int, data: NoShowRequest
    ) -> WorkflowResult:
        """Staff records that the patient did not arrive."""
        now = self.clock.now()
        reason = data.reason.strip()
        async with transaction(self.db):
            actor = await self._require_actor(actor_id)
            self._require_role(actor, STAFF_ROLES, "Only clinic staff can mark no-shows")
            if not reason:
                raise ValidationException("No-show reason is required", details={"field": "reason"})
            appointment = await self._load(appointment_id)
            if appointment.check_in is not None:
                raise InvalidTransitionException(
                    axis="appointment",
                    from_status=appointment.status.value,
                    to_status=AppointmentStatus.NO_SHOW.value,
                    message="Cannot mark as no-show: patient has already checked in",
                )
            updated = self._as_no_show(appointment, now, reason, data.notes)
            saved = await self.repo.update(updated, now)

        warnings: list[str] = []
        await self._audit(warnings, actor_id, saved, "NO_SHOW", "Appointment", f"Marked as no-show: {reason}")
        return self._result(saved, warnings)

    async def run_no_show_sweep(
        self,
        grace_minutes: int | None = None,
        batch_size: int | None = None,
        actor_id: str | None = None,
    ) -> NoShowSweepResult:
        """
        Mark overdue, never-checked-in appointments as ``NO_SHOW``.

        At most ``batch_size`` appointments are handled per call, oldest first.
        Each one is re-read and written in its own transaction; one that fails
        is reported as a warning and the sweep moves on.

        Args:
            actor_id: Staff member running the sweep. ``None`` runs it as the
                scheduled job, which only the command-line entry point does.
        """
        grace = self.config.no_show_grace_minutes if grace_minutes is None else grace_minutes
        limit = batch_size or self.config.no_show_batch_size
        now = self.clock.now()

        async with transaction(self.db):
            if actor_id is not None:
                actor = await self._require_actor(actor_id)
                self._require_role(
                    actor,
                    {ActorRole.FRONTDESK.value, ActorRole.ADMIN.value},
                    "Only frontdesk or admin staff can run the no-show sweep",
                )
            candidates = await self.repo.find_potential_no_shows(now, grace, limit)

        audit_actor = actor_id or SYSTEM_ACTOR
        result = NoShowSweepResult()
        reason = f"Patient did not check in within {grace} minutes of the scheduled time"
        for candidate in candidates:
            try:
                async with transaction(self.db):
                    current = await self._load(candidate.id)
                    if not self._still_no_show(current, candidate, now, grace):
                        logger.info("no_show_candidate_changed", appointment_id=candidate.id)
                        continue
                    saved = await self.repo.update(self._as_no_show(current, now, reason, None), now)
            except AppException as e:
                logger.warning("no_show_sweep_item_failed", appointment_id=candidate.id, error=e.message)
                result.warnings.append(f"Appointment {candidate.id}: {e.message}")
                continue

            result.marked.append(saved.id)
            await self._audit(result.warnings, audit_actor, saved, "NO_SHOW", "Appointment", reason)

        logger.info("no_show_sweep_completed", candidates=len(candidates), marked=len(result.marked))
        return result

    @staticmethod
    def _still_no_show(current: Appointment, candidate: Appointment, now: datetime, grace: int) -> bool:
        # Every write bumps the version, so a mismatch means the row moved on since the read
        if current.version != candidate.version:
            return False
        if current.check_in is not None or current.status not in lifecycle.NO_SHOW_ELIGIBLE_STATUSES:
            return False
        return current.starts_at + timedelta(minutes=grace) <= now

    @staticmethod
    def _as_no_show(appointment: Appointment, now: datetime, reason: str, notes: str | None) -> Appointment:
        text = f"Reason: {reason}"
        if notes:
            text += f"\nNotes: {notes}"
        return (
            appointment.transition_to(AppointmentStatus.NO_SHOW)
            .with_no_show(NoShowInfo(no_show_at=now, reason=reason, notes=notes))
            .with_note("No-Show", text)
        )

    # Reads

    async def get_appointment(self, appointment_id: int) -> AppointmentResponse:
        """Get appointment by ID."""
        appointment = await self.repo.find_by_id(appointment_id)
        if not appointment:
            raise NotFoundException(
                f"Appointment with ID {appointment_id} not found",
                details={"appointment_id": appointment_id},
            )
        return AppointmentResponse.from_appointment(appointment)

    async def list_patient_appointments(
        self,
        patient_id: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> AppointmentListResponse:
        items = await self.repo.find_by_patient(patient_id, start_date, end_date)
        return AppointmentListResponse(
            total=len(items), items=[AppointmentResponse.from_appointment(a) for a in items]
        )

    async def list_doctor_appointments(
        self,
        doctor_id: str,
        status: AppointmentStatus | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> AppointmentListResponse:
        items = await self.repo.find_by_doctor(doctor_id, status, start_date, end_date)
        return AppointmentListResponse(
            total=len(items), items=[AppointmentResponse.from_appointment(a) for a in items]
        )

    async def list_pending_consultations(self, doctor_id: str) -> AppointmentListResponse:
        """Consultation requests for a doctor that are under review or approved."""
        items = await self.repo.find_by_doctor(
            doctor_id,
            consultation_statuses=consultation_workflow.PENDING_REVIEW_STATUSES,
            exclude_statuses=lifecycle.TERMINAL_STATUSES,
        )
        return AppointmentListResponse(
            total=len(items), items=[AppointmentResponse.from_appointment(a) for a in items]
        )
