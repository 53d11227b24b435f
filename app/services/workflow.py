"""Shared plumbing for the scheduling and review use cases.

Every mutating use case runs in two phases:

1. Inside one transaction: resolve the actor, load the appointment, validate,
   build the new snapshot and write it. Any error rolls everything back and
   reaches the caller unchanged.
2. After the commit: notify and audit. Failures here are logged and returned
   as warnings on the result; they never undo phase 1.
"""

from datetime import date, datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, settings
from app.core.clock import Clock, SystemClock
from app.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from app.domain.appointment import Appointment
from app.domain.enums import ActorRole
from app.repositories.appointment_repository import AppointmentRepository
from app.schemas.appointments import AppointmentResponse, WorkflowResult
from app.services.audit_service import AuditEvent, AuditService, AuditSink
from app.services.conflict_guard import ConflictGuard
from app.services.notification_service import EmailNotificationService, NotificationSink
from app.services.user_service import PatientService, UserService

logger = structlog.get_logger(__name__)

STAFF_ROLES = frozenset({ActorRole.FRONTDESK.value, ActorRole.ADMIN.value, ActorRole.DOCTOR.value})


class WorkflowService:
    """Base class wiring the store, clock and side-effect collaborators."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock | None = None,
        notifier: NotificationSink | None = None,
        audit: AuditSink | None = None,
        config: Settings | None = None,
    ):
        """Initialize service with database session and collaborators."""
        self.db = db
        self.config = config or settings
        self.clock = clock or SystemClock()
        self.notifier = notifier or EmailNotificationService(self.config)
        self.audit = audit or AuditService(db, self.clock)
        self.repo = AppointmentRepository(db, history_limit=self.config.history_query_limit)
        self.guard = ConflictGuard(self.repo)

    # Phase 1 helpers

    async def _require_actor(self, actor_id: str) -> dict:
        actor = await UserService.get_user_by_id(self.db, actor_id)
        if not actor or not actor.get("is_active", True):
            raise NotFoundException(f"User with ID {actor_id} not found", details={"actor_id": actor_id})
        return actor

    @staticmethod
    def _require_role(actor: dict, roles: frozenset[str] | set[str], message: str) -> None:
        if actor["role"] not in roles:
            raise ForbiddenException(message, details={"actor_id": actor["id"], "role": actor["role"]})

    @staticmethod
    def _require_assigned_doctor(actor_id: str, appointment: Appointment) -> None:
        if appointment.doctor_id != actor_id:
            raise ForbiddenException(
                f"Doctor {actor_id} is not assigned to appointment {appointment.id}",
                details={
                    "appointment_id": appointment.id,
                    "doctor_id": actor_id,
                    "assigned_doctor_id": appointment.doctor_id,
                },
            )

    async def _require_patient(self, patient_id: str) -> dict:
        patient = await PatientService.get_patient_by_id(self.db, patient_id)
        if not patient:
            raise NotFoundException(
                f"Patient with ID {patient_id} not found", details={"patient_id": patient_id}
            )
        return patient

    async def _load(self, appointment_id: int) -> Appointment:
        appointment = await self.repo.find_by_id(appointment_id, for_update=True)
        if not appointment:
            raise NotFoundException(
                f"Appointment with ID {appointment_id} not found",
                details={"appointment_id": appointment_id},
            )
        return appointment

    @staticmethod
    def _ensure_not_past(day: date, now: datetime, field: str = "appointment_date") -> None:
        """Reject dates before today; the comparison is at day granularity."""
        if day < now.date():
            raise ValidationException(
                "Appointment date cannot be in the past",
                details={field: day.isoformat(), "today": now.date().isoformat()},
            )

    # Phase 2 helpers

    async def _notify(self, warnings: list[str], address: str | None, subject: str, body: str) -> None:
        if not address:
            warnings.append(f"Notification '{subject}' skipped: no recipient address")
            return
        try:
            await self.notifier.send_email(address, subject, body)
        except Exception as e:
            logger.warning("failed_to_send_notification", subject=subject, error=str(e))
            warnings.append(f"Notification '{subject}' to {address} failed: {e}")

    async def _notify_patient(self, warnings: list[str], patient_id: str, subject: str, body: str) -> None:
        try:
            patient = await PatientService.get_patient_by_id(self.db, patient_id)
        except Exception as e:
            logger.warning("failed_to_resolve_patient_contact", patient_id=patient_id, error=str(e))
            warnings.append(f"Notification '{subject}' skipped: patient lookup failed: {e}")
            return
        await self._notify(warnings, patient["email"] if patient else None, subject, body)

    async def _notify_actor(self, warnings: list[str], actor_id: str, subject: str, body: str) -> None:
        try:
            actor = await UserService.get_user_by_id(self.db, actor_id)
        except Exception as e:
            logger.warning("failed_to_resolve_actor_contact", actor_id=actor_id, error=str(e))
            warnings.append(f"Notification '{subject}' skipped: user lookup failed: {e}")
            return
        await self._notify(warnings, actor["email"] if actor else None, subject, body)

    async def _audit(
        self,
        warnings: list[str],
        actor_id: str,
        appointment: Appointment,
        action: str,
        model: str,
        details: str,
    ) -> None:
        event = AuditEvent(
            actor_id=actor_id,
            record_id=str(appointment.id),
            action=action,
            model=model,
            details=details,
        )
        try:
            await self.audit.record_event(event)
        except Exception as e:
            logger.warning("failed_to_record_audit_event", action=action, record_id=event.record_id, error=str(e))
            warnings.append(f"Audit event '{action}' for appointment {appointment.id} failed: {e}")

    @staticmethod
    def _result(appointment: Appointment, warnings: list[str]) -> WorkflowResult:
        return WorkflowResult(
            appointment=AppointmentResponse.from_appointment(appointment),
            warnings=warnings,
        )
