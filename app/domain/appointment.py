"""Appointment aggregate.

An ``Appointment`` is an immutable snapshot. Every change goes through a method
that returns a new snapshot, so a use case can build the complete target state
(both status axes, slot, notes) in memory and hand it to the repository as a
single write.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict

from app.domain import consultation_workflow, lifecycle
from app.domain.enums import AppointmentStatus, ConsultationRequestStatus
from app.domain.slots import normalize_time, slot_start


class ConsultationRequestFields(BaseModel):
    """Consultation sub-workflow state owned by an appointment."""

    model_config = ConfigDict(frozen=True)

    consultation_request_status: ConsultationRequestStatus
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None


class CheckInInfo(BaseModel):
    """Arrival record."""

    model_config = ConfigDict(frozen=True)

    checked_in_at: datetime
    checked_in_by: str
    is_late: bool = False
    late_by_minutes: int | None = None


class NoShowInfo(BaseModel):
    """Absence record."""

    model_config = ConfigDict(frozen=True)

    no_show_at: datetime
    reason: str
    notes: str | None = None


class Appointment(BaseModel):
    """Immutable appointment snapshot."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    patient_id: str
    doctor_id: str
    appointment_date: date
    time: str
    status: AppointmentStatus
    type: str
    note: str | None = None
    reason: str | None = None
    consultation: ConsultationRequestFields | None = None
    check_in: CheckInInfo | None = None
    no_show: NoShowInfo | None = None
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def consultation_status(self) -> ConsultationRequestStatus | None:
        """Current consultation status, ``None`` for plain appointments."""
        return self.consultation.consultation_request_status if self.consultation else None

    @property
    def starts_at(self) -> datetime:
        """Scheduled start as a naive datetime."""
        return slot_start(self.appointment_date, self.time)

    def transition_to(self, target: AppointmentStatus) -> "Appointment":
        """Move along the coarse lifecycle; raises on an illegal edge."""
        lifecycle.ensure_transition(self.status, target)
        return self.model_copy(update={"status": target})

    def apply_consultation_path(
        self,
        path: list[ConsultationRequestStatus],
        reviewed_by: str | None = None,
        reviewed_at: datetime | None = None,
        review_notes: str | None = None,
    ) -> "Appointment":
        """
        Walk the consultation sub-workflow through every status in ``path``.

        Each edge is validated before the snapshot is produced, so an illegal
        edge anywhere in the path leaves the caller holding the original.
        Reviewer fields are replaced only when ``reviewed_by`` is given.
        """
        consultation_workflow.ensure_path(self.consultation_status, path)
        return self._with_consultation(path[-1], reviewed_by, reviewed_at, review_notes)

    def force_consultation_status(
        self,
        target: ConsultationRequestStatus,
        reviewed_by: str | None = None,
        reviewed_at: datetime | None = None,
        review_notes: str | None = None,
    ) -> "Appointment":
        """Record a consultation status without consulting the graph."""
        return self._with_consultation(target, reviewed_by, reviewed_at, review_notes)

    def _with_consultation(
        self,
        target: ConsultationRequestStatus,
        reviewed_by: str | None,
        reviewed_at: datetime | None,
        review_notes: str | None,
    ) -> "Appointment":
        current = self.consultation
        if reviewed_by is not None:
            fields = ConsultationRequestFields(
                consultation_request_status=target,
                reviewed_by=reviewed_by,
                reviewed_at=reviewed_at,
                review_notes=review_notes,
            )
        elif current is not None:
            fields = current.model_copy(update={"consultation_request_status": target})
        else:
            fields = ConsultationRequestFields(consultation_request_status=target)
        return self.model_copy(update={"consultation": fields})

    def with_slot(self, appointment_date: date, time: str) -> "Appointment":
        return self.model_copy(
            update={"appointment_date": appointment_date, "time": normalize_time(time)}
        )

    def with_note(self, tag: str, text: str) -> "Appointment":
        """Append a ``[tag] text`` paragraph to the free-text note."""
        entry = f"[{tag}] {text}"
        note = f"{self.note}\n\n{entry}" if self.note else entry
        return self.model_copy(update={"note": note})

    def with_check_in(self, info: CheckInInfo) -> "Appointment":
        return self.model_copy(update={"check_in": info})

    def with_no_show(self, info: NoShowInfo) -> "Appointment":
        return self.model_copy(update={"no_show": info})
