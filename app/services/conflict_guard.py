"""Double-booking checks run inside the booking transaction."""

from datetime import date

import structlog

from app.domain import conflicts
from app.repositories.appointment_repository import AppointmentRepository

logger = structlog.get_logger(__name__)


class ConflictGuard:
    """
    Doctor-side and patient-side slot checks.

    Call from inside the transaction that writes the appointment. The unique
    indexes on the table still catch the race where two writers pass these
    checks at the same time.
    """

    def __init__(self, repo: AppointmentRepository):
        self.repo = repo

    async def ensure_slot_free(
        self,
        doctor_id: str,
        patient_id: str,
        appointment_date: date,
        time: str,
        exclude_id: int | None = None,
    ) -> None:
        """
        Raise ``ConflictException`` if either party already holds the slot.

        Args:
            exclude_id: Appointment being moved; it never conflicts with itself
        """
        if await self.repo.has_conflict(doctor_id, appointment_date, time, exclude_id=exclude_id):
            logger.info("double_booking_rejected", side=conflicts.DOCTOR_SIDE, doctor_id=doctor_id)
            raise conflicts.doctor_conflict(doctor_id, appointment_date, time)

        if await self.repo.has_patient_conflict(patient_id, appointment_date, time, exclude_id=exclude_id):
            logger.info("double_booking_rejected", side=conflicts.PATIENT_SIDE, patient_id=patient_id)
            raise conflicts.patient_conflict(patient_id, appointment_date, time)
