"""Double-booking rules.

Neither a doctor nor a patient may hold two non-cancelled appointments at the
same date and time. The two sides are reported separately because the fix
differs: a doctor-side clash needs another slot, a patient-side clash usually
another doctor.
"""

from datetime import date

from app.core.exceptions import ConflictException
from app.domain.appointment import Appointment
from app.domain.enums import AppointmentStatus
from app.domain.slots import normalize_time

DOCTOR_SIDE = "doctor"
PATIENT_SIDE = "patient"
STALE_SIDE = "stale"


def occupies_slot(
    appointment: Appointment,
    appointment_date: date,
    time: str,
    exclude_id: int | None = None,
) -> bool:
    """Return True if ``appointment`` holds the slot and blocks it for others."""
    if exclude_id is not None and appointment.id == exclude_id:
        return False
    return (
        appointment.status != AppointmentStatus.CANCELLED
        and appointment.appointment_date == appointment_date
        and appointment.time == normalize_time(time)
    )


def doctor_conflict(doctor_id: str, appointment_date: date, time: str) -> ConflictException:
    return ConflictException(
        f"Appointment conflict: Doctor {doctor_id} already has an appointment on "
        f"{appointment_date.isoformat()} at {time}",
        side=DOCTOR_SIDE,
        details={"doctor_id": doctor_id, "appointment_date": appointment_date.isoformat(), "time": time},
    )


def patient_conflict(patient_id: str, appointment_date: date, time: str) -> ConflictException:
    return ConflictException(
        f"Appointment conflict: Patient {patient_id} already has an appointment on "
        f"{appointment_date.isoformat()} at {time}",
        side=PATIENT_SIDE,
        details={
            "patient_id": patient_id,
            "appointment_date": appointment_date.isoformat(),
            "time": time,
        },
    )


def stale_write(appointment_id: int, expected_version: int) -> ConflictException:
    return ConflictException(
        f"Appointment {appointment_id} was modified concurrently; reload and retry",
        side=STALE_SIDE,
        details={"appointment_id": appointment_id, "expected_version": expected_version},
    )
