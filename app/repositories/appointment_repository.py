"""Appointment store backed by SQLAlchemy Core.

The repository always reads and writes the consultation fields, check-in and
no-show records together with the appointment row, so a single ``update`` call
changes both status axes at once. Writes are guarded by the ``version`` column.
"""

from datetime import date, datetime, timedelta
from typing import Any

import structlog
from sqlalchemy import and_, func, insert, or_, select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException
from app.domain import conflicts, consultation_workflow, lifecycle
from app.domain.appointment import (
    Appointment,
    CheckInInfo,
    ConsultationRequestFields,
    NoShowInfo,
)
from app.domain.enums import AppointmentStatus, ConsultationRequestStatus
from app.domain.slots import no_show_cutoff, normalize_time
from app.models.appointments import DOCTOR_SLOT_INDEX, PATIENT_SLOT_INDEX, appointments
from app.schemas.dashboard import DoctorStats

logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 100


def _row_to_appointment(row: Row) -> Appointment:
    """Map a database row to an appointment snapshot."""
    data = row._mapping

    consultation = None
    if data["consultation_request_status"] is not None:
        consultation = ConsultationRequestFields(
            consultation_request_status=ConsultationRequestStatus(
                data["consultation_request_status"]
            ),
            reviewed_by=data["reviewed_by"],
            reviewed_at=data["reviewed_at"],
            review_notes=data["review_notes"],
        )

    check_in = None
    if data["checked_in_at"] is not None:
        check_in = CheckInInfo(
            checked_in_at=data["checked_in_at"],
            checked_in_by=data["checked_in_by"] or "",
            is_late=bool(data["late_arrival"]),
            late_by_minutes=data["late_by_minutes"],
        )

    no_show = None
    if data["no_show"] and data["no_show_at"] is not None:
        no_show = NoShowInfo(
            no_show_at=data["no_show_at"],
            reason=data["no_show_reason"] or "",
            notes=data["no_show_notes"],
        )

    return Appointment(
        id=data["id"],
        patient_id=data["patient_id"],
        doctor_id=data["doctor_id"],
        appointment_date=data["appointment_date"],
        time=data["time"],
        status=AppointmentStatus(data["status"]),
        type=data["type"],
        note=data["note"],
        reason=data["reason"],
        consultation=consultation,
        check_in=check_in,
        no_show=no_show,
        version=data["version"],
        created_at=data["created_at"],
        updated_at=data["updated_at"],
    )


def _to_values(appointment: Appointment) -> dict[str, Any]:
    """Column values for every mutable field of the snapshot."""
    consultation = appointment.consultation
    check_in = appointment.check_in
    no_show = appointment.no_show
    return {
        "patient_id": appointment.patient_id,
        "doctor_id": appointment.doctor_id,
        "appointment_date": appointment.appointment_date,
        "time": normalize_time(appointment.time),
        "status": appointment.status.value,
        "type": appointment.type,
        "note": appointment.note,
        "reason": appointment.reason,
        "consultation_request_status": (
            consultation.consultation_request_status.value if consultation else None
        ),
        "reviewed_by": consultation.reviewed_by if consultation else None,
        "reviewed_at": consultation.reviewed_at if consultation else None,
        "review_notes": consultation.review_notes if consultation else None,
        "checked_in_at": check_in.checked_in_at if check_in else None,
        "checked_in_by": check_in.checked_in_by if check_in else None,
        "late_arrival": check_in.is_late if check_in else False,
        "late_by_minutes": check_in.late_by_minutes if check_in else None,
        "no_show": no_show is not None,
        "no_show_at": no_show.no_show_at if no_show else None,
        "no_show_reason": no_show.reason if no_show else None,
        "no_show_notes": no_show.notes if no_show else None,
    }


def _slot_conflict(exc: IntegrityError, appointment: Appointment) -> ConflictException | None:
    """Turn a violated double-booking index into a ConflictException."""
    message = str(exc.orig) if exc.orig is not None else str(exc)
    if PATIENT_SLOT_INDEX in message or "appointments.patient_id" in message:
        return conflicts.patient_conflict(
            appointment.patient_id, appointment.appointment_date, appointment.time
        )
    if DOCTOR_SLOT_INDEX in message or "appointments.doctor_id" in message:
        return conflicts.doctor_conflict(
            appointment.doctor_id, appointment.appointment_date, appointment.time
        )
    return None


def _active_slot(appointment_date: date, time: str, exclude_id: int | None) -> list[Any]:
    conditions = [
        appointments.c.appointment_date == appointment_date,
        appointments.c.time == normalize_time(time),
        appointments.c.status != AppointmentStatus.CANCELLED.value,
    ]
    if exclude_id is not None:
        conditions.append(appointments.c.id != exclude_id)
    return conditions


class AppointmentRepository:
    """Repository for appointment rows."""

    def __init__(self, db: AsyncSession, history_limit: int = DEFAULT_HISTORY_LIMIT):
        """Initialize repository with database session."""
        self.db = db
        self.history_limit = history_limit

    async def find_by_id(self, appointment_id: int, for_update: bool = False) -> Appointment | None:
        """
        Load one appointment.

        Args:
            appointment_id: Appointment ID
            for_update: Lock the row until the surrounding transaction ends
                (ignored by backends without row locks)

        Returns:
            The appointment snapshot, or None when absent
        """
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        row = result.fetchone()
        return _row_to_appointment(row) if row else None

    async def find_by_patient(
        self,
        patient_id: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Appointment]:
        """Most recent appointments of a patient, bounded by ``history_limit``."""
        conditions = [appointments.c.patient_id == patient_id]
        if start_date:
            conditions.append(appointments.c.appointment_date >= start_date)
        if end_date:
            conditions.append(appointments.c.appointment_date <= end_date)

        stmt = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(appointments.c.appointment_date.desc(), appointments.c.time.desc())
            .limit(self.history_limit)
        )
        result = await self.db.execute(stmt)
        return [_row_to_appointment(row) for row in result.fetchall()]

    async def find_by_doctor(
        self,
        doctor_id: str,
        status: AppointmentStatus | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        consultation_statuses: frozenset[ConsultationRequestStatus] | None = None,
        exclude_statuses: frozenset[AppointmentStatus] | None = None,
    ) -> list[Appointment]:
        """Appointments of a doctor in date order, bounded by ``history_limit``."""
        conditions = [appointments.c.doctor_id == doctor_id]
        if status:
            conditions.append(appointments.c.status == status.value)
        if start_date:
            conditions.append(appointments.c.appointment_date >= start_date)
        if end_date:
            conditions.append(appointments.c.appointment_date <= end_date)
        if exclude_statuses:
            conditions.append(appointments.c.status.not_in([s.value for s in exclude_statuses]))
        if consultation_statuses:
            conditions.append(
                appointments.c.consultation_request_status.in_(
                    [s.value for s in consultation_statuses]
                )
            )

        stmt = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(appointments.c.appointment_date.asc(), appointments.c.time.asc())
            .limit(self.history_limit)
        )
        result = await self.db.execute(stmt)
        return [_row_to_appointment(row) for row in result.fetchall()]

    async def has_conflict(
        self,
        doctor_id: str,
        appointment_date: date,
        time: str,
        exclude_id: int | None = None,
    ) -> bool:
        """Return True if a non-cancelled appointment holds the doctor's slot."""
        stmt = (
            select(appointments.c.id)
            .where(appointments.c.doctor_id == doctor_id, *_active_slot(appointment_date, time, exclude_id))
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def has_patient_conflict(
        self,
        patient_id: str,
        appointment_date: date,
        time: str,
        exclude_id: int | None = None,
    ) -> bool:
        """Return True if the patient already holds a non-cancelled appointment in the slot."""
        stmt = (
            select(appointments.c.id)
            .where(appointments.c.patient_id == patient_id, *_active_slot(appointment_date, time, exclude_id))
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def save(self, appointment: Appointment, now: datetime) -> Appointment:
        """
        Insert a new appointment; the store assigns the id.

        Raises:
            ConflictException: If a double-booking index rejects the row
        """
        values = _to_values(appointment)
        values.update(version=0, created_at=now, updated_at=now)

        try:
            result = await self.db.execute(insert(appointments).values(**values))
        except IntegrityError as exc:
            conflict = _slot_conflict(exc, appointment)
            if conflict is None:
                raise
            raise conflict from exc

        appointment_id = result.inserted_primary_key[0]
        logger.info(
            "appointment_saved",
            appointment_id=appointment_id,
            doctor_id=appointment.doctor_id,
            status=appointment.status.value,
        )
        return appointment.model_copy(
            update={"id": appointment_id, "version": 0, "created_at": now, "updated_at": now}
        )

    async def update(self, appointment: Appointment, now: datetime) -> Appointment:
        """
        Persist the full snapshot if nobody changed the row since it was read.

        Raises:
            ConflictException: On a stale version or a double-booking index violation
        """
        if appointment.id is None:
            raise ValueError("Cannot update an appointment that was never saved")

        next_version = appointment.version + 1
        stmt = (
            update(appointments)
            .where(
                appointments.c.id == appointment.id,
                appointments.c.version == appointment.version,
            )
            .values(**_to_values(appointment), version=next_version, updated_at=now)
        )
        try:
            result = await self.db.execute(stmt)
        except IntegrityError as exc:
            conflict = _slot_conflict(exc, appointment)
            if conflict is None:
                raise
            raise conflict from exc

        if result.rowcount == 0:
            raise conflicts.stale_write(appointment.id, appointment.version)

        return appointment.model_copy(update={"version": next_version, "updated_at": now})

    async def get_consultation_fields(self, appointment_id: int) -> ConsultationRequestFields | None:
        appointment = await self.find_by_id(appointment_id)
        return appointment.consultation if appointment else None

    @staticmethod
    def _no_show_conditions(now: datetime, grace_minutes: int) -> list[Any]:
        cutoff_date, cutoff_time = no_show_cutoff(now, grace_minutes)
        return [
            or_(
                appointments.c.appointment_date < cutoff_date,
                and_(
                    appointments.c.appointment_date == cutoff_date,
                    appointments.c.time <= cutoff_time,
                ),
            ),
            appointments.c.checked_in_at.is_(None),
            appointments.c.no_show == False,  # noqa: E712
            appointments.c.status.in_([s.value for s in lifecycle.NO_SHOW_ELIGIBLE_STATUSES]),
        ]

    async def find_potential_no_shows(
        self,
        now: datetime,
        grace_minutes: int,
        limit: int,
    ) -> list[Appointment]:
        """
        Appointments whose slot plus the grace window has elapsed without check-in.

        Oldest first, at most ``limit`` rows.
        """
        stmt = (
            select(appointments)
            .where(*self._no_show_conditions(now, grace_minutes))
            .order_by(appointments.c.appointment_date.asc(), appointments.c.time.asc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [_row_to_appointment(row) for row in result.fetchall()]

    async def count_potential_no_shows(self, now: datetime, grace_minutes: int) -> int:
        """Number of appointments the next sweeps still have to pick up."""
        stmt = (
            select(func.count())
            .select_from(appointments)
            .where(*self._no_show_conditions(now, grace_minutes))
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def get_doctor_stats(
        self,
        doctor_id: str,
        now: datetime,
        upcoming_window_days: int = 5,
    ) -> DoctorStats:
        """
        Dashboard counts for one doctor.

        Each count is its own scalar subquery over the doctor's index, all sent
        in a single round trip; no appointment rows are loaded.
        """
        today = now.date()
        tomorrow = today + timedelta(days=1)
        window_end = today + timedelta(days=upcoming_window_days)
        not_cancelled = appointments.c.status != AppointmentStatus.CANCELLED.value
        is_today = and_(
            appointments.c.appointment_date >= today,
            appointments.c.appointment_date < tomorrow,
        )

        def count(*conditions: Any) -> Any:
            return (
                select(func.count())
                .select_from(appointments)
                .where(appointments.c.doctor_id == doctor_id, *conditions)
                .scalar_subquery()
            )

        stmt = select(
            count(is_today, not_cancelled).label("today_count"),
            count(
                appointments.c.consultation_request_status.in_(
                    [s.value for s in consultation_workflow.PENDING_REVIEW_STATUSES]
                ),
                not_cancelled,
            ).label("pending_review_count"),
            count(
                is_today,
                appointments.c.status.in_(
                    [AppointmentStatus.SCHEDULED.value, AppointmentStatus.PENDING.value]
                ),
                appointments.c.checked_in_at.is_(None),
            ).label("pending_check_in_count"),
            count(
                appointments.c.appointment_date >= tomorrow,
                appointments.c.appointment_date <= window_end,
                not_cancelled,
            ).label("upcoming_count"),
        )
        result = await self.db.execute(stmt)
        row = result.one()
        return DoctorStats(**dict(row._mapping))
