"""Tests for the appointment repository against SQLite."""

from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException
from app.domain.appointment import Appointment, CheckInInfo
from app.domain.enums import AppointmentStatus, ConsultationRequestStatus
from app.repositories.appointment_repository import AppointmentRepository

NOW = datetime(2025, 5, 26, 9, 0)
TODAY = NOW.date()


def build(**overrides) -> Appointment:
    values = {
        "patient_id": "patient-1",
        "doctor_id": "doctor-1",
        "appointment_date": date(2025, 6, 1),
        "time": "10:00",
        "status": AppointmentStatus.PENDING,
        "type": "Consultation",
    }
    values.update(overrides)
    return Appointment(**values)


@pytest.mark.asyncio
async def test_save_assigns_id_and_round_trips_consultation(db_session: AsyncSession) -> None:
    repo = AppointmentRepository(db_session)
    appointment = build().apply_consultation_path(
        [ConsultationRequestStatus.APPROVED], reviewed_by="frontdesk-1", reviewed_at=NOW
    )
    saved = await repo.save(appointment, NOW)
    await db_session.commit()

    loaded = await repo.find_by_id(saved.id)
    assert loaded is not None
    assert loaded.version == 0
    assert loaded.consultation_status == ConsultationRequestStatus.APPROVED
    assert loaded.consultation.reviewed_by == "frontdesk-1"
    assert loaded.consultation.reviewed_at == NOW
    assert loaded.check_in is None
    assert loaded.no_show is None


@pytest.mark.asyncio
async def test_missing_appointment_is_none(db_session: AsyncSession) -> None:
    repo = AppointmentRepository(db_session)
    assert await repo.find_by_id(999) is None
    assert await repo.get_consultation_fields(999) is None


@pytest.mark.asyncio
async def test_conflict_checks_ignore_cancelled_and_excluded(db_session: AsyncSession) -> None:
    repo = AppointmentRepository(db_session)
    active = await repo.save(build(), NOW)
    await repo.save(build(patient_id="patient-2", time="11:00", status=AppointmentStatus.CANCELLED), NOW)
    await db_session.commit()

    assert await repo.has_conflict("doctor-1", date(2025, 6, 1), "10:00")
    assert await repo.has_conflict("doctor-1", date(2025, 6, 1), "10:00 AM")
    assert not await repo.has_conflict("doctor-1", date(2025, 6, 1), "11:00")
    assert not await repo.has_conflict("doctor-1", date(2025, 6, 1), "10:00", exclude_id=active.id)
    assert await repo.has_patient_conflict("patient-1", date(2025, 6, 1), "10:00")
    assert not await repo.has_patient_conflict("patient-2", date(2025, 6, 1), "11:00")


@pytest.mark.asyncio
async def test_doctor_slot_index_rejects_double_booking(db_session: AsyncSession) -> None:
    """The unique index catches a second writer that skipped the conflict check."""
    repo = AppointmentRepository(db_session)
    await repo.save(build(), NOW)
    await db_session.commit()

    with pytest.raises(ConflictException) as exc_info:
        await repo.save(build(patient_id="patient-2"), NOW)
    await db_session.rollback()
    assert exc_info.value.side == "doctor"


@pytest.mark.asyncio
async def test_patient_slot_index_rejects_double_booking(db_session: AsyncSession) -> None:
    repo = AppointmentRepository(db_session)
    await repo.save(build(), NOW)
    await db_session.commit()

    with pytest.raises(ConflictException) as exc_info:
        await repo.save(build(doctor_id="doctor-2"), NOW)
    await db_session.rollback()
    assert exc_info.value.side == "patient"


@pytest.mark.asyncio
async def test_cancelled_slot_can_be_rebooked(db_session: AsyncSession) -> None:
    repo = AppointmentRepository(db_session)
    await repo.save(build(status=AppointmentStatus.CANCELLED), NOW)
    await repo.save(build(), NOW)
    await db_session.commit()

    items = await repo.find_by_doctor("doctor-1")
    assert len(items) == 2


@pytest.mark.asyncio
async def test_update_bumps_version_and_rejects_stale_write(db_session: AsyncSession) -> None:
    repo = AppointmentRepository(db_session)
    saved = await repo.save(build(), NOW)
    await db_session.commit()

    later = NOW + timedelta(minutes=5)
    first = await repo.update(saved.transition_to(AppointmentStatus.SCHEDULED), later)
    await db_session.commit()
    assert first.version == 1
    assert first.updated_at == later

    # A second writer still holding version 0
    with pytest.raises(ConflictException) as exc_info:
        await repo.update(saved.with_note("Frontdesk", "late edit"), later)
    await db_session.rollback()
    assert exc_info.value.side == "stale"

    stored = await repo.find_by_id(saved.id)
    assert stored.status == AppointmentStatus.SCHEDULED
    assert stored.note is None


@pytest.mark.asyncio
async def test_history_queries_are_bounded(db_session: AsyncSession) -> None:
    repo = AppointmentRepository(db_session, history_limit=3)
    for hour in range(8, 13):
        await repo.save(build(time=f"{hour:02d}:00"), NOW)
    await db_session.commit()

    by_patient = await repo.find_by_patient("patient-1")
    by_doctor = await repo.find_by_doctor("doctor-1")
    assert [a.time for a in by_patient] == ["12:00", "11:00", "10:00"]
    assert [a.time for a in by_doctor] == ["08:00", "09:00", "10:00"]


@pytest.mark.asyncio
async def test_potential_no_shows(db_session: AsyncSession) -> None:
    repo = AppointmentRepository(db_session)
    now = datetime(2025, 6, 1, 11, 30)
    overdue = await repo.save(build(time="10:00", status=AppointmentStatus.SCHEDULED), now)
    await repo.save(build(time="10:45", patient_id="patient-2"), now)  # inside grace window
    await repo.save(build(time="09:00", patient_id="patient-3", status=AppointmentStatus.CANCELLED), now)
    await repo.save(
        build(time="09:30", patient_id="patient-4").with_check_in(
            CheckInInfo(checked_in_at=now, checked_in_by="frontdesk-1")
        ),
        now,
    )
    await db_session.commit()

    candidates = await repo.find_potential_no_shows(now, grace_minutes=60, limit=10)
    assert [a.id for a in candidates] == [overdue.id]


@pytest.mark.asyncio
async def test_potential_no_shows_respects_limit(db_session: AsyncSession) -> None:
    repo = AppointmentRepository(db_session)
    for hour in range(8, 12):
        await repo.save(build(time=f"{hour:02d}:00", appointment_date=date(2025, 5, 20)), NOW)
    await db_session.commit()

    candidates = await repo.find_potential_no_shows(NOW, grace_minutes=60, limit=2)
    assert [a.time for a in candidates] == ["08:00", "09:00"]


class TestDoctorStats:
    @pytest.mark.asyncio
    async def test_no_appointments(self, db_session: AsyncSession) -> None:
        repo = AppointmentRepository(db_session)
        stats = await repo.get_doctor_stats("doctor-1", NOW)
        assert stats.model_dump() == {
            "today_count": 0,
            "pending_review_count": 0,
            "pending_check_in_count": 0,
            "upcoming_count": 0,
        }

    @pytest.mark.asyncio
    async def test_single_appointment_today(self, db_session: AsyncSession) -> None:
        repo = AppointmentRepository(db_session)
        await repo.save(build(appointment_date=TODAY, status=AppointmentStatus.SCHEDULED), NOW)
        await db_session.commit()

        stats = await repo.get_doctor_stats("doctor-1", NOW)
        assert stats.today_count == 1
        assert stats.pending_check_in_count == 1
        assert stats.upcoming_count == 0
        assert stats.pending_review_count == 0

    @pytest.mark.asyncio
    async def test_counts_match_brute_force(self, db_session: AsyncSession) -> None:
        repo = AppointmentRepository(db_session)
        window = 5
        rows = []
        statuses = [
            AppointmentStatus.PENDING,
            AppointmentStatus.SCHEDULED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.COMPLETED,
        ]
        for offset in range(-1, window + 2):
            for index, status in enumerate(statuses):
                appointment = build(
                    patient_id=f"patient-{offset}-{index}",
                    appointment_date=TODAY + timedelta(days=offset),
                    time=f"{9 + index:02d}:00",
                    status=status,
                )
                if index == 0:
                    appointment = appointment.apply_consultation_path(
                        [ConsultationRequestStatus.PENDING_REVIEW]
                    )
                if index == 1 and offset == 0:
                    appointment = appointment.with_check_in(
                        CheckInInfo(checked_in_at=NOW, checked_in_by="frontdesk-1")
                    )
                rows.append(await repo.save(appointment, NOW))
        # Another doctor's appointments never count
        await repo.save(build(doctor_id="doctor-2", appointment_date=TODAY), NOW)
        await db_session.commit()

        active = [a for a in rows if a.status != AppointmentStatus.CANCELLED]
        expected_today = sum(1 for a in active if a.appointment_date == TODAY)
        expected_review = sum(
            1
            for a in active
            if a.consultation_status
            in (ConsultationRequestStatus.PENDING_REVIEW, ConsultationRequestStatus.APPROVED)
        )
        expected_check_in = sum(
            1
            for a in rows
            if a.appointment_date == TODAY
            and a.status in (AppointmentStatus.PENDING, AppointmentStatus.SCHEDULED)
            and a.check_in is None
        )
        expected_upcoming = sum(
            1
            for a in active
            if TODAY + timedelta(days=1) <= a.appointment_date <= TODAY + timedelta(days=window)
        )

        stats = await repo.get_doctor_stats("doctor-1", NOW, upcoming_window_days=window)
        assert stats.today_count == expected_today == 3
        assert stats.pending_review_count == expected_review
        assert stats.pending_check_in_count == expected_check_in == 1
        assert stats.upcoming_count == expected_upcoming == 3 * window
