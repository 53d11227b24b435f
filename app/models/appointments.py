"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    text,
)

from app.domain.enums import AppointmentStatus, ConsultationRequestStatus

# Metadata for all tables
metadata = MetaData()

_STATUS_VALUES = ", ".join(f"'{status.value}'" for status in AppointmentStatus)
_CONSULTATION_VALUES = ", ".join(f"'{status.value}'" for status in ConsultationRequestStatus)

# Rows holding a slot; cancelled appointments free theirs
_ACTIVE_SLOT = text("status <> 'CANCELLED'")

DOCTOR_SLOT_INDEX = "uq_appointments_doctor_slot"
PATIENT_SLOT_INDEX = "uq_appointments_patient_slot"

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # Ownership / references (opaque identifiers)
    Column("patient_id", String(64), nullable=False, index=True),
    Column("doctor_id", String(64), nullable=False, index=True),
    # Slot: naive local date plus canonical HH:MM
    Column("appointment_date", Date, nullable=False),
    Column("time", String(5), nullable=False),
    # Status management
    Column("status", String(40), nullable=False),
    Column("type", Text, nullable=False),
    Column("note", Text, nullable=True),
    Column("reason", Text, nullable=True),
    # Consultation request sub-workflow
    Column("consultation_request_status", String(40), nullable=True),
    Column("reviewed_by", String(64), nullable=True),
    Column("reviewed_at", DateTime, nullable=True),
    Column("review_notes", Text, nullable=True),
    # Check-in
    Column("checked_in_at", DateTime, nullable=True),
    Column("checked_in_by", String(64), nullable=True),
    Column("late_arrival", Boolean, nullable=False, server_default=text("false")),
    Column("late_by_minutes", Integer, nullable=True),
    # No-show
    Column("no_show", Boolean, nullable=False, server_default=text("false")),
    Column("no_show_at", DateTime, nullable=True),
    Column("no_show_reason", Text, nullable=True),
    Column("no_show_notes", Text, nullable=True),
    # Optimistic concurrency
    Column("version", Integer, nullable=False, server_default=text("0")),
    # Audit fields
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    # Constraints
    CheckConstraint(f"status IN ({_STATUS_VALUES})", name="appointments_status_check"),
    CheckConstraint(
        f"consultation_request_status IS NULL OR consultation_request_status IN ({_CONSULTATION_VALUES})",
        name="appointments_consultation_status_check",
    ),
)

# Last-resort double-booking guards, checked at commit time
Index(
    DOCTOR_SLOT_INDEX,
    appointments.c.doctor_id,
    appointments.c.appointment_date,
    appointments.c.time,
    unique=True,
    postgresql_where=_ACTIVE_SLOT,
    sqlite_where=_ACTIVE_SLOT,
)
Index(
    PATIENT_SLOT_INDEX,
    appointments.c.patient_id,
    appointments.c.appointment_date,
    appointments.c.time,
    unique=True,
    postgresql_where=_ACTIVE_SLOT,
    sqlite_where=_ACTIVE_SLOT,
)
# Dashboard and sweep scans
Index("idx_appointments_doctor_date", appointments.c.doctor_id, appointments.c.appointment_date)
Index("idx_appointments_status_date", appointments.c.status, appointments.c.appointment_date)
