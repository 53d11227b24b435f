"""Create scheduling tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

APPOINTMENT_STATUSES = (
    "PENDING",
    "PENDING_DOCTOR_CONFIRMATION",
    "SCHEDULED",
    "COMPLETED",
    "CANCELLED",
    "NO_SHOW",
)
CONSULTATION_STATUSES = (
    "SUBMITTED",
    "PENDING_REVIEW",
    "NEEDS_MORE_INFO",
    "APPROVED",
    "SCHEDULED",
    "CONFIRMED",
    "REJECTED",
)


def _in_list(values: tuple[str, ...]) -> str:
    return ", ".join(f"'{value}'" for value in values)


def upgrade() -> None:
    """Create users, patients, appointments and audit_events tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'patient'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "patients",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("patient_id", sa.String(64), nullable=False),
        sa.Column("doctor_id", sa.String(64), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(5), nullable=False),
        sa.Column("status", sa.String(40), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("consultation_request_status", sa.String(40), nullable=True),
        sa.Column("reviewed_by", sa.String(64), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(), nullable=True),
        sa.Column("checked_in_by", sa.String(64), nullable=True),
        sa.Column("late_arrival", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("late_by_minutes", sa.Integer(), nullable=True),
        sa.Column("no_show", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("no_show_at", sa.DateTime(), nullable=True),
        sa.Column("no_show_reason", sa.Text(), nullable=True),
        sa.Column("no_show_notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            f"status IN ({_in_list(APPOINTMENT_STATUSES)})",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "consultation_request_status IS NULL OR "
            f"consultation_request_status IN ({_in_list(CONSULTATION_STATUSES)})",
            name="appointments_consultation_status_check",
        ),
    )
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_doctor_id", "appointments", ["doctor_id"])
    op.create_index("idx_appointments_doctor_date", "appointments", ["doctor_id", "appointment_date"])
    op.create_index("idx_appointments_status_date", "appointments", ["status", "appointment_date"])

    # Double-booking guards; cancelled appointments release their slot
    op.create_index(
        "uq_appointments_doctor_slot",
        "appointments",
        ["doctor_id", "appointment_date", "time"],
        unique=True,
        postgresql_where=sa.text("status <> 'CANCELLED'"),
    )
    op.create_index(
        "uq_appointments_patient_slot",
        "appointments",
        ["patient_id", "appointment_date", "time"],
        unique=True,
        postgresql_where=sa.text("status <> 'CANCELLED'"),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.String(64), nullable=False),
        sa.Column("record_id", sa.String(64), nullable=False),
        sa.Column("action", sa.String(40), nullable=False),
        sa.Column("model", sa.String(60), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_audit_events_record", "audit_events", ["model", "record_id"])


def downgrade() -> None:
    """Drop scheduling tables."""
    op.drop_table("audit_events")
    op.drop_index("uq_appointments_patient_slot", table_name="appointments")
    op.drop_index("uq_appointments_doctor_slot", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("patients")
    op.drop_table("users")
