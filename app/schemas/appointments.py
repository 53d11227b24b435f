"""Appointment schemas for request/response validation."""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from app.domain.appointment import (
    Appointment,
    CheckInInfo,
    ConsultationRequestFields,
    NoShowInfo,
)
from app.domain.enums import (
    AppointmentOrigin,
    AppointmentStatus,
    ConfirmationAction,
    ReviewAction,
)
from app.domain.slots import normalize_time


def _canonical_time(value: str | None) -> str | None:
    if value is None:
        return None
    return normalize_time(value)


class SlotMixin(BaseModel):
    """Date and time of a slot; time is stored as 24h ``HH:MM``."""

    appointment_date: date
    time: str = Field(..., min_length=4, max_length=8)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Canonicalize 12h/24h input."""
        return normalize_time(v)


class AppointmentCreate(SlotMixin):
    """Schema for booking an appointment directly."""

    patient_id: str = Field(..., min_length=1, max_length=64)
    doctor_id: str = Field(..., min_length=1, max_length=64)
    type: str = Field(default="Consultation", min_length=1, max_length=200)
    note: str | None = Field(None, max_length=2000)
    reason: str | None = Field(None, max_length=500)
    origin: AppointmentOrigin = AppointmentOrigin.FRONTDESK


class ConsultationRequestSubmit(BaseModel):
    """Schema for a patient submitting a consultation request."""

    patient_id: str = Field(..., min_length=1, max_length=64)
    doctor_id: str = Field(..., min_length=1, max_length=64)
    concern_description: str = Field(..., max_length=2000)
    preferred_date: date
    preferred_time: str = Field(..., min_length=4, max_length=8)
    notes: str | None = Field(None, max_length=2000)

    @field_validator("preferred_time")
    @classmethod
    def validate_preferred_time(cls, v: str) -> str:
        """Canonicalize 12h/24h input."""
        return normalize_time(v)


class FrontdeskConsultationCreate(SlotMixin):
    """Schema for frontdesk creating a pre-approved consultation."""

    patient_id: str = Field(..., min_length=1, max_length=64)
    doctor_id: str = Field(..., min_length=1, max_length=64)
    concern_description: str = Field(..., max_length=2000)
    notes: str | None = Field(None, max_length=2000)


class ReviewRequest(BaseModel):
    """Frontdesk triage decision on a consultation request."""

    action: ReviewAction
    proposed_date: date | None = None
    proposed_time: str | None = None
    review_notes: str | None = Field(None, max_length=2000)

    @field_validator("proposed_time")
    @classmethod
    def validate_proposed_time(cls, v: str | None) -> str | None:
        """Canonicalize 12h/24h input."""
        return _canonical_time(v)


class AcceptRequest(BaseModel):
    """Doctor accepting a consultation request, optionally with a slot."""

    appointment_date: date | None = None
    time: str | None = None
    notes: str | None = Field(None, max_length=2000)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str | None) -> str | None:
        """Canonicalize 12h/24h input."""
        return _canonical_time(v)


class DeclineRequest(BaseModel):
    """Doctor declining a consultation request."""

    reason: str | None = Field(None, max_length=1000)


class ConfirmAppointmentRequest(BaseModel):
    """Doctor confirming or rejecting a patient-booked appointment."""

    action: ConfirmationAction
    notes: str | None = Field(None, max_length=1000)
    rejection_reason: str | None = Field(None, max_length=500)


class RescheduleRequest(SlotMixin):
    """Move an appointment to a new slot."""

    reason: str | None = Field(None, max_length=1000)


class CancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=1000)


class CompleteRequest(BaseModel):
    outcome: str = Field(..., min_length=1, max_length=4000)


class NoShowRequest(BaseModel):
    reason: str = Field(..., max_length=1000)
    notes: str | None = Field(None, max_length=2000)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: int
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
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls.model_validate(appointment)


class AppointmentListResponse(BaseModel):
    """Schema for a bounded appointment list."""

    total: int
    items: list[AppointmentResponse]


class WorkflowResult(BaseModel):
    """
    Outcome of a mutating workflow operation.

    ``appointment`` is the committed state. ``warnings`` lists side effects
    (notifications, audit records) that failed after the commit; they never
    undo the state change.
    """

    appointment: AppointmentResponse
    warnings: list[str] = Field(default_factory=list)


class NoShowSweepRequest(BaseModel):
    grace_minutes: int | None = Field(None, ge=0)
    batch_size: int | None = Field(None, ge=1, le=500)


class NoShowSweepResult(BaseModel):
    """Appointments moved to NO_SHOW by one sweep invocation."""

    marked: list[int] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
