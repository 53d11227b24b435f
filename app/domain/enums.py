"""Status and role enumerations shared by the scheduling workflows."""

from enum import Enum


class AppointmentStatus(str, Enum):
    """Coarse appointment lifecycle."""

    PENDING = "PENDING"
    PENDING_DOCTOR_CONFIRMATION = "PENDING_DOCTOR_CONFIRMATION"
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class ConsultationRequestStatus(str, Enum):
    """Triage status of a consultation request.

    ``REJECTED`` is recorded when a reviewer turns a request down; the
    appointment itself is cancelled at the same time.
    """

    SUBMITTED = "SUBMITTED"
    PENDING_REVIEW = "PENDING_REVIEW"
    NEEDS_MORE_INFO = "NEEDS_MORE_INFO"
    APPROVED = "APPROVED"
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"


class ReviewAction(str, Enum):
    """Frontdesk triage decision."""

    APPROVE = "approve"
    NEEDS_MORE_INFO = "needs_more_info"
    REJECT = "reject"


class AppointmentOrigin(str, Enum):
    """Where a direct booking came from; decides its initial status."""

    FRONTDESK = "frontdesk"
    PATIENT_PORTAL = "patient_portal"


class ActorRole(str, Enum):
    """Roles of the people acting on appointments."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    FRONTDESK = "frontdesk"
    ADMIN = "admin"


class ConfirmationAction(str, Enum):
    """Doctor decision on a patient-booked appointment."""

    CONFIRM = "confirm"
    REJECT = "reject"
