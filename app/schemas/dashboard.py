"""Dashboard schemas."""

from pydantic import BaseModel, Field


class DoctorStats(BaseModel):
    """Per-doctor workload counts as of the service clock."""

    today_count: int = Field(0, ge=0, description="Non-cancelled appointments today")
    pending_review_count: int = Field(
        0, ge=0, description="Consultation requests in PENDING_REVIEW or APPROVED"
    )
    pending_check_in_count: int = Field(
        0, ge=0, description="Today's PENDING/SCHEDULED appointments without check-in"
    )
    upcoming_count: int = Field(
        0, ge=0, description="Non-cancelled appointments from tomorrow through the window end"
    )
