"""Doctor dashboard counts."""

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, settings
from app.core.clock import Clock, SystemClock
from app.repositories.appointment_repository import AppointmentRepository
from app.schemas.dashboard import DoctorStats


class DashboardService:
    """Service for the doctor dashboard."""

    def __init__(self, db: AsyncSession, clock: Clock | None = None, config: Settings | None = None):
        """Initialize service with database session."""
        self.db = db
        self.clock = clock or SystemClock()
        self.config = config or settings
        self.repo = AppointmentRepository(db)

    async def get_doctor_stats(self, doctor_id: str) -> DoctorStats:
        """
        Counts for today, pending reviews, pending check-ins and upcoming days.

        "Today" and the upcoming window are taken from the injected clock.
        """
        return await self.repo.get_doctor_stats(
            doctor_id, self.clock.now(), upcoming_window_days=self.config.upcoming_window_days
        )
