"""Health check endpoints."""

import structlog
from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.dependencies import AppClock, DatabaseSession
from app.repositories.appointment_repository import AppointmentRepository

router = APIRouter()
logger = structlog.get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class SchedulingHealthResponse(HealthResponse):
    """Appointment store reachability and the no-show sweep backlog."""

    appointment_store: str
    no_show_grace_minutes: int
    no_show_backlog: int | None = None


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns:
        Basic health status
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/scheduling",
    response_model=SchedulingHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Scheduling health check",
)
async def scheduling_health_check(db: DatabaseSession, clock: AppClock) -> SchedulingHealthResponse:
    """
    Query the appointments table and count overdue appointments not yet swept.

    A backlog that keeps growing means the no-show job is not running.
    """
    grace = settings.no_show_grace_minutes
    try:
        backlog = await AppointmentRepository(db).count_potential_no_shows(clock.now(), grace)
    except SQLAlchemyError as e:
        logger.error("appointment_store_unreachable", error=str(e))
        return SchedulingHealthResponse(
            status="degraded",
            version=settings.app_version,
            environment=settings.environment,
            appointment_store="unhealthy",
            no_show_grace_minutes=grace,
        )

    return SchedulingHealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
        appointment_store="healthy",
        no_show_grace_minutes=grace,
        no_show_backlog=backlog,
    )
