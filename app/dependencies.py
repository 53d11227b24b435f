"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, SystemClock
from app.database import get_db
from app.services.dashboard_service import DashboardService
from app.services.notification_service import EmailNotificationService, NotificationSink
from app.services.review_service import ReviewService
from app.services.scheduling_service import SchedulingService


async def get_current_actor_id(
    x_actor_id: Annotated[str | None, Header(alias="X-Actor-Id")] = None,
) -> str:
    """
    Identity of the caller, asserted by the upstream gateway.

    Raises:
        HTTPException: If the header is missing or blank
    """
    if x_actor_id is None or not x_actor_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Actor-Id header",
        )
    return x_actor_id.strip()


def get_clock() -> Clock:
    return SystemClock()


def get_notifier() -> NotificationSink:
    return EmailNotificationService()


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentActorId = Annotated[str, Depends(get_current_actor_id)]
AppClock = Annotated[Clock, Depends(get_clock)]
Notifier = Annotated[NotificationSink, Depends(get_notifier)]


def get_scheduling_service(db: DatabaseSession, clock: AppClock, notifier: Notifier) -> SchedulingService:
    return SchedulingService(db, clock=clock, notifier=notifier)


def get_review_service(db: DatabaseSession, clock: AppClock, notifier: Notifier) -> ReviewService:
    return ReviewService(db, clock=clock, notifier=notifier)


def get_dashboard_service(db: DatabaseSession, clock: AppClock) -> DashboardService:
    return DashboardService(db, clock=clock)


Scheduling = Annotated[SchedulingService, Depends(get_scheduling_service)]
Review = Annotated[ReviewService, Depends(get_review_service)]
Dashboard = Annotated[DashboardService, Depends(get_dashboard_service)]
