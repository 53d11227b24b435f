"""Audit trail for appointment workflow actions."""

from typing import Protocol

import structlog
from pydantic import BaseModel
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, SystemClock
from app.models.audit_events import audit_events

logger = structlog.get_logger(__name__)


class AuditEvent(BaseModel):
    """One audited action."""

    actor_id: str
    record_id: str
    action: str
    model: str
    details: str | None = None


class AuditSink(Protocol):
    async def record_event(self, event: AuditEvent) -> None: ...


class AuditService:
    """Writes audit events to the ``audit_events`` table in their own commit."""

    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        """Initialize service with database session."""
        self.db = db
        self.clock = clock or SystemClock()

    async def record_event(self, event: AuditEvent) -> None:
        try:
            await self.db.execute(
                insert(audit_events).values(
                    **event.model_dump(),
                    created_at=self.clock.now(),
                )
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info("audit_event_recorded", action=event.action, model=event.model, record_id=event.record_id)

    async def list_events(self, model: str, record_id: str) -> list[dict]:
        """Audit events for one record, oldest first."""
        stmt = (
            select(audit_events)
            .where(audit_events.c.model == model, audit_events.c.record_id == record_id)
            .order_by(audit_events.c.id.asc())
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]
