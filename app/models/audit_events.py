"""Audit event model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

audit_events = Table(
    "audit_events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("actor_id", String(64), nullable=False),
    Column("record_id", String(64), nullable=False),
    Column("action", String(40), nullable=False),
    Column("model", String(60), nullable=False),
    Column("details", Text, nullable=True),
    Column("created_at", DateTime, nullable=False),
    Index("idx_audit_events_record", "model", "record_id"),
)
