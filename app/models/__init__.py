"""Database models."""

from sqlalchemy import MetaData

from app.models.appointments import appointments
from app.models.appointments import metadata as appointments_metadata
from app.models.audit_events import audit_events
from app.models.audit_events import metadata as audit_events_metadata
from app.models.patients import metadata as patients_metadata
from app.models.patients import patients
from app.models.users import metadata as users_metadata
from app.models.users import users

# Combine all metadata
metadata = MetaData()
for source in (appointments_metadata, audit_events_metadata, patients_metadata, users_metadata):
    for table in source.tables.values():
        table.to_metadata(metadata)

__all__ = [
    "appointments",
    "audit_events",
    "metadata",
    "patients",
    "users",
]
