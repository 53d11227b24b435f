"""Patient model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Column,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

# Contact projection of the patient profile used for notifications
patients = Table(
    "patients",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("email", Text, nullable=False),
    Column("full_name", Text, nullable=False),
    Column("phone", String(20)),
)
