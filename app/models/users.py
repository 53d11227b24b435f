"""Actor model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    Column,
    MetaData,
    String,
    Table,
    Text,
    text,
)

metadata = MetaData()

# People who act on appointments: patients, doctors, frontdesk and admins
users = Table(
    "users",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("email", Text, nullable=False, index=True),
    Column("full_name", Text),
    Column("role", String(20), nullable=False, server_default=text("'patient'")),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
)
