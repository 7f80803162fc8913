"""Department model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import Boolean, Column, String, Table, Text, Uuid, true

from medclinic.models.base import audit_columns, metadata

departments = Table(
    "departments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", String(200), nullable=False, unique=True),
    Column("description", Text),
    Column("active", Boolean, nullable=False, server_default=true(), index=True),
    *audit_columns(),
)
