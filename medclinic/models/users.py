"""User model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Table, Text, Uuid, true

from medclinic.models.base import audit_columns, metadata

users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("email", Text, nullable=False, unique=True, index=True),
    Column("full_name", Text),
    Column("password_hash", Text, nullable=False),
    # One of medclinic.core.access_control.Role
    Column("role", Text, nullable=False, server_default="staff"),
    # Account state
    Column("is_active", Boolean, nullable=False, server_default=true()),
    *audit_columns(),
    Column("last_login_at", DateTime(timezone=True)),
)
