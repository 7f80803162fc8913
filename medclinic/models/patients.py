"""Patient model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, Date, String, Table, Text, Uuid, true

from medclinic.models.base import audit_columns, metadata

patients = Table(
    "patients",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Personal information
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("gender", String(20), nullable=False),
    Column("date_of_birth", Date, nullable=False),
    Column("phone", String(20), nullable=False, index=True),
    Column("email", Text, index=True),
    Column("address", Text),
    # Medical information
    Column("blood_group", String(10)),
    Column("medical_history", Text),
    Column("allergies", JSON, nullable=False, default=list),
    # Emergency contact
    Column("emergency_contact_name", Text),
    Column("emergency_contact_relationship", String(50)),
    Column("emergency_contact_phone", String(20)),
    Column("active", Boolean, nullable=False, server_default=true(), index=True),
    *audit_columns(),
)
