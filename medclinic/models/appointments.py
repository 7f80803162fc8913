"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    false,
    text,
)

from medclinic.models.base import audit_columns, metadata

# Rows in this status release their slot
SLOT_RELEASING_STATUS = "cancelled"

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # References
    Column(
        "patient_id",
        Uuid,
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column("doctor_id", Uuid, ForeignKey("doctors.id", ondelete="RESTRICT"), nullable=False),
    Column(
        "department_id",
        Uuid,
        ForeignKey("departments.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column("created_by", Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
    # Slot
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", String(20), nullable=False),
    # Status management
    Column("status", String(20), nullable=False, server_default="active"),
    # Visit details
    Column("is_first_visit", Boolean, nullable=False, server_default=false()),
    Column("registration_fee", Numeric(10, 2), nullable=False, server_default=text("20")),
    Column("notes", Text),
    Column("symptoms", JSON, nullable=False, default=list),
    *audit_columns(),
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    CheckConstraint(
        "status IN ('active', 'cancelled', 'no-show')",
        name="status",
    ),
    # A doctor slot holds at most one appointment that is not cancelled.
    Index(
        "uq_appointments_active_slot",
        "doctor_id",
        "appointment_date",
        "appointment_time",
        unique=True,
        postgresql_where=text(f"status <> '{SLOT_RELEASING_STATUS}'"),
        sqlite_where=text(f"status <> '{SLOT_RELEASING_STATUS}'"),
    ),
    Index("ix_appointments_schedule", "appointment_date", "appointment_time"),
)
