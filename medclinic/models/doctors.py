"""Doctor model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    text,
    true,
)

from medclinic.models.base import audit_columns, metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Login account of the doctor, if any
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("email", Text),
    Column(
        "department_id",
        Uuid,
        ForeignKey("departments.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    # Professional details
    Column("qualifications", JSON, nullable=False, default=list),
    Column("specializations", JSON, nullable=False, default=list),
    Column("experience_years", Integer, nullable=False, server_default=text("0")),
    Column("consultation_fee", Numeric(10, 2), nullable=False, server_default=text("0")),
    # Weekly schedule: [{"day": "Monday", "start_time": "09:00", "end_time": "17:00", "is_available": true}]
    Column("availability", JSON, nullable=False, default=list),
    Column("active", Boolean, nullable=False, server_default=true(), index=True),
    *audit_columns(),
)
