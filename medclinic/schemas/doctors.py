"""Doctor schemas for request/response validation."""

import re
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from medclinic.schemas.common import PaginatedResponse

_CLOCK_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class Weekday(str, Enum):
    """Day of the week, as stored in a doctor's schedule."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class AvailabilityWindow(BaseModel):
    """A weekly window in which the doctor takes appointments."""

    day: Weekday
    start_time: str = Field(..., description="HH:MM, 24 hour clock")
    end_time: str = Field(..., description="HH:MM, 24 hour clock")
    is_available: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_clock(cls, v: str) -> str:
        """Validate HH:MM format."""
        if not _CLOCK_RE.match(v):
            raise ValueError("Time must use the HH:MM 24 hour format")
        return v

    @model_validator(mode="after")
    def validate_window(self) -> "AvailabilityWindow":
        """End of the window must not precede its start."""
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class DoctorBase(BaseModel):
    """Base doctor schema with common fields."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr | None = None
    department_id: UUID
    user_id: UUID | None = None
    qualifications: list[str] = Field(default_factory=list)
    specializations: list[str] = Field(default_factory=list)
    experience_years: int = Field(default=0, ge=0, le=80)
    consultation_fee: Decimal = Field(default=Decimal("0"), ge=0)
    availability: list[AvailabilityWindow] = Field(default_factory=list)


class DoctorCreate(DoctorBase):
    """Schema for creating a doctor."""


class DoctorUpdate(BaseModel):
    """Schema for updating a doctor."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    department_id: UUID | None = None
    user_id: UUID | None = None
    qualifications: list[str] | None = None
    specializations: list[str] | None = None
    experience_years: int | None = Field(None, ge=0, le=80)
    consultation_fee: Decimal | None = Field(None, ge=0)
    availability: list[AvailabilityWindow] | None = None


class DoctorStatusUpdate(BaseModel):
    """Schema for activating or deactivating a doctor."""

    active: bool


class DoctorResponse(DoctorBase):
    """Schema for doctor response."""

    id: UUID
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DoctorListResponse(PaginatedResponse):
    """Schema for paginated doctor list response."""

    items: list[DoctorResponse]
