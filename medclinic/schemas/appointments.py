"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from medclinic.schemas.common import PageParams, PaginatedResponse
from medclinic.schemas.patients import PatientCreate, PatientResponse

DEFAULT_REGISTRATION_FEE = Decimal("20")


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    ACTIVE = "active"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


def _strip_symptoms(v: list[str] | None) -> list[str] | None:
    if v is None:
        return v
    return [s.strip() for s in v if s and s.strip()]


class AppointmentDetails(BaseModel):
    """Appointment fields chosen at booking time, without the patient."""

    doctor_id: UUID
    department_id: UUID
    appointment_date: date
    appointment_time: str = Field(..., min_length=1, max_length=20)
    is_first_visit: bool = False
    registration_fee: Decimal = Field(default=DEFAULT_REGISTRATION_FEE, ge=0)
    notes: str | None = Field(None, max_length=1000)
    symptoms: list[str] = Field(default_factory=list)

    @field_validator("appointment_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Slot times are free-form but never blank."""
        v = v.strip()
        if not v:
            raise ValueError("Appointment time is required")
        return v

    @field_validator("symptoms")
    @classmethod
    def validate_symptoms(cls, v: list[str]) -> list[str]:
        """Trim symptom entries and drop blank ones."""
        return _strip_symptoms(v)


class AppointmentCreate(AppointmentDetails):
    """Schema for creating a new appointment."""

    patient_id: UUID


class AppointmentUpdate(BaseModel):
    """Schema for updating an existing appointment."""

    doctor_id: UUID | None = None
    department_id: UUID | None = None
    appointment_date: date | None = None
    appointment_time: str | None = Field(None, min_length=1, max_length=20)
    status: AppointmentStatus | None = None
    is_first_visit: bool | None = None
    registration_fee: Decimal | None = Field(None, ge=0)
    notes: str | None = Field(None, max_length=1000)
    symptoms: list[str] | None = None

    @field_validator("appointment_time")
    @classmethod
    def validate_time(cls, v: str | None) -> str | None:
        """Slot times are free-form but never blank."""
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Appointment time cannot be blank")
        return v

    @field_validator("symptoms")
    @classmethod
    def validate_symptoms(cls, v: list[str] | None) -> list[str] | None:
        """Trim symptom entries and drop blank ones."""
        return _strip_symptoms(v)


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    notes: str | None = Field(None, max_length=1000)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    department_id: UUID
    created_by: UUID
    appointment_date: date
    appointment_time: str
    status: AppointmentStatus
    is_first_visit: bool
    registration_fee: Decimal
    notes: str | None = None
    symptoms: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None

    model_config = {"from_attributes": True}


class AppointmentListResponse(PaginatedResponse):
    """Schema for paginated appointment list response."""

    items: list[AppointmentResponse]


class AppointmentFilters(PageParams):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    patient_id: UUID | None = None
    doctor_id: UUID | None = None
    department_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None


class SlotAvailabilityResponse(BaseModel):
    """Whether a doctor slot can still be booked."""

    doctor_id: UUID
    appointment_date: date
    appointment_time: str
    available: bool


class RegisterAndBookRequest(BaseModel):
    """Register (or reuse) a patient and book an appointment in one call.

    Give either ``patient_id`` for a known patient or ``patient`` with the
    registration details of a new one.
    """

    patient_id: UUID | None = None
    patient: PatientCreate | None = None
    appointment: AppointmentDetails

    @model_validator(mode="after")
    def validate_patient_source(self) -> "RegisterAndBookRequest":
        """Exactly one of patient_id and patient must be given."""
        if (self.patient_id is None) == (self.patient is None):
            raise ValueError("Provide either patient_id or patient, not both")
        return self


class RegisterAndBookResponse(BaseModel):
    """Patient and appointment produced by register-and-book."""

    patient: PatientResponse
    appointment: AppointmentResponse
