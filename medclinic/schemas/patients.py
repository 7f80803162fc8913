"""Patient schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from medclinic.schemas.common import PaginatedResponse


class Gender(str, Enum):
    """Patient gender enumeration."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


def _check_phone(v: str | None) -> str | None:
    if v is None:
        return v
    cleaned = (
        v.replace("-", "").replace(" ", "").replace("(", "").replace(")", "").replace("+", "")
    )
    if not cleaned.isdigit():
        raise ValueError("Phone number must contain only digits and separators")
    if len(cleaned) < 7:
        raise ValueError("Phone number must have at least 7 digits")
    return v.strip()


class PatientBase(BaseModel):
    """Base patient schema with common fields."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    gender: Gender
    date_of_birth: date
    phone: str = Field(..., min_length=7, max_length=20)
    email: EmailStr | None = None
    address: str | None = Field(None, max_length=500)
    blood_group: str | None = Field(None, max_length=10)
    medical_history: str | None = None
    allergies: list[str] = Field(default_factory=list)
    emergency_contact_name: str | None = Field(None, max_length=200)
    emergency_contact_relationship: str | None = Field(None, max_length=50)
    emergency_contact_phone: str | None = Field(None, max_length=20)

    @field_validator("phone", "emergency_contact_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Validate phone number format."""
        return _check_phone(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        """Store emails lower-cased."""
        return v.lower() if v else v

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: date) -> date:
        """Date of birth cannot be in the future."""
        if v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v


class PatientCreate(PatientBase):
    """Schema for registering a new patient."""


class PatientUpdate(BaseModel):
    """Schema for updating an existing patient."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    gender: Gender | None = None
    date_of_birth: date | None = None
    phone: str | None = Field(None, min_length=7, max_length=20)
    email: EmailStr | None = None
    address: str | None = Field(None, max_length=500)
    blood_group: str | None = Field(None, max_length=10)
    medical_history: str | None = None
    allergies: list[str] | None = None
    emergency_contact_name: str | None = Field(None, max_length=200)
    emergency_contact_relationship: str | None = Field(None, max_length=50)
    emergency_contact_phone: str | None = Field(None, max_length=20)

    @field_validator("phone", "emergency_contact_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Validate phone number format."""
        return _check_phone(v)


class PatientResponse(PatientBase):
    """Schema for patient response."""

    id: UUID
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PatientListResponse(PaginatedResponse):
    """Schema for paginated patient list response."""

    items: list[PatientResponse]
