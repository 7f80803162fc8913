"""User schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from medclinic.core.access_control import Role


class UserCreate(BaseModel):
    """Schema for provisioning a staff account."""

    email: EmailStr
    full_name: str | None = Field(None, max_length=200)
    password: str = Field(..., min_length=8, max_length=128)
    role: Role = Role.STAFF


class UserResponse(BaseModel):
    """User schema for API responses."""

    id: UUID
    email: EmailStr
    full_name: str | None = None
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}
