"""Department schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from medclinic.schemas.common import PaginatedResponse


class DepartmentCreate(BaseModel):
    """Schema for creating a department."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)


class DepartmentUpdate(BaseModel):
    """Schema for updating a department."""

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)


class DepartmentStatusUpdate(BaseModel):
    """Schema for activating or deactivating a department."""

    active: bool


class DepartmentResponse(DepartmentCreate):
    """Schema for department response."""

    id: UUID
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DepartmentListResponse(PaginatedResponse):
    """Schema for paginated department list response."""

    items: list[DepartmentResponse]
