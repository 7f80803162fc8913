"""Department endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from medclinic.core.access_control import Permission
from medclinic.dependencies import DatabaseSession, Pagination, require_permissions
from medclinic.schemas.appointments import AppointmentListResponse
from medclinic.schemas.departments import (
    DepartmentCreate,
    DepartmentListResponse,
    DepartmentResponse,
    DepartmentStatusUpdate,
    DepartmentUpdate,
)
from medclinic.services.appointment_service import AppointmentService
from medclinic.services.department_service import DepartmentService

router = APIRouter()

Viewer = Annotated[dict, Depends(require_permissions(Permission.VIEW_DEPARTMENTS))]


@router.get(
    "",
    response_model=DepartmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List departments",
)
async def list_departments(
    current_user: Viewer,
    db: DatabaseSession,
    pagination: Pagination,
    active: bool | None = Query(None),
) -> DepartmentListResponse:
    """List departments ordered by name."""
    return await DepartmentService(db).list_departments(pagination, active=active)


@router.post(
    "",
    response_model=DepartmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create department",
)
async def create_department(
    data: DepartmentCreate,
    current_user: Annotated[dict, Depends(require_permissions(Permission.ADD_DEPARTMENT))],
    db: DatabaseSession,
) -> DepartmentResponse:
    """Create a department with a unique name."""
    return await DepartmentService(db).create_department(data)


@router.get(
    "/{department_id}",
    response_model=DepartmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get department by ID",
)
async def get_department(
    department_id: UUID,
    current_user: Viewer,
    db: DatabaseSession,
) -> DepartmentResponse:
    """Get a specific department by ID."""
    return await DepartmentService(db).get_department(department_id)


@router.patch(
    "/{department_id}",
    response_model=DepartmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Update department",
)
async def update_department(
    department_id: UUID,
    data: DepartmentUpdate,
    current_user: Annotated[dict, Depends(require_permissions(Permission.EDIT_DEPARTMENT))],
    db: DatabaseSession,
) -> DepartmentResponse:
    """Rename or describe a department."""
    return await DepartmentService(db).update_department(department_id, data)


@router.patch(
    "/{department_id}/status",
    response_model=DepartmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Activate or deactivate department",
)
async def set_department_status(
    department_id: UUID,
    data: DepartmentStatusUpdate,
    current_user: Annotated[
        dict, Depends(require_permissions(Permission.TOGGLE_DEPARTMENT_STATUS))
    ],
    db: DatabaseSession,
) -> DepartmentResponse:
    """Inactive departments cannot take new bookings."""
    return await DepartmentService(db).set_status(department_id, data.active)


@router.get(
    "/{department_id}/appointments",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List a department's appointments",
)
async def list_department_appointments(
    department_id: UUID,
    current_user: Annotated[
        dict,
        Depends(require_permissions(Permission.VIEW_DEPARTMENTS, Permission.VIEW_APPOINTMENTS)),
    ],
    db: DatabaseSession,
    pagination: Pagination,
) -> AppointmentListResponse:
    """List a department's appointments sorted by date and time."""
    return await AppointmentService(db).find_by_department(department_id, pagination)
