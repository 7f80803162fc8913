"""Doctor endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from medclinic.core.access_control import Permission
from medclinic.dependencies import DatabaseSession, Pagination, require_permissions
from medclinic.schemas.appointments import AppointmentListResponse
from medclinic.schemas.doctors import (
    DoctorCreate,
    DoctorListResponse,
    DoctorResponse,
    DoctorStatusUpdate,
    DoctorUpdate,
)
from medclinic.services.appointment_service import AppointmentService
from medclinic.services.doctor_service import DoctorService

router = APIRouter()

Viewer = Annotated[dict, Depends(require_permissions(Permission.VIEW_DOCTORS))]


@router.get(
    "",
    response_model=DoctorListResponse,
    status_code=status.HTTP_200_OK,
    summary="List doctors",
)
async def list_doctors(
    current_user: Viewer,
    db: DatabaseSession,
    pagination: Pagination,
    department_id: UUID | None = Query(None),
    active: bool | None = Query(None),
    search: str | None = Query(None, max_length=100),
) -> DoctorListResponse:
    """List doctors ordered by name."""
    return await DoctorService(db).list_doctors(
        pagination,
        department_id=department_id,
        active=active,
        search=search,
    )


@router.post(
    "",
    response_model=DoctorResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create doctor",
)
async def create_doctor(
    data: DoctorCreate,
    current_user: Annotated[dict, Depends(require_permissions(Permission.ADD_DOCTOR))],
    db: DatabaseSession,
) -> DoctorResponse:
    """Create a doctor in an existing department."""
    return await DoctorService(db).create_doctor(data)


@router.get(
    "/{doctor_id}",
    response_model=DoctorResponse,
    status_code=status.HTTP_200_OK,
    summary="Get doctor by ID",
)
async def get_doctor(doctor_id: UUID, current_user: Viewer, db: DatabaseSession) -> DoctorResponse:
    """Get a specific doctor by ID."""
    return await DoctorService(db).get_doctor(doctor_id)


@router.patch(
    "/{doctor_id}",
    response_model=DoctorResponse,
    status_code=status.HTTP_200_OK,
    summary="Update doctor",
)
async def update_doctor(
    doctor_id: UUID,
    data: DoctorUpdate,
    current_user: Annotated[dict, Depends(require_permissions(Permission.EDIT_DOCTOR))],
    db: DatabaseSession,
) -> DoctorResponse:
    """Update a doctor's profile or weekly schedule."""
    return await DoctorService(db).update_doctor(doctor_id, data)


@router.patch(
    "/{doctor_id}/status",
    response_model=DoctorResponse,
    status_code=status.HTTP_200_OK,
    summary="Activate or deactivate doctor",
)
async def set_doctor_status(
    doctor_id: UUID,
    data: DoctorStatusUpdate,
    current_user: Annotated[dict, Depends(require_permissions(Permission.TOGGLE_DOCTOR_STATUS))],
    db: DatabaseSession,
) -> DoctorResponse:
    """Inactive doctors cannot take new bookings."""
    return await DoctorService(db).set_status(doctor_id, data.active)


@router.get(
    "/{doctor_id}/appointments",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List a doctor's appointments",
)
async def list_doctor_appointments(
    doctor_id: UUID,
    current_user: Annotated[
        dict,
        Depends(require_permissions(Permission.VIEW_DOCTORS, Permission.VIEW_APPOINTMENTS)),
    ],
    db: DatabaseSession,
    pagination: Pagination,
) -> AppointmentListResponse:
    """List a doctor's appointments sorted by date and time."""
    return await AppointmentService(db).find_by_doctor(doctor_id, pagination)
