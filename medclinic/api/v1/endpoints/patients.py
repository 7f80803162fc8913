"""Patient endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from medclinic.core.access_control import Permission
from medclinic.dependencies import DatabaseSession, Pagination, require_permissions
from medclinic.schemas.appointments import AppointmentListResponse
from medclinic.schemas.patients import (
    PatientCreate,
    PatientListResponse,
    PatientResponse,
    PatientUpdate,
)
from medclinic.services.appointment_service import AppointmentService
from medclinic.services.patient_service import PatientService

router = APIRouter()

Viewer = Annotated[dict, Depends(require_permissions(Permission.VIEW_PATIENTS))]


@router.get(
    "",
    response_model=PatientListResponse,
    status_code=status.HTTP_200_OK,
    summary="List patients",
)
async def list_patients(
    current_user: Viewer,
    db: DatabaseSession,
    pagination: Pagination,
    search: str | None = Query(None, max_length=100, description="Name, phone or email"),
    active: bool | None = Query(None),
) -> PatientListResponse:
    """List patients ordered by name."""
    return await PatientService(db).list_patients(pagination, search=search, active=active)


@router.post(
    "",
    response_model=PatientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register patient",
)
async def create_patient(
    data: PatientCreate,
    current_user: Annotated[dict, Depends(require_permissions(Permission.ADD_PATIENT))],
    db: DatabaseSession,
) -> PatientResponse:
    """Register a new patient."""
    return await PatientService(db).create_patient(data)


@router.get(
    "/{patient_id}",
    response_model=PatientResponse,
    status_code=status.HTTP_200_OK,
    summary="Get patient by ID",
)
async def get_patient(patient_id: UUID, current_user: Viewer, db: DatabaseSession) -> PatientResponse:
    """Get a specific patient by ID."""
    return await PatientService(db).get_patient(patient_id)


@router.patch(
    "/{patient_id}",
    response_model=PatientResponse,
    status_code=status.HTTP_200_OK,
    summary="Update patient",
)
async def update_patient(
    patient_id: UUID,
    data: PatientUpdate,
    current_user: Annotated[dict, Depends(require_permissions(Permission.EDIT_PATIENT))],
    db: DatabaseSession,
) -> PatientResponse:
    """Update a patient's details."""
    return await PatientService(db).update_patient(patient_id, data)


@router.delete(
    "/{patient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate patient",
)
async def delete_patient(
    patient_id: UUID,
    current_user: Annotated[dict, Depends(require_permissions(Permission.DELETE_PATIENT))],
    db: DatabaseSession,
) -> None:
    """Deactivate a patient. Their appointment history is kept."""
    await PatientService(db).deactivate_patient(patient_id)


@router.get(
    "/{patient_id}/appointments",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List a patient's appointments",
)
async def list_patient_appointments(
    patient_id: UUID,
    current_user: Annotated[
        dict,
        Depends(require_permissions(Permission.VIEW_PATIENTS, Permission.VIEW_APPOINTMENTS)),
    ],
    db: DatabaseSession,
    pagination: Pagination,
) -> AppointmentListResponse:
    """List a patient's appointments sorted by date and time."""
    return await AppointmentService(db).find_by_patient(patient_id, pagination)
