"""Appointment endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from medclinic.core.access_control import Permission
from medclinic.dependencies import DatabaseSession, Pagination, require_permissions
from medclinic.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    RegisterAndBookRequest,
    RegisterAndBookResponse,
    SlotAvailabilityResponse,
)
from medclinic.services.appointment_service import AppointmentService

router = APIRouter()

Viewer = Annotated[dict, Depends(require_permissions(Permission.VIEW_APPOINTMENTS))]
Editor = Annotated[dict, Depends(require_permissions(Permission.EDIT_APPOINTMENT))]


def appointment_filters(
    pagination: Pagination,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    patient_id: UUID | None = Query(None),
    doctor_id: UUID | None = Query(None),
    department_id: UUID | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
) -> AppointmentFilters:
    """Collect list filters from the query string."""
    return AppointmentFilters(
        status=status_filter,
        patient_id=patient_id,
        doctor_id=doctor_id,
        department_id=department_id,
        start_date=start_date,
        end_date=end_date,
        page=pagination.page,
        limit=pagination.limit,
    )


Filters = Annotated[AppointmentFilters, Depends(appointment_filters)]


@router.get(
    "",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    current_user: Viewer,
    db: DatabaseSession,
    filters: Filters,
) -> AppointmentListResponse:
    """
    List appointments sorted by date and time.

    Args:
        current_user: Authenticated user with view_appointments
        db: Database session
        filters: Status, patient, doctor, department, date range and page

    Returns:
        Paginated list of appointments
    """
    return await AppointmentService(db).list_appointments(filters)


@router.get(
    "/today",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List today's appointments",
)
async def list_today(current_user: Viewer, db: DatabaseSession, filters: Filters) -> AppointmentListResponse:
    """List appointments dated today; date filters in the query are ignored."""
    return await AppointmentService(db).find_today(filters)


@router.get(
    "/range",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments in a date range",
)
async def list_in_range(
    current_user: Viewer,
    db: DatabaseSession,
    filters: Filters,
    start: date = Query(..., alias="from"),
    end: date = Query(..., alias="to"),
) -> AppointmentListResponse:
    """List appointments dated between ``from`` and ``to`` inclusive."""
    return await AppointmentService(db).find_by_date_range(start, end, filters)


@router.get(
    "/availability",
    response_model=SlotAvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Check whether a doctor slot is free",
)
async def check_availability(
    current_user: Viewer,
    db: DatabaseSession,
    doctor_id: UUID = Query(...),
    appointment_date: date = Query(..., alias="date"),
    appointment_time: str = Query(..., alias="time", min_length=1, max_length=20),
    exclude_appointment_id: UUID | None = Query(None),
) -> SlotAvailabilityResponse:
    """Report whether the slot is free of non-cancelled appointments."""
    available = await AppointmentService(db).is_slot_available(
        doctor_id,
        appointment_date,
        appointment_time.strip(),
        exclude_appointment_id=exclude_appointment_id,
    )
    return SlotAvailabilityResponse(
        doctor_id=doctor_id,
        appointment_date=appointment_date,
        appointment_time=appointment_time.strip(),
        available=available,
    )


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    current_user: Annotated[dict, Depends(require_permissions(Permission.ADD_APPOINTMENT))],
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Book an appointment for an existing patient.

    Raises:
        NotFoundException: If the patient, doctor or department does not exist
        ValidationException: If a booking rule is broken
        ConflictException: If the slot is already taken
    """
    return await AppointmentService(db).create_appointment(data, current_user["id"])


@router.post(
    "/register-and-book",
    response_model=RegisterAndBookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a patient and book an appointment",
)
async def register_and_book(
    data: RegisterAndBookRequest,
    current_user: Annotated[
        dict,
        Depends(require_permissions(Permission.ADD_PATIENT, Permission.ADD_APPOINTMENT)),
    ],
    db: DatabaseSession,
) -> RegisterAndBookResponse:
    """
    Register (or reuse) a patient and book in one request.

    The patient is saved even when booking then fails.
    """
    return await AppointmentService(db).register_and_book(data, current_user["id"])


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    current_user: Viewer,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    return await AppointmentService(db).get_appointment(appointment_id)


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    current_user: Editor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Edit an active appointment.

    Raises:
        InvalidTransitionException: If the appointment is cancelled or a no-show
        ConflictException: If the new slot is already taken
    """
    return await AppointmentService(db).update_appointment(appointment_id, data)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Change appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    current_user: Editor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Move an appointment to cancelled or no-show.

    Raises:
        InvalidTransitionException: If the transition is not allowed
    """
    return await AppointmentService(db).update_status(appointment_id, data.status, data.notes)


@router.patch(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    current_user: Annotated[dict, Depends(require_permissions(Permission.CANCEL_APPOINTMENT))],
    db: DatabaseSession,
) -> AppointmentResponse:
    """Cancel an appointment, freeing its slot."""
    return await AppointmentService(db).cancel_appointment(appointment_id)


@router.patch(
    "/{appointment_id}/no-show",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark appointment as no-show",
)
async def mark_no_show(
    appointment_id: UUID,
    current_user: Editor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Record that the patient did not attend."""
    return await AppointmentService(db).mark_no_show(appointment_id)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    current_user: Annotated[dict, Depends(require_permissions(Permission.DELETE_APPOINTMENT))],
    db: DatabaseSession,
) -> None:
    """Permanently delete an appointment."""
    await AppointmentService(db).delete_appointment(appointment_id)
