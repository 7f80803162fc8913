"""Appointment service: booking rules and the status lifecycle."""

from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import ColumnElement
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medclinic.config import settings
from medclinic.core.exceptions import (
    ConflictException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from medclinic.models.appointments import appointments
from medclinic.models.departments import departments
from medclinic.models.doctors import doctors
from medclinic.models.patients import patients
from medclinic.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentUpdate,
    RegisterAndBookRequest,
    RegisterAndBookResponse,
)
from medclinic.schemas.common import PageParams, PaginatedResponse
from medclinic.schemas.patients import PatientResponse
from medclinic.services.doctor_service import is_available_at
from medclinic.services.patient_service import PatientService
from medclinic.services.record_store import RecordStore

logger = structlog.get_logger()

SLOT_UNAVAILABLE = "Appointment slot is not available"

# Both targets are terminal
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.ACTIVE: frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

DEFAULT_ORDER = (appointments.c.appointment_date.asc(), appointments.c.appointment_time.asc())


def ensure_transition(current: AppointmentStatus | str, new: AppointmentStatus | str) -> None:
    """
    Check that an appointment may move from ``current`` to ``new``.

    Raises:
        InvalidTransitionException: If the transition is not defined
    """
    current = AppointmentStatus(current)
    new = AppointmentStatus(new)
    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionException(
            f"Cannot change appointment status from '{current.value}' to '{new.value}'"
        )


def _weekday(day: date) -> str:
    return day.strftime("%A")


class AppointmentService:
    """Service for booking appointments and managing their status."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.store = RecordStore(db, appointments, "Appointment")
        self.patients = RecordStore(db, patients, "Patient")
        self.doctors = RecordStore(db, doctors, "Doctor")
        self.departments = RecordStore(db, departments, "Department")

    # Slot checks

    async def is_slot_available(
        self,
        doctor_id: UUID,
        appointment_date: date,
        appointment_time: str,
        exclude_appointment_id: UUID | None = None,
    ) -> bool:
        """
        Check whether a doctor slot is free.

        A slot is taken by any appointment with the same doctor, date and time
        that is not cancelled. The unique index on the table is the final
        authority; this check only gives an early, readable error.

        Args:
            doctor_id: Doctor ID
            appointment_date: Appointment date
            appointment_time: Appointment time token
            exclude_appointment_id: Appointment to ignore, used when re-checking an edit

        Returns:
            True if no other live appointment holds the slot
        """
        conditions = [
            appointments.c.doctor_id == doctor_id,
            appointments.c.appointment_date == appointment_date,
            appointments.c.appointment_time == appointment_time,
            appointments.c.status != AppointmentStatus.CANCELLED.value,
        ]
        if exclude_appointment_id is not None:
            conditions.append(appointments.c.id != exclude_appointment_id)

        return await self.store.find_one(*conditions) is None

    async def _active_doctor(self, doctor_id: UUID) -> dict:
        doctor = await self.doctors.get(doctor_id)
        if not doctor["active"]:
            raise ValidationException("Doctor is not active")
        return doctor

    async def _active_department(self, department_id: UUID) -> dict:
        department = await self.departments.get(department_id)
        if not department["active"]:
            raise ValidationException("Department is not active")
        return department

    @staticmethod
    def _ensure_not_past(appointment_date: date) -> None:
        if appointment_date < settings.today():
            raise ValidationException("Cannot book an appointment for a past date")

    @staticmethod
    def _ensure_doctor_on_duty(doctor: dict, appointment_date: date, appointment_time: str) -> None:
        if not is_available_at(doctor, _weekday(appointment_date), appointment_time):
            raise ValidationException("Doctor is not available at this time")

    async def _write(
        self,
        operation: str,
        record_id: UUID | None,
        values: dict[str, Any],
        *conditions: ColumnElement[bool],
    ) -> dict:
        """Create or update a row, turning a slot index violation into a conflict."""
        try:
            if record_id is None:
                return await self.store.create(values)
            return await self.store.update(record_id, values, *conditions)
        except IntegrityError:
            await self.db.rollback()
            logger.warning(
                "appointment_slot_conflict",
                operation=operation,
                appointment_id=str(record_id) if record_id else None,
                doctor_id=str(values.get("doctor_id")) if values.get("doctor_id") else None,
                source="storage",
            )
            raise ConflictException(SLOT_UNAVAILABLE)

    async def _write_if_status(self, operation: str, current: dict, values: dict[str, Any]) -> dict:
        """
        Update an appointment only while it still has the status read in ``current``.

        Raises:
            NotFoundException: If the appointment was deleted meanwhile
            InvalidTransitionException: If another request changed its status first
        """
        try:
            return await self._write(
                operation, current["id"], values, appointments.c.status == current["status"]
            )
        except NotFoundException:
            latest = await self.store.find_by_id(current["id"])
            if latest is None:
                raise
            logger.warning(
                "appointment_status_changed_concurrently",
                operation=operation,
                appointment_id=str(current["id"]),
                expected_status=current["status"],
                actual_status=latest["status"],
            )
            raise InvalidTransitionException(
                f"Appointment status changed from '{current['status']}' to '{latest['status']}'"
            )

    # Reads

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        return AppointmentResponse.model_validate(await self.store.get(appointment_id))

    async def _paginate(
        self,
        conditions: list[ColumnElement[bool]],
        params: PageParams,
    ) -> AppointmentListResponse:
        total = await self.store.count(*conditions)
        rows = await self.store.find_all(
            *conditions,
            order_by=DEFAULT_ORDER,
            limit=params.limit,
            offset=params.offset,
        )
        return AppointmentListResponse(
            **PaginatedResponse.meta(total, params),
            items=[AppointmentResponse.model_validate(row) for row in rows],
        )

    @staticmethod
    def _conditions(filters: AppointmentFilters) -> list[ColumnElement[bool]]:
        conditions = []
        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)
        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)
        if filters.doctor_id:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)
        if filters.department_id:
            conditions.append(appointments.c.department_id == filters.department_id)
        if filters.start_date:
            conditions.append(appointments.c.appointment_date >= filters.start_date)
        if filters.end_date:
            conditions.append(appointments.c.appointment_date <= filters.end_date)
        return conditions

    async def list_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """
        List appointments with filtering and pagination.

        Results are sorted by date, then time, ascending.

        Raises:
            ValidationException: If the date range ends before it starts
        """
        if filters.start_date and filters.end_date and filters.end_date < filters.start_date:
            raise ValidationException("end_date must not be before start_date")
        return await self._paginate(self._conditions(filters), filters)

    async def find_by_patient(
        self, patient_id: UUID, params: PageParams | None = None
    ) -> AppointmentListResponse:
        """List a patient's appointments; the patient must exist."""
        await self.patients.get(patient_id)
        params = params or PageParams()
        return await self._paginate([appointments.c.patient_id == patient_id], params)

    async def find_by_doctor(
        self, doctor_id: UUID, params: PageParams | None = None
    ) -> AppointmentListResponse:
        """List a doctor's appointments; the doctor must exist."""
        await self.doctors.get(doctor_id)
        params = params or PageParams()
        return await self._paginate([appointments.c.doctor_id == doctor_id], params)

    async def find_by_department(
        self, department_id: UUID, params: PageParams | None = None
    ) -> AppointmentListResponse:
        """List a department's appointments; the department must exist."""
        await self.departments.get(department_id)
        params = params or PageParams()
        return await self._paginate([appointments.c.department_id == department_id], params)

    async def find_by_date_range(
        self,
        start_date: date,
        end_date: date,
        filters: AppointmentFilters | None = None,
    ) -> AppointmentListResponse:
        """List appointments dated between ``start_date`` and ``end_date`` inclusive."""
        filters = filters or AppointmentFilters()
        return await self.list_appointments(
            filters.model_copy(update={"start_date": start_date, "end_date": end_date})
        )

    async def find_by_status(
        self, status: AppointmentStatus, params: PageParams | None = None
    ) -> AppointmentListResponse:
        """List appointments in one status."""
        params = params or PageParams()
        return await self._paginate([appointments.c.status == AppointmentStatus(status).value], params)

    async def find_today(self, filters: AppointmentFilters | None = None) -> AppointmentListResponse:
        """List today's appointments."""
        today = settings.today()
        return await self.find_by_date_range(today, today, filters)

    # Writes

    async def create_appointment(
        self,
        data: AppointmentCreate,
        created_by: UUID,
    ) -> AppointmentResponse:
        """
        Book a new appointment.

        Args:
            data: Appointment creation data
            created_by: ID of the user booking it

        Returns:
            Created appointment, status active

        Raises:
            NotFoundException: If the patient, doctor or department does not exist
            ValidationException: If doctor/department is inactive, the date is past,
                or the doctor does not work at that time
            ConflictException: If the slot is already booked
        """
        await self.patients.get(data.patient_id)
        doctor = await self._active_doctor(data.doctor_id)
        await self._active_department(data.department_id)
        self._ensure_not_past(data.appointment_date)

        if not await self.is_slot_available(
            data.doctor_id, data.appointment_date, data.appointment_time
        ):
            logger.info(
                "appointment_slot_conflict",
                operation="create",
                doctor_id=str(data.doctor_id),
                appointment_date=data.appointment_date.isoformat(),
                appointment_time=data.appointment_time,
                source="precheck",
            )
            raise ConflictException(SLOT_UNAVAILABLE)

        self._ensure_doctor_on_duty(doctor, data.appointment_date, data.appointment_time)

        values = data.model_dump()
        values.update(status=AppointmentStatus.ACTIVE.value, created_by=created_by)
        row = await self._write("create", None, values)

        logger.info(
            "appointment_created",
            appointment_id=str(row["id"]),
            doctor_id=str(row["doctor_id"]),
            patient_id=str(row["patient_id"]),
            appointment_date=row["appointment_date"].isoformat(),
            appointment_time=row["appointment_time"],
        )
        return AppointmentResponse.model_validate(row)

    async def update_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentUpdate,
    ) -> AppointmentResponse:
        """
        Edit an active appointment.

        Moving it to another doctor, date or time re-validates the new slot,
        ignoring the appointment itself. A status in the payload follows the
        same transition rules as ``update_status``.

        Raises:
            NotFoundException: If the appointment or a new reference does not exist
            InvalidTransitionException: If the appointment is no longer active
            ValidationException: If the new slot breaks a booking rule
            ConflictException: If the new slot is already booked
        """
        current = await self.store.get(appointment_id)
        if current["status"] != AppointmentStatus.ACTIVE.value:
            raise InvalidTransitionException(
                f"Cannot update an appointment with status '{current['status']}'"
            )

        values = self.store.patch_values(data.model_dump(exclude_unset=True))

        if {"doctor_id", "appointment_date", "appointment_time"} & values.keys():
            doctor_id = values.get("doctor_id", current["doctor_id"])
            appointment_date = values.get("appointment_date", current["appointment_date"])
            appointment_time = values.get("appointment_time", current["appointment_time"])

            self._ensure_not_past(appointment_date)
            if not await self.is_slot_available(
                doctor_id, appointment_date, appointment_time, exclude_appointment_id=appointment_id
            ):
                raise ConflictException(SLOT_UNAVAILABLE)

            doctor = (
                await self._active_doctor(doctor_id)
                if "doctor_id" in values
                else await self.doctors.get(doctor_id)
            )
            self._ensure_doctor_on_duty(doctor, appointment_date, appointment_time)

        if "department_id" in values:
            await self._active_department(values["department_id"])

        if "status" in values:
            new_status = values.pop("status")
            if new_status.value != current["status"]:
                ensure_transition(current["status"], new_status)
                values["status"] = new_status.value
                if new_status == AppointmentStatus.CANCELLED:
                    values["cancelled_at"] = datetime.now(UTC)

        if not values:
            return AppointmentResponse.model_validate(current)

        row = await self._write_if_status("update", current, values)
        logger.info("appointment_updated", appointment_id=str(appointment_id), fields=sorted(values))
        return AppointmentResponse.model_validate(row)

    async def update_status(
        self,
        appointment_id: UUID,
        new_status: AppointmentStatus | str,
        notes: str | None = None,
    ) -> AppointmentResponse:
        """
        Move an appointment through its lifecycle.

        Only active -> cancelled and active -> no-show are defined. Cancelling
        releases the slot for rebooking.

        Raises:
            NotFoundException: If appointment not found
            InvalidTransitionException: If the transition is not defined, or another request
                changed the status first
            ConflictException: If the write collides with a live booking of the slot
        """
        current = await self.store.get(appointment_id)
        new_status = AppointmentStatus(new_status)
        ensure_transition(current["status"], new_status)

        values: dict[str, Any] = {"status": new_status.value}
        if new_status == AppointmentStatus.CANCELLED:
            values["cancelled_at"] = datetime.now(UTC)
        if notes:
            values["notes"] = notes

        row = await self._write_if_status("status", current, values)
        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            old_status=current["status"],
            new_status=new_status.value,
        )
        return AppointmentResponse.model_validate(row)

    async def cancel_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """Cancel an appointment and free its slot."""
        return await self.update_status(appointment_id, AppointmentStatus.CANCELLED)

    async def mark_no_show(self, appointment_id: UUID) -> AppointmentResponse:
        """Mark an appointment as a no-show."""
        return await self.update_status(appointment_id, AppointmentStatus.NO_SHOW)

    async def delete_appointment(self, appointment_id: UUID) -> None:
        """Permanently delete an appointment (administrative)."""
        await self.store.delete(appointment_id)
        logger.info("appointment_deleted", appointment_id=str(appointment_id))

    async def register_and_book(
        self,
        data: RegisterAndBookRequest,
        created_by: UUID,
    ) -> RegisterAndBookResponse:
        """
        Register or reuse a patient, then book an appointment for them.

        The patient is committed before booking starts. If booking fails the
        patient record is kept and the error propagates unchanged.

        Raises:
            NotFoundException: If ``patient_id`` or a booking reference does not exist
            ConflictException: If the slot is already booked
            ValidationException: If the booking breaks a booking rule
        """
        if data.patient_id is not None:
            patient = await self.patients.get(data.patient_id)
        else:
            patient, created = await PatientService(self.db).register(data.patient)
            logger.info(
                "register_and_book_patient_ready",
                patient_id=str(patient["id"]),
                created=created,
            )

        booking = AppointmentCreate(patient_id=patient["id"], **data.appointment.model_dump())
        try:
            appointment = await self.create_appointment(booking, created_by)
        except Exception as e:
            logger.warning(
                "register_and_book_booking_failed",
                patient_id=str(patient["id"]),
                error=str(e),
            )
            raise

        return RegisterAndBookResponse(
            patient=PatientResponse.model_validate(patient),
            appointment=appointment,
        )
