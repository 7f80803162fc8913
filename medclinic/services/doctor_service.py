"""Doctor service for business logic."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from medclinic.models.departments import departments
from medclinic.models.doctors import doctors
from medclinic.schemas.common import PageParams, PaginatedResponse
from medclinic.schemas.doctors import (
    DoctorCreate,
    DoctorListResponse,
    DoctorResponse,
    DoctorUpdate,
)
from medclinic.services.record_store import RecordStore

logger = structlog.get_logger()


def is_available_at(doctor: dict, weekday: str, appointment_time: str) -> bool:
    """
    Check a doctor's weekly schedule for a weekday and time of day.

    Times are compared as strings, so schedules and bookings should share
    the zero-padded HH:MM format.
    """
    return any(
        window.get("day") == weekday
        and window.get("is_available", True)
        and window.get("start_time", "") <= appointment_time <= window.get("end_time", "")
        for window in doctor.get("availability") or []
    )


class DoctorService:
    """Service for managing doctors."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.store = RecordStore(db, doctors, "Doctor")
        self.departments = RecordStore(db, departments, "Department")

    @staticmethod
    def _values(data: DoctorCreate | DoctorUpdate, exclude_unset: bool = False) -> dict[str, Any]:
        values = data.model_dump(exclude_unset=exclude_unset)
        if values.get("availability") is not None:
            values["availability"] = [window.model_dump(mode="json") for window in data.availability]
        return values

    async def create_doctor(self, data: DoctorCreate) -> DoctorResponse:
        """
        Create a doctor.

        Raises:
            NotFoundException: If the department does not exist
        """
        await self.departments.get(data.department_id)

        row = await self.store.create(self._values(data))
        logger.info(
            "doctor_created",
            doctor_id=str(row["id"]),
            department_id=str(data.department_id),
        )
        return DoctorResponse.model_validate(row)

    async def get_doctor(self, doctor_id: UUID) -> DoctorResponse:
        """Get a doctor by ID."""
        return DoctorResponse.model_validate(await self.store.get(doctor_id))

    async def list_doctors(
        self,
        params: PageParams,
        department_id: UUID | None = None,
        active: bool | None = None,
        search: str | None = None,
    ) -> DoctorListResponse:
        """List doctors with filtering and pagination."""
        conditions = []
        if department_id:
            conditions.append(doctors.c.department_id == department_id)
        if active is not None:
            conditions.append(doctors.c.active == active)
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(
                or_(
                    doctors.c.first_name.ilike(pattern),
                    doctors.c.last_name.ilike(pattern),
                    doctors.c.email.ilike(pattern),
                )
            )

        total = await self.store.count(*conditions)
        rows = await self.store.find_all(
            *conditions,
            order_by=[doctors.c.last_name.asc(), doctors.c.first_name.asc()],
            limit=params.limit,
            offset=params.offset,
        )
        return DoctorListResponse(
            **PaginatedResponse.meta(total, params),
            items=[DoctorResponse.model_validate(row) for row in rows],
        )

    async def update_doctor(self, doctor_id: UUID, data: DoctorUpdate) -> DoctorResponse:
        """Update a doctor's profile or schedule."""
        await self.store.get(doctor_id)

        values = {k: v for k, v in self._values(data, exclude_unset=True).items() if v is not None}
        if "department_id" in values:
            await self.departments.get(values["department_id"])
        if not values:
            return await self.get_doctor(doctor_id)

        return DoctorResponse.model_validate(await self.store.update(doctor_id, values))

    async def set_status(self, doctor_id: UUID, active: bool) -> DoctorResponse:
        """Activate or deactivate a doctor."""
        row = await self.store.update(doctor_id, {"active": active})
        logger.info("doctor_status_changed", doctor_id=str(doctor_id), active=active)
        return DoctorResponse.model_validate(row)
