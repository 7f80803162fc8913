"""Patient service for business logic."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from medclinic.models.patients import patients
from medclinic.schemas.common import PageParams, PaginatedResponse
from medclinic.schemas.patients import (
    PatientCreate,
    PatientListResponse,
    PatientResponse,
    PatientUpdate,
)
from medclinic.services.record_store import RecordStore

logger = structlog.get_logger()


class PatientService:
    """Service for managing patients."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.store = RecordStore(db, patients, "Patient")

    @staticmethod
    def _values(data: PatientCreate | PatientUpdate, exclude_unset: bool = False) -> dict[str, Any]:
        values = data.model_dump(exclude_unset=exclude_unset)
        if values.get("gender") is not None:
            values["gender"] = data.gender.value
        return values

    async def create_patient(self, data: PatientCreate) -> PatientResponse:
        """Register a new patient."""
        row = await self.store.create(self._values(data))
        logger.info("patient_created", patient_id=str(row["id"]))
        return PatientResponse.model_validate(row)

    async def get_patient(self, patient_id: UUID) -> PatientResponse:
        """
        Get a patient by ID.

        Raises:
            NotFoundException: If patient not found
        """
        return PatientResponse.model_validate(await self.store.get(patient_id))

    async def list_patients(
        self,
        params: PageParams,
        search: str | None = None,
        active: bool | None = None,
    ) -> PatientListResponse:
        """
        List patients with filtering and pagination.

        Args:
            params: Page number and size
            search: Matches name, phone or email
            active: Filter by active flag

        Returns:
            Paginated list of patients
        """
        conditions = []
        if active is not None:
            conditions.append(patients.c.active == active)
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(
                or_(
                    patients.c.first_name.ilike(pattern),
                    patients.c.last_name.ilike(pattern),
                    patients.c.phone.ilike(pattern),
                    patients.c.email.ilike(pattern),
                )
            )

        total = await self.store.count(*conditions)
        rows = await self.store.find_all(
            *conditions,
            order_by=[patients.c.last_name.asc(), patients.c.first_name.asc()],
            limit=params.limit,
            offset=params.offset,
        )
        return PatientListResponse(
            **PaginatedResponse.meta(total, params),
            items=[PatientResponse.model_validate(row) for row in rows],
        )

    async def update_patient(self, patient_id: UUID, data: PatientUpdate) -> PatientResponse:
        """Update an existing patient; null clears an optional field."""
        await self.store.get(patient_id)

        values = self.store.patch_values(self._values(data, exclude_unset=True))
        if not values:
            return await self.get_patient(patient_id)

        return PatientResponse.model_validate(await self.store.update(patient_id, values))

    async def deactivate_patient(self, patient_id: UUID) -> None:
        """Deactivate a patient; records referenced by appointments are never deleted."""
        await self.store.update(patient_id, {"active": False})
        logger.info("patient_deactivated", patient_id=str(patient_id))

    async def find_existing(self, data: PatientCreate) -> dict | None:
        """Find a patient registered with the same phone number or email."""
        matches = [patients.c.phone == data.phone]
        if data.email:
            matches.append(patients.c.email == data.email)
        return await self.store.find_one(or_(*matches))

    async def register(self, data: PatientCreate) -> tuple[dict, bool]:
        """
        Reuse a matching patient, or create a new one.

        A reused patient only takes the fields the caller set in ``data``;
        everything else on file is kept.

        Returns:
            Tuple of (patient row, whether it was newly created)
        """
        existing = await self.find_existing(data)
        if existing:
            row = await self.store.update(existing["id"], self._values(data, exclude_unset=True))
            logger.info("patient_reused", patient_id=str(row["id"]))
            return row, False

        row = await self.store.create(self._values(data))
        logger.info("patient_created", patient_id=str(row["id"]))
        return row, True
