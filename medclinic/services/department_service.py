"""Department service for business logic."""

from uuid import UUID

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medclinic.core.exceptions import ConflictException
from medclinic.models.departments import departments
from medclinic.schemas.common import PageParams, PaginatedResponse
from medclinic.schemas.departments import (
    DepartmentCreate,
    DepartmentListResponse,
    DepartmentResponse,
    DepartmentUpdate,
)
from medclinic.services.record_store import RecordStore

logger = structlog.get_logger()


class DepartmentService:
    """Service for managing departments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.store = RecordStore(db, departments, "Department")

    async def _ensure_name_free(self, name: str, exclude_id: UUID | None = None) -> None:
        conditions = [func.lower(departments.c.name) == name.lower()]
        if exclude_id is not None:
            conditions.append(departments.c.id != exclude_id)
        if await self.store.find_one(*conditions):
            raise ConflictException(f"Department '{name}' already exists")

    async def create_department(self, data: DepartmentCreate) -> DepartmentResponse:
        """
        Create a new department.

        Raises:
            ConflictException: If the name is already taken
        """
        name = data.name.strip()
        await self._ensure_name_free(name)
        try:
            row = await self.store.create({"name": name, "description": data.description})
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException(f"Department '{name}' already exists")

        logger.info("department_created", department_id=str(row["id"]), name=name)
        return DepartmentResponse.model_validate(row)

    async def get_department(self, department_id: UUID) -> DepartmentResponse:
        """Get a department by ID."""
        return DepartmentResponse.model_validate(await self.store.get(department_id))

    async def list_departments(
        self,
        params: PageParams,
        active: bool | None = None,
    ) -> DepartmentListResponse:
        """List departments ordered by name."""
        conditions = []
        if active is not None:
            conditions.append(departments.c.active == active)

        total = await self.store.count(*conditions)
        rows = await self.store.find_all(
            *conditions,
            order_by=[departments.c.name.asc()],
            limit=params.limit,
            offset=params.offset,
        )
        return DepartmentListResponse(
            **PaginatedResponse.meta(total, params),
            items=[DepartmentResponse.model_validate(row) for row in rows],
        )

    async def update_department(
        self,
        department_id: UUID,
        data: DepartmentUpdate,
    ) -> DepartmentResponse:
        """Update a department's name or description."""
        await self.store.get(department_id)

        values = data.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in values:
            values["name"] = values["name"].strip()
            await self._ensure_name_free(values["name"], exclude_id=department_id)
        if not values:
            return await self.get_department(department_id)

        try:
            row = await self.store.update(department_id, values)
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException(f"Department '{values['name']}' already exists")
        return DepartmentResponse.model_validate(row)

    async def set_status(self, department_id: UUID, active: bool) -> DepartmentResponse:
        """Activate or deactivate a department."""
        row = await self.store.update(department_id, {"active": active})
        logger.info("department_status_changed", department_id=str(department_id), active=active)
        return DepartmentResponse.model_validate(row)
