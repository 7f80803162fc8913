"""Generic record store over a single SQLAlchemy Core table."""

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement, Table, and_, delete, func, insert, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from medclinic.core.exceptions import NotFoundException


class RecordStore:
    """Find, create, update, delete and count rows of one table.

    Every write commits immediately; rows are returned as plain dicts.
    """

    def __init__(self, db: AsyncSession, table: Table, entity_name: str):
        """Initialize store with database session and target table."""
        self.db = db
        self.table = table
        self.entity_name = entity_name

    def _where(self, conditions: Sequence[ColumnElement[bool]]) -> ColumnElement[bool]:
        # true() keeps an empty filter valid
        return and_(true(), *conditions)

    async def find_by_id(self, record_id: UUID) -> dict | None:
        """Get a row by primary key, or None."""
        stmt = select(self.table).where(self.table.c.id == record_id)
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    async def get(self, record_id: UUID) -> dict:
        """
        Get a row by primary key.

        Raises:
            NotFoundException: If no row has this id
        """
        row = await self.find_by_id(record_id)
        if row is None:
            raise NotFoundException(f"{self.entity_name} not found")
        return row

    async def find_one(self, *conditions: ColumnElement[bool]) -> dict | None:
        """Get the first row matching all conditions, or None."""
        stmt = select(self.table).where(self._where(conditions)).limit(1)
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    async def find_all(
        self,
        *conditions: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict]:
        """List rows matching all conditions."""
        stmt = (
            select(self.table)
            .where(self._where(conditions))
            .order_by(*order_by)
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def count(self, *conditions: ColumnElement[bool]) -> int:
        """Count rows matching all conditions."""
        stmt = select(func.count()).select_from(self.table).where(self._where(conditions))
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def create(self, values: dict[str, Any]) -> dict:
        """Insert a row and return it."""
        stmt = insert(self.table).values(**values).returning(self.table)
        result = await self.db.execute(stmt)
        row = dict(result.mappings().one())
        await self.db.commit()
        return row

    def patch_values(self, values: dict[str, Any]) -> dict[str, Any]:
        """Drop nulls sent for columns that cannot hold them; nullable columns may be cleared."""
        return {k: v for k, v in values.items() if v is not None or self.table.c[k].nullable}

    async def update(
        self,
        record_id: UUID,
        values: dict[str, Any],
        *conditions: ColumnElement[bool],
    ) -> dict:
        """
        Update a row and return its new state.

        Extra ``conditions`` make the write apply only while the row still
        matches them.

        Raises:
            NotFoundException: If no row has this id, or the row no longer matches ``conditions``
        """
        values = {**values, "updated_at": datetime.now(UTC)}
        stmt = (
            update(self.table)
            .where(self.table.c.id == record_id, *conditions)
            .values(**values)
            .returning(self.table)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        if row is None:
            await self.db.rollback()
            raise NotFoundException(f"{self.entity_name} not found")
        await self.db.commit()
        return dict(row)

    async def delete(self, record_id: UUID) -> None:
        """
        Delete a row.

        Raises:
            NotFoundException: If no row has this id
        """
        stmt = delete(self.table).where(self.table.c.id == record_id)
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            await self.db.rollback()
            raise NotFoundException(f"{self.entity_name} not found")
        await self.db.commit()

