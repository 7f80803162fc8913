"""User service for business logic."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medclinic.core.exceptions import ConflictException
from medclinic.core.security import get_password_hash
from medclinic.models.users import users
from medclinic.schemas.users import UserCreate
from medclinic.services.record_store import RecordStore

logger = structlog.get_logger()


class UserService:
    """Service for staff accounts."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.store = RecordStore(db, users, "User")

    async def get_user_by_id(self, user_id: UUID) -> dict | None:
        """Get user by internal ID."""
        return await self.store.find_by_id(user_id)

    async def get_user_by_email(self, email: str) -> dict | None:
        """Get user by email, ignoring case."""
        return await self.store.find_one(func.lower(users.c.email) == email.lower())

    async def create_user(self, user_data: UserCreate) -> dict:
        """
        Create a new user with a hashed password.

        Raises:
            ConflictException: If the email is already registered
        """
        email = user_data.email.lower()
        if await self.get_user_by_email(email):
            raise ConflictException(f"User '{email}' already exists")

        try:
            user = await self.store.create(
                {
                    "email": email,
                    "full_name": user_data.full_name,
                    "password_hash": get_password_hash(user_data.password),
                    "role": user_data.role.value,
                }
            )
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException(f"User '{email}' already exists")

        logger.info("user_created", user_id=str(user["id"]), role=user["role"])
        return user

    async def update_last_login(self, user_id: UUID) -> None:
        """Update user's last login timestamp."""
        await self.store.update(user_id, {"last_login_at": datetime.now(UTC)})
