"""Authentication service for password login and JWT tokens."""

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from medclinic.core.exceptions import ForbiddenException, UnauthorizedException
from medclinic.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    verify_password,
)
from medclinic.schemas.auth import LoginResponse, Token
from medclinic.schemas.users import UserResponse
from medclinic.services.user_service import UserService

logger = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    """Authentication service for handling logins and token refresh."""

    def __init__(self, db: AsyncSession):
        """Initialize auth service with database session."""
        self.db = db
        self.users = UserService(db)

    async def authenticate(self, email: str, password: str) -> LoginResponse:
        """
        Check a user's credentials and issue a token pair.

        Args:
            email: Account email
            password: Plain-text password

        Returns:
            Tokens and the authenticated user

        Raises:
            UnauthorizedException: If the email or password is wrong
            ForbiddenException: If the account is deactivated
        """
        user = await self.users.get_user_by_email(email)
        if user is None or not verify_password(password, user["password_hash"]):
            logger.info("login_failed", email=email)
            raise UnauthorizedException(INVALID_CREDENTIALS)

        if not user["is_active"]:
            raise ForbiddenException("User account is deactivated")

        await self.users.update_last_login(user["id"])
        user = await self.users.get_user_by_id(user["id"])
        logger.info("login_succeeded", user_id=str(user["id"]), role=user["role"])

        tokens = self.create_tokens(str(user["id"]))
        return LoginResponse(**tokens.model_dump(), user=UserResponse.model_validate(user))

    def create_tokens(self, user_id: str) -> Token:
        """
        Create access and refresh tokens for a user.

        Args:
            user_id: User identifier (internal UUID)

        Returns:
            Token pair (access and refresh)
        """
        return Token(
            access_token=create_access_token(data={"sub": user_id}),
            refresh_token=create_refresh_token(data={"sub": user_id}),
            token_type="bearer",
        )

    async def refresh_access_token(self, refresh_token: str) -> Token:
        """
        Create a new token pair from a refresh token.

        Raises:
            UnauthorizedException: If the token is invalid or the user is gone or inactive
        """
        payload = decode_refresh_token(refresh_token)
        if payload is None or not isinstance(payload.get("sub"), str):
            raise UnauthorizedException("Invalid refresh token")

        try:
            user_id = UUID(payload["sub"])
        except ValueError:
            raise UnauthorizedException("Invalid refresh token")

        user = await self.users.get_user_by_id(user_id)
        if user is None or not user["is_active"]:
            raise UnauthorizedException("Invalid refresh token")

        return self.create_tokens(str(user_id))
