"""Authentication endpoints."""

from fastapi import APIRouter, status

from medclinic.dependencies import CurrentUser, DatabaseSession
from medclinic.schemas.auth import LoginRequest, LoginResponse, Token, TokenRefresh
from medclinic.schemas.users import UserResponse
from medclinic.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Email and password login",
)
async def login(request: LoginRequest, db: DatabaseSession) -> LoginResponse:
    """
    Authenticate a staff member and return JWT tokens.

    Args:
        request: Email and password
        db: Database session

    Returns:
        Access token, refresh token, and user information

    Raises:
        UnauthorizedException: If the credentials are wrong
    """
    return await AuthService(db).authenticate(request.email, request.password)


@router.post(
    "/refresh",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    summary="Refresh access token",
)
async def refresh_token(request: TokenRefresh, db: DatabaseSession) -> Token:
    """
    Exchange a refresh token for a new token pair.

    Raises:
        UnauthorizedException: If refresh token is invalid
    """
    return await AuthService(db).refresh_access_token(request.refresh_token)


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Current user",
)
async def me(current_user: CurrentUser) -> UserResponse:
    """Return the authenticated user's account."""
    return UserResponse.model_validate(current_user)
