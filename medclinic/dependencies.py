"""FastAPI dependencies."""

from collections.abc import Awaitable, Callable
from typing import Annotated, Literal
from uuid import UUID

import structlog
from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from medclinic.core.access_control import AccessPolicy, Permission, get_access_policy
from medclinic.core.exceptions import ForbiddenException, UnauthorizedException
from medclinic.core.security import decode_access_token
from medclinic.database import get_db
from medclinic.schemas.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PageParams
from medclinic.services.user_service import UserService

logger = structlog.get_logger()

# Security
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        UnauthorizedException: If token is missing, invalid or expired
    """
    if credentials is None:
        raise UnauthorizedException("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedException("Could not validate credentials")

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise UnauthorizedException("Could not validate credentials")

    try:
        return UUID(user_id_str)
    except ValueError:
        raise UnauthorizedException("Invalid user ID format")


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """
    Get current user from database.

    Raises:
        UnauthorizedException: If user not found
        ForbiddenException: If user is deactivated
    """
    user = await UserService(db).get_user_by_id(user_id)

    if not user:
        raise UnauthorizedException("User not found")

    if not user["is_active"]:
        raise ForbiddenException("User account is deactivated")

    return user


def page_params(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
) -> PageParams:
    """Read page number and size from the query string."""
    return PageParams(page=page, limit=limit)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
AccessPolicyDep = Annotated[AccessPolicy, Depends(get_access_policy)]
Pagination = Annotated[PageParams, Depends(page_params)]


def require_permissions(
    *permissions: Permission,
    check: Literal["all", "any"] = "all",
) -> Callable[..., Awaitable[dict]]:
    """
    Build a route guard that admits users whose role holds ``permissions``.

    Args:
        permissions: Permissions the route needs
        check: "all" to need every permission, "any" to need at least one

    Returns:
        Dependency returning the current user

    Example:
        @router.post("", dependencies=[Depends(require_permissions(Permission.ADD_PATIENT))])
    """

    async def guard(request: Request, user: CurrentUser, policy: AccessPolicyDep) -> dict:
        if check == "any":
            allowed = policy.has_any_permission(user["role"], permissions)
        else:
            allowed = policy.has_all_permissions(user["role"], permissions)

        if not allowed:
            logger.warning(
                "access_denied",
                user_id=str(user["id"]),
                role=user["role"],
                required=[p.value for p in permissions],
                check=check,
                method=request.method,
                path=request.url.path,
            )
            raise ForbiddenException("You do not have permission to perform this action")
        return user

    return guard
