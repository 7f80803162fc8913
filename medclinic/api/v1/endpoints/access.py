"""Access policy endpoints consumed by the dashboard for UI gating."""

from fastapi import APIRouter, Query, status

from medclinic.dependencies import AccessPolicyDep, CurrentUser
from medclinic.schemas.access import (
    AccessPolicyResponse,
    AccessProfileResponse,
    PageAccessResponse,
)

router = APIRouter()


@router.get(
    "/me",
    response_model=AccessProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Permissions and pages of the current user",
)
async def my_access(current_user: CurrentUser, policy: AccessPolicyDep) -> AccessProfileResponse:
    """Return the caller's role with everything it grants."""
    role = current_user["role"]
    return AccessProfileResponse(
        role=role,
        permissions=sorted(p.value for p in policy.permissions_for(role)),
        pages=list(policy.pages_for(role)),
    )


@router.get(
    "/policy",
    response_model=AccessPolicyResponse,
    status_code=status.HTTP_200_OK,
    summary="Full role -> permission and role -> page tables",
)
async def access_policy(current_user: CurrentUser, policy: AccessPolicyDep) -> AccessPolicyResponse:
    """Return the whole access policy."""
    return AccessPolicyResponse(roles=policy.as_dict())


@router.get(
    "/pages",
    response_model=PageAccessResponse,
    status_code=status.HTTP_200_OK,
    summary="Check page access for the current user",
)
async def page_access(
    current_user: CurrentUser,
    policy: AccessPolicyDep,
    path: str = Query(..., min_length=1, description="Dashboard path, e.g. /patients/new"),
) -> PageAccessResponse:
    """Check whether the caller's role may open ``path``."""
    return PageAccessResponse(path=path, allowed=policy.has_page_access(current_user["role"], path))
