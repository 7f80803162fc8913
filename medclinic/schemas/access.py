"""Schemas exposing the access policy to the dashboard."""

from pydantic import BaseModel


class RoleAccess(BaseModel):
    """Permissions and page prefixes of a single role."""

    permissions: list[str]
    pages: list[str]


class AccessProfileResponse(RoleAccess):
    """Access of the authenticated user."""

    role: str


class AccessPolicyResponse(BaseModel):
    """The complete role -> permission / page tables."""

    roles: dict[str, RoleAccess]


class PageAccessResponse(BaseModel):
    """Result of a page access check."""

    path: str
    allowed: bool
