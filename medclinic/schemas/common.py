"""Schemas shared by the paginated list endpoints."""

import math

from pydantic import BaseModel, Field

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class PageParams(BaseModel):
    """Page number and size requested by the caller."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        """Number of rows to skip."""
        return (self.page - 1) * self.limit


class PaginatedResponse(BaseModel):
    """Pagination metadata returned with every list."""

    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @staticmethod
    def meta(total: int, params: PageParams) -> dict:
        """Compute pagination metadata for ``total`` rows."""
        total_pages = math.ceil(total / params.limit) if total else 0
        return {
            "total": total,
            "page": params.page,
            "limit": params.limit,
            "total_pages": total_pages,
            "has_next_page": params.page < total_pages,
            "has_prev_page": params.page > 1,
        }
