"""Health check endpoints."""

from datetime import date

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from medclinic.config import settings
from medclinic.database import check_database_connection
from medclinic.dependencies import AccessPolicyDep

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Process health plus the state the scheduler depends on."""

    database: str
    roles_loaded: int
    clinic_date: date


@router.get("/health", response_model=HealthResponse, summary="Basic health check")
async def health_check() -> HealthResponse:
    """Report that the API process is up."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": DetailedHealthResponse}},
    summary="Detailed health check",
)
async def detailed_health_check(
    response: Response, policy: AccessPolicyDep
) -> DetailedHealthResponse:
    """
    Health check including database connectivity and the loaded access policy.

    Responds 503 with status "degraded" when the database cannot be reached.
    """
    db_healthy = await check_database_connection()
    if not db_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return DetailedHealthResponse(
        status="healthy" if db_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        roles_loaded=len(policy.role_permissions),
        clinic_date=settings.today(),
    )


@router.get("/ping", summary="Simple ping")
async def ping() -> dict[str, str]:
    return {"message": "pong"}
