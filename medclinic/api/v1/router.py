"""API v1 router configuration."""

from fastapi import APIRouter

from medclinic.api.v1.endpoints import (
    access,
    appointments,
    auth,
    departments,
    doctors,
    health,
    patients,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(access.router, prefix="/access", tags=["Access"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(patients.router, prefix="/patients", tags=["Patients"])
api_router.include_router(doctors.router, prefix="/doctors", tags=["Doctors"])
api_router.include_router(departments.router, prefix="/departments", tags=["Departments"])
