"""Database models."""

from medclinic.models.appointments import appointments
from medclinic.models.base import metadata
from medclinic.models.departments import departments
from medclinic.models.doctors import doctors
from medclinic.models.patients import patients
from medclinic.models.users import users

__all__ = [
    "appointments",
    "departments",
    "doctors",
    "metadata",
    "patients",
    "users",
]
