"""Application exceptions.

Each exception carries the HTTP status and the machine readable ``kind``
rendered by :mod:`medclinic.middleware.error_handler`.
"""


class AppException(Exception):
    """Base application exception."""

    status_code = 500
    kind = "internal_error"
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundException(AppException):
    """A referenced patient, doctor, department, appointment or user is missing."""

    status_code = 404
    kind = "not_found"
    default_message = "Resource not found"


class UnauthorizedException(AppException):
    status_code = 401
    kind = "unauthorized"
    default_message = "Unauthorized"


class ForbiddenException(AppException):
    """The caller's role lacks a permission, or the account is deactivated."""

    status_code = 403
    kind = "forbidden"
    default_message = "Forbidden"


class ConflictException(AppException):
    """A doctor slot that is already booked, or a duplicate unique field."""

    status_code = 409
    kind = "conflict"
    default_message = "Conflict"


class ValidationException(AppException):
    """Malformed input, or input that breaks a booking rule."""

    status_code = 400
    kind = "validation_error"
    default_message = "Validation error"


class InvalidTransitionException(AppException):
    """Illegal appointment status change."""

    status_code = 409
    kind = "invalid_transition"
    default_message = "Invalid status transition"
