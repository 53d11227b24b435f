"""Custom application exceptions."""

from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with message, status code and context."""
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found", details: dict[str, Any] | None = None):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404, details=details)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden", details: dict[str, Any] | None = None):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403, details=details)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error", details: dict[str, Any] | None = None):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422, details=details)


class InvalidTransitionException(AppException):
    """Illegal state-machine edge on either the appointment or the consultation axis."""

    def __init__(
        self,
        axis: str,
        from_status: str | None,
        to_status: str,
        message: str | None = None,
    ):
        """Initialize with 409 status code."""
        self.axis = axis
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            message or f"Invalid {axis} transition: {from_status} -> {to_status}",
            status_code=409,
            details={"axis": axis, "from": from_status, "to": to_status},
        )


class ConflictException(AppException):
    """Conflict exception.

    ``side`` is ``doctor`` or ``patient`` for double bookings and ``stale``
    for a write against an outdated appointment version.
    """

    def __init__(
        self,
        message: str = "Conflict",
        side: str = "doctor",
        details: dict[str, Any] | None = None,
    ):
        """Initialize with 409 status code."""
        self.side = side
        super().__init__(message, status_code=409, details={"side": side, **(details or {})})
