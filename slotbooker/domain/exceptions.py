"""
Domain-specific exception hierarchy for the appointment booking flow.
"""


class BookingError(Exception):
    """Base class for all application-level errors."""


class ApiError(BookingError):
    """Raised when the booking backend cannot serve a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NetworkError(ApiError):
    """Raised on connectivity problems or timeouts."""


class ServerError(ApiError):
    """Raised when the backend answers with an unexpected status or body."""


class ValidationError(ApiError):
    """Raised when the backend rejects a request, e.g. a slot already taken."""
