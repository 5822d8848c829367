"""Library exceptions."""

from __future__ import annotations


class PyParkingMapError(Exception):
    """Base exception for the library."""

    error_type = "unknown"
    default_code: str | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: str | None = None,
        detail: str | None = None,
        user_message: str | None = None,
    ) -> None:
        text = message or detail or self.__class__.__name__
        super().__init__(text)
        self.error_code = error_code or self.default_code
        self.detail = detail or text
        self.user_message = user_message


class ValidationError(PyParkingMapError):
    """Raised when inputs fail validation."""

    error_type = "validation"
    default_code = "validation_error"


class AuthError(PyParkingMapError):
    """Raised when authentication fails."""

    error_type = "auth"
    default_code = "auth_error"


class NetworkError(PyParkingMapError):
    """Raised when network communication fails."""

    error_type = "network"
    default_code = "network_error"


class TimeoutError(NetworkError):  # noqa: A001
    """Raised when a request exceeds its timeout."""

    default_code = "timeout"


class ProviderError(PyParkingMapError):
    """Raised when the backend returns an error or a malformed response."""

    error_type = "provider"
    default_code = "provider_error"


class NotFoundError(ProviderError):
    """Raised when the backend reports a missing resource."""

    default_code = "not_found"


class RateLimitError(ProviderError):
    """Raised when the backend throttles requests."""

    default_code = "rate_limit"


class ServiceUnavailableError(ProviderError):
    """Raised when the backend is temporarily unavailable."""

    default_code = "service_unavailable"


class BookingStateError(PyParkingMapError):
    """Raised when a booking transition is not allowed from the current step."""

    error_type = "booking"
    default_code = "booking_state"
