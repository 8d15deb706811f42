"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). Don't raise this directly - use ApiError or ConfigurationError.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class ApiError(DomainException):
    """A user-facing failure of a backend call.

    Hey future me - this is the ONE error type the UI ever sees from the client core.
    It carries nothing but a display message, already picked from (in order):
    1. an operation-specific status message (e.g. 401 on login -> "Invalid email or password")
    2. the server's structured "detail" field
    3. a static fallback string for the operation

    There are no error codes here. Screens show message in an alert
    and let the user retry by hand.

    Example:
        raise ApiError("Failed to send message")
    """

    pass


class ConfigurationError(DomainException):
    """Client misconfiguration.

    Raised when required configuration is missing or invalid.

    Example:
        raise ConfigurationError("PREMA_API__BASE_URL is empty")
    """

    pass


__all__ = [
    "ApiError",
    "ConfigurationError",
    "DomainException",
]
