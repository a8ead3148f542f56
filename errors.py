"""Error hierarchy shared by the API, the expiration sweep and the client."""

from typing import Any, Optional


class PortalError(Exception):
    """Base exception for the property portal."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.__class__.__name__


class AuthenticationRequired(PortalError):
    """Authentication required"""

    status_code = 401


class PermissionDenied(PortalError):
    """Not authorized to perform this action"""

    status_code = 403


class ResourceNotFound(PortalError):
    """Resource not found"""

    status_code = 404


class InvalidRequest(PortalError):
    """Invalid request"""

    status_code = 400


class UpstreamRequestFailed(PortalError):
    """Non-2xx or malformed response from the API or the media host."""

    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.message} (HTTP {self.status})"
        return self.message


class ValidationSkipped(PortalError):
    """User input was malformed and has been dropped instead of rejected."""

    status_code = 400


class BestEffortFailure(PortalError):
    """A maintenance task failed; logged, never surfaced to callers."""


class UnsupportedCurrencyPair(PortalError):
    """No exchange rate for the requested currency pair."""

    status_code = 400
