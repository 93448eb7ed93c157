"""
Mod Update Checker - Error Types
Exceptions raised inside the update-check path and caught at its edges.
"""

from enum import Enum
from typing import Optional


class UpdateCheckError(Exception):
    """Base class for all update checker errors."""
    pass


class RegistrationResult(Enum):
    """Outcome of a registration call."""
    SUCCESS = "success"
    ALREADY_REGISTERED = "already_registered"
    INCOMPATIBLE = "incompatible"
    DISABLED = "disabled"

    def __bool__(self) -> bool:
        return self is RegistrationResult.SUCCESS


class RegistrationError(UpdateCheckError):
    """A component could not be registered."""

    def __init__(self, result: RegistrationResult, message: str):
        super().__init__(message)
        self.result = result


class FetchErrorKind(Enum):
    """Classification of a failed descriptor fetch."""
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    HTTP_STATUS = "http_status"
    EMPTY_BODY = "empty_body"
    OTHER = "other"


class FetchError(UpdateCheckError):
    """Fetching a descriptor failed."""

    def __init__(
        self,
        kind: FetchErrorKind,
        url: str,
        message: str = "",
        status_code: Optional[int] = None,
    ):
        self.kind = kind
        self.url = url
        self.status_code = status_code
        super().__init__(message or f"{kind.value} while fetching {url}")


class InvalidVersionError(UpdateCheckError, ValueError):
    """A version string was empty where one is required."""
    pass
