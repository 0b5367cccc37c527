"""
Error taxonomy and the uniform result type returned by the payments gateway.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar('T')

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again later."


class ErrorKind(str, Enum):
    """Where an error came from, used by handlers to pick a reaction."""

    VALIDATION = "validation"
    """Malformed user input, caught before any remote call."""

    AUTHENTICATION = "authentication"
    """Missing or expired session (or a 401 from the remote API)."""

    REMOTE = "remote"
    """Any other 4xx/5xx answer from the payments API."""

    TRANSPORT = "transport"
    """Network failure or unreadable response; details are logged, not shown."""


@dataclass(frozen=True)
class ApiError:
    """Normalized, user-presentable error."""

    kind: ErrorKind
    message: str
    status_code: Optional[int] = None

    @classmethod
    def validation(cls, message: str) -> "ApiError":
        return cls(ErrorKind.VALIDATION, message)

    @classmethod
    def not_authenticated(cls) -> "ApiError":
        return cls(ErrorKind.AUTHENTICATION, "You are not logged in. Use /login to sign in.")

    @classmethod
    def transport(cls) -> "ApiError":
        return cls(ErrorKind.TRANSPORT, GENERIC_ERROR_MESSAGE)

    @property
    def is_auth_error(self) -> bool:
        return self.kind == ErrorKind.AUTHENTICATION

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    """
    Outcome of a gateway call.

    Exactly one of ``data`` (on success) or ``error`` (on failure) is
    meaningful; check ``success`` first.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[ApiError] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ApiResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ApiError) -> "ApiResult":
        return cls(success=False, error=error)

    @property
    def error_message(self) -> str:
        if self.error is None:
            return GENERIC_ERROR_MESSAGE
        return self.error.message
