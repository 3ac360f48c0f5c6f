"""Error family for every failure the client can surface.

A single base type carries the HTTP status, the vendor error code, and an
optional context dict. Classification is derived from status and code and
is exposed as ``kind`` plus predicate methods. The subclasses only exist so
callers can ``except`` on a specific kind.
"""

from __future__ import annotations

import enum
from typing import Any, Final

from capitalcom.helpers import dumps

AUTH_STATUSES: Final = frozenset({401, 403})
AUTH_CODES: Final = frozenset({"INVALID_CREDENTIALS", "SESSION_EXPIRED", "INVALID_SESSION"})
RATE_LIMIT_CODES: Final = frozenset({"RATE_LIMIT_EXCEEDED"})
VALIDATION_CODES: Final = frozenset({"INVALID_PARAMETERS", "VALIDATION_ERROR"})


class ErrorKind(enum.Enum):
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"
    GENERIC = "generic"


def classify(status: int, errorCode: str | None) -> ErrorKind:
    """Derive the error kind from an HTTP status and optional vendor code.

    Authentication wins over rate limiting which wins over validation."""
    if status in AUTH_STATUSES or errorCode in AUTH_CODES:
        return ErrorKind.AUTHENTICATION

    if status == 429 or errorCode in RATE_LIMIT_CODES:
        return ErrorKind.RATE_LIMIT

    if status == 400 or errorCode in VALIDATION_CODES:
        return ErrorKind.VALIDATION

    return ErrorKind.GENERIC


class CapitalComError(Exception):
    """Base error for API, transport, and session failures."""

    def __init__(
        self,
        message: str = "",
        status: int = 0,
        errorCode: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.errorCode = errorCode
        self.context = context

    @property
    def kind(self) -> ErrorKind:
        return classify(self.status, self.errorCode)

    def isAuthenticationError(self) -> bool:
        return self.kind == ErrorKind.AUTHENTICATION

    def isRateLimitError(self) -> bool:
        return self.status == 429 or self.errorCode in RATE_LIMIT_CODES

    def isValidationError(self) -> bool:
        return self.status == 400 or self.errorCode in VALIDATION_CODES

    def fullMessage(self) -> str:
        """Message prefixed by the vendor code, followed by any context."""
        message = self.message
        if self.errorCode:
            message = f"[{self.errorCode}] {message}"

        if self.context:
            message += f"\nContext: {dumps(self.context, pretty=True)}"

        return message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, status={self.status}, "
            f"errorCode={self.errorCode!r})"
        )


class AuthenticationError(CapitalComError):
    def __init__(
        self,
        message: str = "Authentication failed",
        status: int = 401,
        errorCode: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, status, errorCode, context)


class RateLimitError(CapitalComError):
    def __init__(
        self,
        message: str = "Rate limit exceeded",
        status: int = 429,
        errorCode: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, status, errorCode, context)


class ValidationError(CapitalComError):
    def __init__(
        self,
        message: str = "Invalid parameters",
        status: int = 400,
        errorCode: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, status, errorCode, context)


class EncryptionError(CapitalComError):
    """Password encryption failed (bad key or rejected input)."""


ERROR_TYPES: Final[dict[ErrorKind, type[CapitalComError]]] = {
    ErrorKind.AUTHENTICATION: AuthenticationError,
    ErrorKind.RATE_LIMIT: RateLimitError,
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.GENERIC: CapitalComError,
}


def errorFor(
    message: str,
    status: int,
    errorCode: str | None = None,
    context: dict[str, Any] | None = None,
) -> CapitalComError:
    """Build the error subclass matching the classification of status/code."""
    errtype = ERROR_TYPES[classify(status, errorCode)]
    return errtype(message, status=status, errorCode=errorCode, context=context)
