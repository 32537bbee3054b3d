"""Structured failures reported by the collaborators around the engine."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

__all__ = [
    "ErrorType",
    "ErrorSeverity",
    "ShufflerError",
    "ValidationError",
    "AuthError",
    "DatabaseError",
    "NotFoundError",
    "RateLimitedError",
    "handle_error",
]


class ErrorType(str, Enum):
    NETWORK = "network"
    DATABASE = "database"
    VALIDATION = "validation"
    AUTH = "auth"
    SHUFFLE = "shuffle"
    UNKNOWN = "unknown"


class ErrorSeverity(str, Enum):
    """How loudly a failure should be reported."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_LOG_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class ShufflerError(RuntimeError):
    """Failure carrying a kind, a message and whether it is recoverable."""

    type: ErrorType = ErrorType.UNKNOWN
    severity: ErrorSeverity = ErrorSeverity.ERROR
    code: str = "UNKNOWN_ERROR"
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        *,
        details: Mapping[str, Any] | None = None,
        code: str | None = None,
        severity: ErrorSeverity | None = None,
        recoverable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})
        if code is not None:
            self.code = code
        if severity is not None:
            self.severity = severity
        if recoverable is not None:
            self.recoverable = recoverable
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain mapping suitable for JSON responses or logs."""

        return {
            "type": self.type.value,
            "message": self.message,
            "severity": self.severity.value,
            "code": self.code,
            "details": self.details,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
        }


class ValidationError(ShufflerError):
    """Raised when caller supplied input is rejected."""

    type = ErrorType.VALIDATION
    severity = ErrorSeverity.WARNING
    code = "VALIDATION_ERROR"
    recoverable = True


class AuthError(ShufflerError):
    """Raised when an operation needs an identified user."""

    type = ErrorType.AUTH
    code = "AUTH_REQUIRED"
    recoverable = True


class DatabaseError(ShufflerError):
    type = ErrorType.DATABASE
    code = "DATABASE_ERROR"


class NotFoundError(ShufflerError):
    type = ErrorType.DATABASE
    code = "RESOURCE_NOT_FOUND"
    severity = ErrorSeverity.WARNING
    recoverable = True


class RateLimitedError(ShufflerError):
    type = ErrorType.SHUFFLE
    code = "RATE_LIMITED"
    severity = ErrorSeverity.WARNING
    recoverable = True


def handle_error(error: BaseException, logger: logging.Logger | None = None) -> ShufflerError:
    """Normalise ``error`` to a :class:`ShufflerError` and log it."""

    if isinstance(error, ShufflerError):
        normalised = error
    else:
        normalised = ShufflerError(
            str(error) or "An unknown error occurred",
            details={"original_error": type(error).__name__},
        )
    log = logger or logging.getLogger(__name__)
    log.log(
        _LOG_LEVELS[normalised.severity],
        "%s [%s/%s]: %s",
        normalised.code,
        normalised.type.value,
        normalised.severity.value,
        normalised.message,
        extra={"details": normalised.details},
    )
    return normalised
