"""
Exception foundations for the player ledger.

`StructuredError` is the common base of both hierarchies:

- `LedgerInfrastructureException` (this module): configuration and database
  failures that need engineering attention.
- `LedgerDomainException` (`modules/shared/exceptions.py`): rejected
  signatures, failed preconditions, bad input, packed overflow.

Every error carries a message, a details dict, a severity, a retry flag and
a stable error code, and serializes with `to_dict()` for logs and audit rows.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Log level an error is reported at."""

    DEBUG = "debug"
    INFO = "info"  # expected rejections, e.g. duplicate creation
    WARNING = "warning"  # handled but suspicious, e.g. foreign signatures
    ERROR = "error"
    CRITICAL = "critical"


class StructuredError(Exception):
    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details: Dict[str, Any] = details or {}
        self.severity = severity or self.DEFAULT_SEVERITY
        self.is_retryable = self.DEFAULT_RETRYABLE if is_retryable is None else is_retryable
        self.error_code = error_code or type(self).__name__
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.error_code}] {self.message}"
        return f"[{self.error_code}] {self.message} | Details: {self.details}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"


class LedgerInfrastructureException(StructuredError):
    """Base for failures of the machinery rather than of a request."""


class ConfigurationError(LedgerInfrastructureException):
    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class DatabaseError(LedgerInfrastructureException):
    """A storage operation failed; the original error is chained."""

    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Database error during {operation}: {original_error}",
            details={
                "operation": operation,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="DATABASE_ERROR",
        )


def is_transient_error(exc: Exception) -> bool:
    """Domain errors are never transient; resubmitting them unchanged fails again."""
    return bool(getattr(exc, "is_retryable", False))


def get_error_severity(exc: Exception) -> ErrorSeverity:
    severity = getattr(exc, "severity", None)
    return severity if isinstance(severity, ErrorSeverity) else ErrorSeverity.ERROR
