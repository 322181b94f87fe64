"""
Base class for ledger domain services.

Gives every service the same configuration handle, structured logging and
post-commit notification through the injected audit sink, without owning
any infrastructure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from logging import Logger

    from player_ledger.core.config.config import Config
    from player_ledger.modules.audit.sink import AuditSink


class BaseService:
    """
    Base class for all domain services.

    Args:
        config: Application configuration (the `Config` class)
        audit_sink: Receives one entry per successful mutation
        logger: Structured logger instance
    """

    def __init__(
        self,
        config: type[Config],
        audit_sink: AuditSink,
        logger: Logger,
    ) -> None:
        self._config = config
        self._audit = audit_sink
        self.log = logger

    async def emit_event(
        self,
        event_kind: str,
        account: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Record a notification for `account`. Only call after the mutation it
        describes has committed.
        """
        await self._audit.record(event_kind, account, details or {})

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """
        Log a rejected or failed operation.

        Domain rejections are logged at the severity the exception carries;
        anything else is logged as an error with a traceback.
        """
        from player_ledger.core.exceptions import ErrorSeverity, get_error_severity

        severity = get_error_severity(error)
        extra = {
            "operation": operation,
            "error_type": type(error).__name__,
            "error_message": str(error),
            **context,
        }
        details = getattr(error, "details", None)
        if details:
            extra["error_details"] = details

        if severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
            self.log.error(
                f"Service error during {operation}: {error}",
                extra=extra,
                exc_info=error,
            )
        elif severity is ErrorSeverity.WARNING:
            self.log.warning(f"Rejected {operation}: {error}", extra=extra)
        else:
            self.log.info(f"Rejected {operation}: {error}", extra=extra)
