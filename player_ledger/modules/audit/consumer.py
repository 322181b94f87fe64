"""
Audit Event Consumer
====================

Subscribes to ledger notifications on the event bus and persists each one
as an `AuditLog` row.

Consumes
--------
- ``account.*`` (account.created, account.deleted)
- ``ledger.*``  (currency, progression, item, fragment and league writes)

Payload shape (from `EventBusAuditSink`)::

    {
        "event_kind": "account.created",
        "account": "0xAbC...",
        "admin" | "caller": "0x...",   # who authorized the mutation
        ...                            # operation-specific details
    }

Listeners run at HIGH priority, so `publish()` awaits the write and an
audit row exists by the time the mutating service returns. A failed write
is logged and counted; it never propagates to the service, whose mutation
has already committed.

Example Usage
-------------
>>> consumer = AuditConsumer(event_bus, AuditRepository())
>>> await consumer.start()
>>> status = consumer.get_status()
>>> await consumer.stop()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List

from player_ledger.core.event.types import ListenerPriority
from player_ledger.core.logging.logger import get_logger
from player_ledger.database.models import AuditLog

if TYPE_CHECKING:
    from player_ledger.core.event.bus import EventBus
    from player_ledger.modules.audit.repository import AuditRepository

logger = get_logger(__name__)

# Keys lifted into columns; everything else lands in `details`.
_ENVELOPE_KEYS = ("event_kind", "account")


class AuditConsumer:
    """Persists ledger events to the audit log."""

    SUBSCRIBED_PATTERNS = ("account.*", "ledger.*")

    def __init__(
        self,
        event_bus: EventBus,
        audit_repository: AuditRepository,
    ) -> None:
        self._event_bus = event_bus
        self._audit_repo = audit_repository

        self._is_running: bool = False
        self._subscriptions: List[tuple[str, str]] = []

        self._events_received: int = 0
        self._events_persisted: int = 0
        self._events_failed: int = 0

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Subscribe to ledger events."""
        if self._is_running:
            logger.warning("AuditConsumer already running")
            return

        for pattern in self.SUBSCRIBED_PATTERNS:
            identifier = self._event_bus.subscribe(
                pattern,
                self._handle_event,
                priority=ListenerPriority.HIGH,
                identifier=f"audit_consumer:{pattern}",
            )
            self._subscriptions.append((pattern, identifier))

        self._is_running = True
        logger.info(
            "AuditConsumer started",
            extra={"patterns": list(self.SUBSCRIBED_PATTERNS)},
        )

    async def stop(self) -> None:
        if not self._is_running:
            return

        for pattern, identifier in self._subscriptions:
            self._event_bus.unsubscribe(pattern, identifier)
        self._subscriptions.clear()
        self._is_running = False

        logger.info("AuditConsumer stopped", extra=self.get_status())

    @property
    def is_running(self) -> bool:
        return self._is_running

    # =========================================================================
    # EVENT HANDLING
    # =========================================================================

    async def _handle_event(self, payload: Dict[str, Any]) -> None:
        self._events_received += 1

        try:
            entry = self.build_entry(payload)
            await self._audit_repo.create(entry)
            self._events_persisted += 1
        except Exception as exc:
            self._events_failed += 1
            logger.error(
                "Failed to persist audit event",
                extra={
                    "event_kind": payload.get("event_kind"),
                    "account": payload.get("account"),
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )

    @staticmethod
    def build_entry(payload: Dict[str, Any]) -> AuditLog:
        """Map a bus payload onto an `AuditLog` row."""
        details = {k: v for k, v in payload.items() if k not in _ENVELOPE_KEYS}
        return AuditLog(
            event_kind=str(payload.get("event_kind", "unknown")),
            account=str(payload["account"]),
            caller=payload.get("caller") or payload.get("admin"),
            details=details,
        )

    # =========================================================================
    # MONITORING
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_running": self._is_running,
            "events_received": self._events_received,
            "events_persisted": self._events_persisted,
            "events_failed": self._events_failed,
        }
