"""
Audit sink collaborator.

The ledger's only obligation to observers is: one `record(event_kind,
account, details)` call per successful mutation, after it commits, never
before. Where entries go is the sink's business.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from player_ledger.core.event.bus import EventBus


ACCOUNT_CREATED = "account.created"
ACCOUNT_DELETED = "account.deleted"
CURRENCY_CREDITED = "ledger.currency.credited"
CURRENCY_DEBITED = "ledger.currency.debited"
PROGRESSION_SET = "ledger.progression.set"
ITEM_GRANTED = "ledger.item.granted"
ITEM_REVOKED = "ledger.item.revoked"
FRAGMENT_GRANTED = "ledger.fragment.granted"
LEAGUE_RECORDED = "ledger.league.recorded"


@runtime_checkable
class AuditSink(Protocol):
    async def record(
        self, event_kind: str, account: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        ...


class EventBusAuditSink:
    """
    Publishes each entry on the event bus under its kind.

    Payload: ``{**details, "account": ..., "event_kind": ...}``. Listeners
    only receive the payload, so the kind travels inside it.
    """

    def __init__(self, event_bus: EventBus) -> None:
        self._bus = event_bus

    async def record(
        self, event_kind: str, account: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        await self._bus.publish(
            event_kind,
            {**(details or {}), "account": account, "event_kind": event_kind},
        )


class MemoryAuditSink:
    """Keeps entries in a list. Useful for tests and dry runs."""

    def __init__(self) -> None:
        self.entries: List[Tuple[str, str, Dict[str, Any]]] = []

    async def record(
        self, event_kind: str, account: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.entries.append((event_kind, account, dict(details or {})))

    def kinds(self) -> List[str]:
        return [kind for kind, _, _ in self.entries]
