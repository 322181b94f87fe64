"""
EventBus for ledger notifications.

Every successful lifecycle or ledger mutation publishes exactly one event
after its transaction commits (``account.created``, ``account.deleted``,
``ledger.currency.credited`` ...). Listeners are off-system observers; the
audit consumer is the built-in one.
"""

from __future__ import annotations

import inspect
from typing import Any, Optional

from player_ledger.core.config.config import Config
from player_ledger.core.event.registry import ListenerRegistry
from player_ledger.core.event.router import EventRouter
from player_ledger.core.event.scheduler import EventScheduler
from player_ledger.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from player_ledger.core.logging.logger import get_logger, set_log_context

logger = get_logger(__name__)


def apply_event_log_context(event_name: str, payload: EventPayload) -> None:
    """Bind the event name, payload keys and account to the log context. Values stay out."""
    account = payload.get("account")
    set_log_context(
        account=account if isinstance(account, str) else None,
        event_name=event_name,
        event_keys=sorted(payload),
    )


def _accepts_payload(callback: CallbackType) -> bool:
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        # Some builtins expose no signature; let them through.
        return True
    try:
        signature.bind(object())
    except TypeError:
        return False
    return True


class EventBus:
    """
    In-process publish/subscribe bus, used from a single event loop.

    >>> bus = EventBus()
    >>> bus.subscribe("account.*", on_account_event, priority=ListenerPriority.HIGH)
    >>> await bus.publish("account.created", {"account": "0xAbC..."})
    """

    def __init__(
        self,
        registry: Optional[ListenerRegistry] = None,
        *,
        listener_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._registry = registry or ListenerRegistry(EventRouter())
        self._scheduler = EventScheduler(logger)
        self._published: dict[str, int] = {}
        self._listener_timeout = float(
            Config.EVENT_LISTENER_TIMEOUT_SECONDS
            if listener_timeout_seconds is None
            else listener_timeout_seconds
        )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
        allow_duplicates: bool = False,
    ) -> str:
        """
        Subscribe `callback` to an event name or wildcard pattern and return
        the identifier `unsubscribe()` expects.

        Raises ValueError for an empty name or a callback that cannot take
        the payload as its single argument.
        """
        if not event_name:
            raise ValueError("event_name must be a non-empty string")
        if not _accepts_payload(callback):
            name = getattr(callback, "__qualname__", None) or repr(callback)
            raise ValueError(f"Event listener {name!r} must accept exactly one payload argument")

        listener = EventListener.from_callback(event_name, callback, priority, identifier, once)
        if self._registry.add_listener(event_name, listener, allow_duplicates=allow_duplicates):
            logger.debug(
                "EventBus: subscribed",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": priority.name,
                },
            )
        else:
            logger.warning(
                "EventBus: duplicate listener ignored",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        return self._registry.remove_listener(event_name, identifier)

    def clear(self) -> None:
        removed = self._registry.clear_all()
        logger.info("EventBus: cleared listeners", extra={"removed": removed})

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Deliver `data` to every matching listener.

        Returns the results of the awaited tiers. Listener errors are logged,
        never raised.
        """
        self._published[event_name] = self._published.get(event_name, 0) + 1
        apply_event_log_context(event_name, data)

        listeners = self._registry.extract_listeners_for_event(event_name)
        if not listeners:
            return []

        logger.debug(
            "EventBus: publishing",
            extra={"event_name": event_name, "listener_count": len(listeners)},
        )
        return await self._scheduler.execute(
            event_name, data, listeners, self._listener_timeout
        )

    async def drain(self) -> None:
        """Wait for LOW-priority listeners still running in the background."""
        await self._scheduler.drain()

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name:
            return self._registry.get_listener_count_for_event(event_name)
        return self._registry.get_total_listener_count()

    def get_publish_counts(self) -> dict[str, int]:
        return dict(self._published)
