"""
Listener storage for the EventBus.

Listeners are kept per subscription key, which is either an exact event name
or a wildcard pattern; `EventRouter` decides which keys an event matches.
Lookups return listeners in (priority, identifier) order and drop ``once``
listeners in the same step, so a one-shot listener fires at most once even
with several publishes in flight.

Methods are synchronous: the loop is single-threaded and nothing here awaits.
"""

from __future__ import annotations

from player_ledger.core.event.router import EventRouter
from player_ledger.core.event.types import EventListener


def _order_key(listener: EventListener) -> tuple[int, str]:
    return (listener.priority.value, listener.identifier)


class ListenerRegistry:
    def __init__(self, router: EventRouter | None = None) -> None:
        self._router = router or EventRouter()
        self._by_key: dict[str, list[EventListener]] = {}

    def add_listener(
        self,
        event_name: str,
        listener: EventListener,
        *,
        allow_duplicates: bool,
    ) -> bool:
        """False when the identifier is already subscribed to `event_name`."""
        bucket = self._by_key.setdefault(event_name, [])
        if not allow_duplicates and any(
            existing.identifier == listener.identifier for existing in bucket
        ):
            return False
        bucket.append(listener)
        bucket.sort(key=_order_key)
        return True

    def remove_listener(self, event_name: str, identifier: str) -> bool:
        bucket = self._by_key.get(event_name, [])
        kept = [listener for listener in bucket if listener.identifier != identifier]
        self._store(event_name, kept)
        return len(kept) < len(bucket)

    def clear_all(self) -> int:
        total = self.get_total_listener_count()
        self._by_key.clear()
        return total

    def extract_listeners_for_event(self, event_name: str) -> list[EventListener]:
        matched: list[EventListener] = []
        for key in list(self._by_key):
            if not self._router.matches(event_name, key):
                continue
            bucket = self._by_key[key]
            matched.extend(bucket)
            self._store(key, [listener for listener in bucket if not listener.once])
        matched.sort(key=_order_key)
        return matched

    def get_listener_count_for_event(self, event_name: str) -> int:
        return sum(
            len(bucket)
            for key, bucket in self._by_key.items()
            if self._router.matches(event_name, key)
        )

    def get_total_listener_count(self) -> int:
        return sum(len(bucket) for bucket in self._by_key.values())

    def _store(self, key: str, listeners: list[EventListener]) -> None:
        if listeners:
            self._by_key[key] = listeners
        else:
            self._by_key.pop(key, None)
