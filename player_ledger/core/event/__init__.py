"""
Event system for the player ledger.

Exposes the process-wide `event_bus` singleton plus the types needed to
subscribe to ledger notifications.
"""

from .bus import EventBus, apply_event_log_context
from .types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

event_bus = EventBus()

__all__ = [
    "event_bus",
    "EventBus",
    "EventPayload",
    "ListenerPriority",
    "EventListener",
    "CallbackType",
    "apply_event_log_context",
]
