"""
Tiered execution of event listeners.

By the time listeners run, the mutation that produced the event has already
committed. A failing or slow listener is logged and skipped; nothing it does
reaches the publisher.
"""

from __future__ import annotations

import asyncio
import inspect
from logging import Logger
from typing import Any, Optional

from player_ledger.core.event.types import EventListener, EventPayload, ListenerPriority

_SEQUENTIAL = (ListenerPriority.CRITICAL, ListenerPriority.HIGH)


class EventScheduler:
    """
    CRITICAL and HIGH listeners run one at a time under a timeout, NORMAL
    listeners are gathered, LOW listeners become background tasks that
    `drain()` waits for.
    """

    def __init__(self, logger: Logger) -> None:
        self._logger = logger
        self._background: set[asyncio.Task[Any]] = set()

    async def execute(
        self,
        event_name: str,
        payload: EventPayload,
        listeners: list[EventListener],
        timeout: Optional[float],
    ) -> list[Any]:
        """Results of the awaited tiers, None where a listener failed."""
        results: list[Any] = []

        for listener in listeners:
            if listener.priority in _SEQUENTIAL:
                results.append(await self._bounded(event_name, payload, listener, timeout))

        gathered = [
            self._invoke(event_name, payload, listener)
            for listener in listeners
            if listener.priority is ListenerPriority.NORMAL
        ]
        if gathered:
            results.extend(await asyncio.gather(*gathered))

        for listener in listeners:
            if listener.priority is ListenerPriority.LOW:
                task = asyncio.create_task(
                    self._invoke(event_name, payload, listener),
                    name=f"eventbus-low-{event_name}-{listener.identifier}",
                )
                self._background.add(task)
                task.add_done_callback(self._background.discard)

        return results

    async def drain(self) -> None:
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _bounded(
        self,
        event_name: str,
        payload: EventPayload,
        listener: EventListener,
        timeout: Optional[float],
    ) -> Any:
        if not timeout or timeout <= 0:
            return await self._invoke(event_name, payload, listener)
        try:
            return await asyncio.wait_for(
                self._invoke(event_name, payload, listener), timeout=timeout
            )
        except asyncio.TimeoutError as exc:
            self._failed(event_name, listener, exc, timeout_seconds=timeout)
            return None

    async def _invoke(
        self, event_name: str, payload: EventPayload, listener: EventListener
    ) -> Any:
        # Sync callbacks go to the default executor so they cannot stall the loop.
        try:
            if inspect.iscoroutinefunction(listener.callback):
                return await listener.callback(payload)
            result = await asyncio.get_running_loop().run_in_executor(
                None, listener.callback, payload
            )
            return await result if inspect.isawaitable(result) else result
        except Exception as exc:
            self._failed(event_name, listener, exc)
            return None

    def _failed(
        self, event_name: str, listener: EventListener, exc: BaseException, **extra: Any
    ) -> None:
        self._logger.error(
            "EventBus listener failed",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
                "error_type": type(exc).__name__,
                **extra,
            },
            exc_info=exc,
        )
