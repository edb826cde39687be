"""In-process event bus for SystemEvents.

The conversation engine and outbound adapters publish here; the audit
subscriber persists what they publish. Publishing only enqueues: one worker
task drains the queue, so a slow subscriber never delays a webhook.

Usage:
    from questbot.events import emit, subscribe

    subscribe(audit_on_event)                       # at startup
    await emit(SystemEvent(event_type=EventType.ANSWER_CONFIRMED, identity_key="15551234567"))
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from questbot.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]


class EventBus:
    """Queue plus subscriber registry. Handlers with no type filter see every event."""

    def __init__(self) -> None:
        self._global: list[EventHandler] = []
        self._by_type: dict[EventType, list[EventHandler]] = {}
        self._queue: asyncio.Queue[SystemEvent] | None = None
        self._worker: asyncio.Task[None] | None = None

    def subscribe(self, handler: EventHandler, event_types: list[EventType] | None = None) -> None:
        if event_types is None:
            self._global.append(handler)
            logger.info("Registered global event subscriber: %s", handler.__name__)
            return
        for event_type in event_types:
            self._by_type.setdefault(event_type, []).append(handler)
        logger.info(
            "Registered event subscriber %s for types: %s",
            handler.__name__,
            [t.value for t in event_types],
        )

    def unsubscribe(self, handler: EventHandler) -> None:
        for handlers in (self._global, *self._by_type.values()):
            while handler in handlers:
                handlers.remove(handler)

    def handlers_for(self, event_type: EventType) -> list[EventHandler]:
        return [*self._global, *self._by_type.get(event_type, [])]

    async def emit(self, event: SystemEvent) -> None:
        """Queue an event; starts the worker lazily if the bus was never started."""
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._drain(self._queue))
        await self._queue.put(event)
        logger.debug("Event emitted: %s (identity=%s)", event.event_type.value, event.identity_key)

    async def start(self) -> None:
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._drain(self._queue))
        logger.info(
            "Event system started with %d global + %d typed subscribers",
            len(self._global),
            sum(len(v) for v in self._by_type.values()),
        )

    async def stop(self) -> None:
        """Wait for queued events to be dispatched, then stop the worker."""
        if self._queue is not None:
            await self._queue.join()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._queue = None
        logger.info("Event system stopped")

    async def _drain(self, queue: asyncio.Queue[SystemEvent]) -> None:
        while True:
            event = await queue.get()
            try:
                await self.dispatch(event)
            except Exception:
                logger.exception("Error in event worker")
            finally:
                queue.task_done()

    async def dispatch(self, event: SystemEvent) -> None:
        """Run every matching handler concurrently; one failing handler never stops the rest."""
        handlers = self.handlers_for(event.event_type)
        if not handlers:
            return
        results = await asyncio.gather(*(h(event) for h in handlers), return_exceptions=True)
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(
                    "Handler %s failed for event %s: %s",
                    handler.__name__,
                    event.event_type.value,
                    result,
                )


# Process-wide bus used by the application
bus = EventBus()

subscribe = bus.subscribe
unsubscribe = bus.unsubscribe
emit = bus.emit
start_event_system = bus.start
stop_event_system = bus.stop
