"""In-process event bus.

Appointment, availability and notification changes are published as
SystemEvents. Subscribers (the activity log and the websocket hub) receive
them from a background worker, so a slow browser never delays a request.

Usage:
    from schoolbook.realtime.events import emit, subscribe

    subscribe(hub.broadcast)
    await emit(SystemEvent(event_type=EventType.APPOINTMENT_UPDATED, data={...}))
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Coroutine, Iterable
from typing import Any

from schoolbook.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class EventBus:
    """Subscribers keyed by the event types they want (None = everything)."""

    def __init__(self) -> None:
        self._handlers: list[tuple[EventHandler, frozenset[EventType] | None]] = []
        self._queue: asyncio.Queue[SystemEvent] | None = None
        self._worker: asyncio.Task[None] | None = None

    # ── Subscriptions ────────────────────────────────────────────────

    def subscribe(self, handler: EventHandler, event_types: Iterable[EventType] | None = None) -> None:
        wanted = frozenset(event_types) if event_types is not None else None
        self._handlers.append((handler, wanted))
        logger.info(
            "Subscribed %s to %s",
            _handler_name(handler),
            "all events" if wanted is None else sorted(t.value for t in wanted),
        )

    def unsubscribe(self, handler: EventHandler) -> None:
        self._handlers = [(h, types) for h, types in self._handlers if h != handler]

    def clear(self) -> None:
        self._handlers.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def _matching(self, event: SystemEvent) -> list[EventHandler]:
        return [h for h, types in self._handlers if types is None or event.event_type in types]

    # ── Publishing ───────────────────────────────────────────────────

    async def publish(self, event: SystemEvent) -> None:
        """Queue the event for the worker, starting it on first use."""
        if self._queue is None:
            self._queue = asyncio.Queue()
        self._ensure_worker()
        await self._queue.put(event)
        logger.debug("Event queued: %s (actor=%s)", event.event_type.value, event.actor_id)

    async def deliver(self, event: SystemEvent) -> None:
        """Run every matching handler now. One handler failing never stops the others."""
        handlers = self._matching(event)
        if not handlers:
            return
        outcomes = await asyncio.gather(*(h(event) for h in handlers), return_exceptions=True)
        for handler, outcome in zip(handlers, outcomes):
            if isinstance(outcome, Exception):
                logger.error(
                    "Handler %s failed for %s: %r",
                    _handler_name(handler),
                    event.event_type.value,
                    outcome,
                )

    # ── Worker lifecycle ─────────────────────────────────────────────

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._drain())
            logger.info("Event worker started")

    async def _drain(self) -> None:
        queue = self._queue
        if queue is None:
            return
        while True:
            event = await queue.get()
            try:
                await self.deliver(event)
            finally:
                queue.task_done()

    async def start(self) -> None:
        self._queue = asyncio.Queue()
        self._ensure_worker()
        logger.info("Event system started with %d subscribers", self.subscriber_count)

    async def stop(self) -> None:
        """Let queued events reach their handlers, then stop the worker."""
        worker, queue = self._worker, self._queue
        if worker is not None and not worker.done():
            if queue is not None:
                await queue.join()
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
        self._worker = None
        self._queue = None
        logger.info("Event system stopped")


bus = EventBus()


# ── Module-level API (the process-wide bus) ──────────────────────────


def subscribe(handler: EventHandler, event_types: Iterable[EventType] | None = None) -> None:
    bus.subscribe(handler, event_types)


def unsubscribe(handler: EventHandler) -> None:
    bus.unsubscribe(handler)


def clear_subscribers() -> None:
    bus.clear()


async def emit(event: SystemEvent) -> None:
    """Publish through the background worker."""
    await bus.publish(event)


async def emit_nowait(event: SystemEvent) -> None:
    """Deliver inline, for callers that already run in the background."""
    await bus.deliver(event)


async def start_event_system() -> None:
    await bus.start()


async def stop_event_system() -> None:
    await bus.stop()


async def log_event(event: SystemEvent) -> None:
    """Activity log subscriber: one line per event."""
    logger.info(
        "event=%s actor=%s role=%s source=%s keys=%s",
        event.event_type.value,
        event.actor_id,
        event.actor_role,
        event.source_module,
        ",".join(sorted(event.data)),
    )
