"""Background notification dispatch with queryable tickets.

A transition never waits on Telegram: ``dispatch`` schedules delivery as an
asyncio task and returns a ticket immediately. The ticket moves from
``pending`` to ``delivered``, ``failed`` or ``cancelled`` and can be looked up
by id or awaited.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

from schoolbook.notifications.telegram import NotificationResult
from schoolbook.realtime.events import emit_nowait
from schoolbook.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def notify(
        self, contact_handle: str | None, message: str, action_url: str | None = None
    ) -> NotificationResult: ...


class TicketState(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class NotificationTicket:
    """Handle on one background delivery."""

    recipient: str | None
    purpose: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: TicketState = TicketState.PENDING
    failure_reason: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    @property
    def done(self) -> bool:
        return self.state is not TicketState.PENDING

    def settle(self, state: TicketState, failure_reason: str | None = None) -> None:
        self.state = state
        self.failure_reason = failure_reason
        self.finished_at = datetime.now(timezone.utc)


class NotificationDispatcher:
    """Runs notifier calls as tasks bounded by ``timeout`` seconds."""

    def __init__(self, notifier: Notifier, *, timeout: float = 10.0, max_tickets: int = 1000) -> None:
        self._notifier = notifier
        self._timeout = timeout
        self._max_tickets = max_tickets
        self._tickets: OrderedDict[str, NotificationTicket] = OrderedDict()
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def dispatch(
        self,
        contact_handle: str | None,
        message: str,
        action_url: str | None = None,
        *,
        purpose: str = "notification",
    ) -> NotificationTicket:
        """Schedule delivery and return its ticket. Must be called inside a running loop."""
        ticket = NotificationTicket(recipient=contact_handle, purpose=purpose)
        self._remember(ticket)
        task = asyncio.create_task(self._deliver(ticket, message, action_url))
        self._tasks[ticket.id] = task
        task.add_done_callback(lambda _t, ticket_id=ticket.id: self._tasks.pop(ticket_id, None))
        logger.debug("Dispatched %s ticket=%s to %s", purpose, ticket.id, contact_handle)
        return ticket

    def get(self, ticket_id: str) -> NotificationTicket | None:
        return self._tickets.get(ticket_id)

    async def wait(self, ticket_id: str, timeout: float | None = None) -> NotificationTicket | None:
        """Wait for a ticket to settle. Returns None for unknown ids."""
        ticket = self._tickets.get(ticket_id)
        if ticket is None:
            return None
        task = self._tasks.get(ticket_id)
        if task is not None and not task.done():
            await asyncio.wait({task}, timeout=timeout)
        return ticket

    @property
    def pending_count(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    async def shutdown(self) -> None:
        """Cancel every delivery still in flight."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        # Tasks cancelled before their first step never reach their handler
        for ticket in self._tickets.values():
            if not ticket.done:
                ticket.settle(TicketState.CANCELLED, "cancelled")
        logger.info("Notification dispatcher stopped (%d pending cancelled)", len(tasks))

    # ── Internals ────────────────────────────────────────────────────

    def _remember(self, ticket: NotificationTicket) -> None:
        self._tickets[ticket.id] = ticket
        while len(self._tickets) > self._max_tickets:
            oldest_id, oldest = next(iter(self._tickets.items()))
            if not oldest.done:
                break
            del self._tickets[oldest_id]

    async def _deliver(self, ticket: NotificationTicket, message: str, action_url: str | None) -> None:
        try:
            result = await asyncio.wait_for(
                self._notifier.notify(ticket.recipient, message, action_url),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            ticket.settle(TicketState.FAILED, f"timed out after {self._timeout:g}s")
            logger.warning("Notification %s timed out", ticket.id)
        except asyncio.CancelledError:
            ticket.settle(TicketState.CANCELLED, "cancelled")
            raise
        except Exception as exc:
            # Background task: the failure is recorded on the ticket
            ticket.settle(TicketState.FAILED, f"{type(exc).__name__}: {exc}")
            logger.exception("Notification %s raised", ticket.id)
        else:
            if result.delivered:
                ticket.settle(TicketState.DELIVERED)
            else:
                ticket.settle(TicketState.FAILED, result.failure_reason or "not delivered")
            logger.info("Notification %s (%s) %s", ticket.id, ticket.purpose, ticket.state.value)

        await emit_nowait(SystemEvent(
            event_type=(
                EventType.NOTIFICATION_DELIVERED
                if ticket.state is TicketState.DELIVERED
                else EventType.NOTIFICATION_FAILED
            ),
            data={
                "ticket_id": ticket.id,
                "purpose": ticket.purpose,
                "recipient": ticket.recipient,
                "failure_reason": ticket.failure_reason,
            },
            source_module="notifications.dispatcher",
        ))
