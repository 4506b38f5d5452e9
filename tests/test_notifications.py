"""Tests for notification delivery.

Covers:
- TelegramNotifier: HTML message, accept button, failure reporting
- NotificationDispatcher: ticket lifecycle, timeout, crash isolation, shutdown
- Message formatters
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from telegram import InlineKeyboardMarkup
from telegram.constants import ParseMode
from telegram.error import TelegramError

from schoolbook.notifications import formatters
from schoolbook.notifications.dispatcher import NotificationDispatcher, TicketState
from schoolbook.notifications.telegram import NotificationResult, TelegramNotifier
from schoolbook.schemas.events import EventType

# ── Helpers ──────────────────────────────────────────────────────────


def _mock_bot() -> MagicMock:
    bot = MagicMock()
    bot.send_message = AsyncMock()
    bot.initialize = AsyncMock()
    bot.shutdown = AsyncMock()
    return bot


class _SlowNotifier:
    async def notify(self, contact_handle, message, action_url=None):
        await asyncio.sleep(10)
        return NotificationResult(delivered=True)


class _CrashingNotifier:
    async def notify(self, contact_handle, message, action_url=None):
        raise RuntimeError("boom")


class _InstantNotifier:
    async def notify(self, contact_handle, message, action_url=None):
        return NotificationResult(delivered=True)


# ── TelegramNotifier ─────────────────────────────────────────────────


class TestTelegramNotifier:
    @pytest.mark.asyncio()
    async def test_sends_html_with_accept_button(self):
        bot = _mock_bot()
        notifier = TelegramNotifier(bot=bot)

        result = await notifier.notify("1001", "<b>hi</b>", "https://school.example/accept/1")

        assert result == NotificationResult(delivered=True)
        kwargs = bot.send_message.call_args.kwargs
        assert kwargs["chat_id"] == "1001"
        assert kwargs["parse_mode"] == ParseMode.HTML
        markup = kwargs["reply_markup"]
        assert isinstance(markup, InlineKeyboardMarkup)
        assert markup.inline_keyboard[0][0].url == "https://school.example/accept/1"

    @pytest.mark.asyncio()
    async def test_no_button_without_url(self):
        bot = _mock_bot()
        await TelegramNotifier(bot=bot).notify("@mona", "hello")
        assert bot.send_message.call_args.kwargs["reply_markup"] is None

    @pytest.mark.asyncio()
    async def test_telegram_error_reported(self):
        bot = _mock_bot()
        bot.send_message.side_effect = TelegramError("Chat not found")

        result = await TelegramNotifier(bot=bot).notify("1001", "hello")

        assert result.delivered is False
        assert result.failure_reason == "Chat not found"

    @pytest.mark.asyncio()
    async def test_disabled_without_token(self):
        notifier = TelegramNotifier("")
        assert notifier.enabled is False
        result = await notifier.notify("1001", "hello")
        assert result.delivered is False
        assert result.failure_reason == "bot token not configured"

    @pytest.mark.asyncio()
    async def test_missing_handle(self):
        bot = _mock_bot()
        result = await TelegramNotifier(bot=bot).notify(None, "hello")
        assert result.delivered is False
        bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_start_and_stop(self):
        bot = _mock_bot()
        notifier = TelegramNotifier(bot=bot)
        await notifier.start()
        await notifier.stop()
        bot.initialize.assert_awaited_once()
        bot.shutdown.assert_awaited_once()


# ── Dispatcher ───────────────────────────────────────────────────────


class TestDispatcher:
    @pytest.mark.asyncio()
    async def test_ticket_starts_pending_and_settles(self):
        dispatcher = NotificationDispatcher(_InstantNotifier())
        ticket = dispatcher.dispatch("1001", "hello")

        assert ticket.state is TicketState.PENDING
        settled = await dispatcher.wait(ticket.id, timeout=1.0)
        assert settled.state is TicketState.DELIVERED
        assert settled.finished_at is not None
        assert dispatcher.get(ticket.id) is ticket

    @pytest.mark.asyncio()
    async def test_timeout_marks_failed(self):
        dispatcher = NotificationDispatcher(_SlowNotifier(), timeout=0.05)
        ticket = dispatcher.dispatch("1001", "hello")

        await dispatcher.wait(ticket.id, timeout=2.0)

        assert ticket.state is TicketState.FAILED
        assert ticket.failure_reason == "timed out after 0.05s"

    @pytest.mark.asyncio()
    async def test_notifier_crash_recorded(self):
        dispatcher = NotificationDispatcher(_CrashingNotifier())
        ticket = dispatcher.dispatch("1001", "hello")

        await dispatcher.wait(ticket.id, timeout=1.0)

        assert ticket.state is TicketState.FAILED
        assert ticket.failure_reason == "RuntimeError: boom"

    @pytest.mark.asyncio()
    async def test_shutdown_cancels_pending(self):
        dispatcher = NotificationDispatcher(_SlowNotifier(), timeout=30.0)
        started = dispatcher.dispatch("1001", "hello")
        await asyncio.sleep(0)
        not_started = dispatcher.dispatch("1002", "hello")

        assert dispatcher.pending_count == 2
        await dispatcher.shutdown()

        assert started.state is TicketState.CANCELLED
        assert not_started.state is TicketState.CANCELLED
        assert dispatcher.pending_count == 0

    @pytest.mark.asyncio()
    async def test_settlement_announced_on_event_bus(self):
        announce = AsyncMock()
        with patch("schoolbook.notifications.dispatcher.emit_nowait", announce):
            dispatcher = NotificationDispatcher(_CrashingNotifier())
            ticket = dispatcher.dispatch("1001", "hello", purpose="teacher_assignment")
            await dispatcher.wait(ticket.id, timeout=1.0)

        event = announce.await_args.args[0]
        assert event.event_type is EventType.NOTIFICATION_FAILED
        assert event.data["ticket_id"] == ticket.id
        assert event.data["purpose"] == "teacher_assignment"

    @pytest.mark.asyncio()
    async def test_unknown_ticket(self):
        dispatcher = NotificationDispatcher(_InstantNotifier())
        assert dispatcher.get("nope") is None
        assert await dispatcher.wait("nope") is None

    @pytest.mark.asyncio()
    async def test_settled_tickets_evicted_beyond_limit(self):
        dispatcher = NotificationDispatcher(_InstantNotifier(), max_tickets=2)
        first = dispatcher.dispatch("1", "a")
        await dispatcher.wait(first.id, timeout=1.0)
        second = dispatcher.dispatch("2", "b")
        await dispatcher.wait(second.id, timeout=1.0)
        third = dispatcher.dispatch("3", "c")

        assert dispatcher.get(first.id) is None
        assert dispatcher.get(second.id) is second
        assert dispatcher.get(third.id) is third


# ── Formatters ───────────────────────────────────────────────────────


class TestFormatters:
    def test_accept_url(self):
        assert formatters.accept_url("https://school.example/", 12) == (
            "https://school.example/teacher/accept-appointment/12"
        )

    def test_teacher_message_escapes_html(self):
        message = formatters.teacher_assigned_message("<amal>", datetime(2026, 3, 10, 14, 5), "a & b")
        assert "&lt;amal&gt;" in message
        assert "10/03/2026" in message
        assert "14:05" in message
        assert "a &amp; b" in message

    def test_booking_message_without_section(self):
        message = formatters.appointment_booked_message("amal", datetime(2026, 3, 10, 9, 0), None)
        assert "Section: -" in message

    def test_none_values(self):
        assert formatters.format_date(None) == "-"
        assert formatters.format_time(None) == "-"
