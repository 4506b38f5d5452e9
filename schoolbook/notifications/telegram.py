"""Telegram notifier: the only code that talks to the Bot API.

``notify`` never raises for delivery problems: it reports them in the
returned ``NotificationResult`` so callers can record the outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.constants import ParseMode
from telegram.error import TelegramError

logger = logging.getLogger(__name__)

ACCEPT_BUTTON_TEXT = "Accept appointment"


@dataclass(frozen=True)
class NotificationResult:
    """Outcome of one delivery attempt."""

    delivered: bool
    failure_reason: str | None = None


class TelegramNotifier:
    """Sends HTML messages with an optional URL button through one bot."""

    def __init__(self, token: str = "", *, bot: Bot | None = None) -> None:
        if bot is None and token:
            bot = Bot(token=token)
        self._bot = bot
        self._initialized = False

    @property
    def enabled(self) -> bool:
        return self._bot is not None

    async def start(self) -> None:
        """Initialize the bot's HTTP client. No-op when disabled."""
        if self._bot is None:
            logger.warning("TELEGRAM_BOT_TOKEN not set, notifications disabled")
            return
        await self._bot.initialize()
        self._initialized = True
        logger.info("Telegram notifier started")

    async def stop(self) -> None:
        if self._bot is not None and self._initialized:
            await self._bot.shutdown()
            self._initialized = False
            logger.info("Telegram notifier stopped")

    async def notify(
        self,
        contact_handle: str | None,
        message: str,
        action_url: str | None = None,
    ) -> NotificationResult:
        """Deliver ``message`` to a chat id or ``@username``."""
        if self._bot is None:
            return NotificationResult(delivered=False, failure_reason="bot token not configured")
        if not contact_handle:
            return NotificationResult(delivered=False, failure_reason="recipient has no telegram contact")

        reply_markup = None
        if action_url:
            reply_markup = InlineKeyboardMarkup(
                [[InlineKeyboardButton(text=ACCEPT_BUTTON_TEXT, url=action_url)]]
            )

        try:
            await self._bot.send_message(
                chat_id=contact_handle,
                text=message,
                parse_mode=ParseMode.HTML,
                reply_markup=reply_markup,
            )
        except TelegramError as exc:
            logger.warning("Telegram delivery to %s failed: %s", contact_handle, exc)
            return NotificationResult(delivered=False, failure_reason=str(exc))

        logger.info("Telegram notification delivered to %s", contact_handle)
        return NotificationResult(delivered=True)
