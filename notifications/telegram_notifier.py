"""
Telegram delivery for admin notifications.
"""

import logging
from typing import Any, Dict, Optional

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError

from config import settings
from notifications.base import NotificationKind, Notifier
from notifications.templates import render_telegram
from utils.exceptions import NotificationFailure

logger = logging.getLogger(__name__)


class TelegramNotifier(Notifier):
    """Posts notifications to Telegram chats through a bot."""

    channel = "telegram"

    def __init__(self, bot: Bot):
        self.bot = bot

    @classmethod
    def from_settings(cls) -> Optional["TelegramNotifier"]:
        """Build a notifier when a bot token is configured, else None."""
        if not settings.bot_token:
            return None
        bot = Bot(
            token=settings.bot_token,
            default=DefaultBotProperties(parse_mode=ParseMode.HTML),
        )
        return cls(bot)

    async def notify(
        self, recipient: str, kind: NotificationKind, payload: Dict[str, Any]
    ) -> None:
        try:
            await self.bot.send_message(int(recipient), render_telegram(kind, payload))
        except (TelegramAPIError, ValueError) as e:
            raise NotificationFailure(
                f"Failed to send Telegram message to {recipient}: {e}"
            ) from e

        logger.info(f"Telegram notification '{kind.value}' sent to {recipient}")

    async def close(self) -> None:
        """Close the bot HTTP session."""
        await self.bot.session.close()
