# src/notifications/telegram_notifier.py

"""Telegram Bot API notification channel for price alerts."""

import html
import logging
from typing import Protocol

from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.services.change_detector import PriceNotification

logger = logging.getLogger("price_watch.notifier")

PARSE_MODE = "HTML"


class NotificationChannel(Protocol):
    """Anything that can deliver a text message to a recipient handle."""

    def send(self, recipient: str, message: str) -> bool:
        """Deliver *message*; return False instead of raising on failure."""
        ...


def format_price_message(
    notification: PriceNotification,
    currency: str | None = None,
) -> str:
    """Render a price change as a Telegram HTML message.

    The title, currency and link are HTML-escaped so arbitrary product
    names cannot break the markup Telegram parses.
    """
    symbol = html.escape(currency or Settings.CURRENCY_SYMBOL)
    title = html.escape(notification.title)
    href = html.escape(notification.link, quote=True)
    return (
        "🔔 Price change alert!\n"
        f"👉 Product: <b>{title}</b>\n"
        "\n"
        f"💰 Regular price: <b>{notification.price:.2f}</b> {symbol}\n"
        f"💳 Card/discount price: <b>{notification.card_price:.2f}</b> {symbol}\n"
        "\n"
        f'🔗 <a href="{href}">Open product</a>'
    )


class TelegramNotifier:
    """Sends messages through the Telegram Bot API ``sendMessage`` call."""

    def __init__(
        self,
        token: str | None = None,
        api_url: str | None = None,
        timeout: int | None = None,
    ) -> None:
        self.settings = Settings()
        self._token = token or self.settings.TELEGRAM_BOT_TOKEN
        self._api_url = api_url or self.settings.TELEGRAM_API_URL
        self._timeout = timeout or self.settings.FETCH_TIMEOUT
        self.session = curl_requests.Session()

    def send(self, recipient: str, message: str) -> bool:
        """Send *message* to chat *recipient*; never raises."""
        if not self._token:
            logger.warning(
                "TELEGRAM_BOT_TOKEN is not set, dropping message for %s",
                recipient,
            )
            return False

        url = f"{self._api_url}/bot{self._token}/sendMessage"
        payload = {
            "chat_id": recipient,
            "text": message,
            "parse_mode": PARSE_MODE,
            "disable_web_page_preview": False,
        }
        try:
            resp = self.session.post(
                url, json=payload, timeout=self._timeout,
            )
        except Exception as exc:
            logger.warning(
                "Telegram send to %s failed: %s",
                recipient,
                exc,
                exc_info=True,
            )
            return False

        if resp.status_code != 200:
            logger.warning(
                "Telegram send to %s returned HTTP %d: %s",
                recipient,
                resp.status_code,
                resp.text[:200],
            )
            return False
        return True
