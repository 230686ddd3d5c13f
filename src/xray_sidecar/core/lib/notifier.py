"""Telegram notification delivery.

Messages are sent through the Bot API ``sendMessage`` method with HTML
parse mode. Delivery is best-effort: callers log ``DeliveryFailedError``
and carry on, nothing here retries.

Example:
    notifier = TelegramNotifier(timeout=5.0)
    notifier.deliver(NotificationTarget(chat_id="42", bot_token="123:abc"), "<b>hello</b>")
"""

from typing import Final

import requests
from loguru import logger

from xray_sidecar.core.config import DEFAULT_NOTIFY_TIMEOUT, NotificationTarget
from xray_sidecar.core.exceptions import DeliveryFailedError

TELEGRAM_API_URL: Final = "https://api.telegram.org"


class TelegramNotifier:
    """Send messages to Telegram chats.

    The bot token travels with each ``NotificationTarget``, so one notifier
    serves the periodic reporter and webhook replies alike. Every call makes
    its own request without a shared session, so the reporter thread and
    webhook background tasks can deliver concurrently.
    """

    def __init__(self, timeout: float = DEFAULT_NOTIFY_TIMEOUT, api_url: str = TELEGRAM_API_URL) -> None:
        """Initialize the notifier.

        Args:
            timeout: Timeout for each API call, in seconds
            api_url: Base URL of the Bot API
        """
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")

    def send_message_url(self, bot_token: str) -> str:
        return f"{self.api_url}/bot{bot_token}/sendMessage"

    def deliver(self, target: NotificationTarget, message: str) -> None:
        """Send ``message`` to the target chat with the target's bot token.

        The payload is JSON encoded, which escapes backslashes, quotes and
        line breaks in the message.

        Args:
            target: Chat and bot token to deliver with
            message: HTML formatted message text

        Raises:
            DeliveryFailedError: If the API is unreachable or does not answer 200
        """
        payload = {"chat_id": str(target.chat_id), "text": message, "parse_mode": "HTML"}
        url = self.send_message_url(target.bot_token)
        try:
            with requests.post(url, json=payload, timeout=self.timeout) as response:
                if response.status_code != requests.codes.ok:
                    raise DeliveryFailedError(
                        f"Telegram API error: {response.status_code} - {response.text}",
                        status_code=response.status_code,
                        body=response.text,
                    )
        except requests.RequestException as e:
            # Keep the token out of the message, it is part of the URL
            raise DeliveryFailedError(f"Telegram API request failed: {type(e).__name__}") from e

        logger.debug(f"Delivered {len(message)} characters to chat {target.chat_id}")
