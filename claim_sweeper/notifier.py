"""
Telegram notifier - best-effort delivery of cycle reports.
"""
import logging

import httpx

from claim_sweeper.config import SweeperConfig
from claim_sweeper.exceptions import NotificationError

log = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"
MAX_MESSAGE_LEN = 4096  # Telegram sendMessage limit


class TelegramNotifier:
    """
    Sends messages through the Telegram Bot API.

    Delivery failures are logged and swallowed: a broken notification channel
    must never stop claiming. Without credentials, messages are only logged.
    """

    def __init__(self, config: SweeperConfig, client: httpx.AsyncClient = None):
        self.config = config
        self.client = client or httpx.AsyncClient(timeout=config.http_timeout_s)

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def notify(self, message: str) -> bool:
        """Send a message. Returns False if it was not delivered."""
        if not self.config.has_telegram:
            log.info(f"Notification (telegram disabled):\n{message}")
            return False

        try:
            await self._send(message[:MAX_MESSAGE_LEN])
        except NotificationError as e:
            log.warning(f"Failed to send Telegram notification: {e.message}")
            return False

        log.info("Telegram notification sent")
        return True

    async def _send(self, text: str):
        url = f"{TELEGRAM_API_URL}/bot{self.config.telegram_bot_token}/sendMessage"
        payload = {"chat_id": self.config.telegram_chat_id, "text": text}

        try:
            resp = await self.client.post(url, json=payload)
        except httpx.HTTPError as e:
            # Error text may contain the URL, which contains the bot token
            raise NotificationError(f"{e.__class__.__name__} talking to Telegram")

        if resp.status_code != 200:
            try:
                description = resp.json().get("description", resp.text)
            except ValueError:
                description = resp.text
            raise NotificationError(f"Telegram API {resp.status_code}: {description}")
