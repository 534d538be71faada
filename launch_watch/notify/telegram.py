"""Telegram Bot API notifier."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

from ..config import TelegramSettings

RATE_LIMIT_MARKER = "Too Many Requests"


class NotificationError(RuntimeError):
    """A message could not be delivered."""

    def __init__(self, description: str, rate_limited: bool = False, status_code: int | None = None) -> None:
        super().__init__(description)
        self.description = description
        self.rate_limited = rate_limited
        self.status_code = status_code


class NotConfiguredError(NotificationError):
    """Bot token or chat id missing."""

    def __init__(self, description: str = "BOT_TOKEN or CHAT_ID not configured") -> None:
        super().__init__(description)


class Notifier(ABC):
    """Deliver a single text message; raise ``NotificationError`` on failure."""

    @abstractmethod
    def send(self, message: str) -> None: ...

    def close(self) -> None:
        return None


class LogNotifier(Notifier):
    """Dry-run notifier: records messages and writes them to the log."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("launch_watch.notifier")
        self.messages: list[str] = []

    def send(self, message: str) -> None:
        self.messages.append(message)
        self.logger.info("dry_run_message", length=len(message), preview=message[:80])


class TelegramNotifier(Notifier):
    """Send Markdown messages through ``sendMessage``."""

    def __init__(
        self,
        settings: TelegramSettings,
        client: httpx.Client | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        if not settings.configured:
            raise NotConfiguredError()
        self.settings = settings
        self.logger = logger or structlog.get_logger("launch_watch.notifier")
        self._client = client or httpx.Client(timeout=settings.timeout)

    def close(self) -> None:
        self._client.close()

    def _endpoint(self, method: str) -> str:
        return f"{self.settings.api_base.rstrip('/')}/bot{self.settings.bot_token}/{method}"

    def _call(self, method: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            if payload is None:
                response = self._client.get(self._endpoint(method))
            else:
                response = self._client.post(self._endpoint(method), json=payload)
        except httpx.HTTPError as exc:
            raise NotificationError(f"{method} request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code == 200 and body.get("ok"):
            return body.get("result") or {}

        description = str(body.get("description") or f"HTTP {response.status_code}")
        rate_limited = response.status_code == 429 or RATE_LIMIT_MARKER in description
        raise NotificationError(description, rate_limited=rate_limited, status_code=response.status_code)

    def send(self, message: str) -> None:
        payload = {
            "chat_id": self.settings.chat_id,
            "text": message,
            "parse_mode": self.settings.parse_mode,
            "disable_web_page_preview": self.settings.disable_preview,
        }
        self._call("sendMessage", payload)
        self.logger.debug("telegram_message_sent", length=len(message))

    def test_connection(self) -> str:
        """Call ``getMe`` and return the bot username."""

        result = self._call("getMe")
        username = str(result.get("username") or "")
        self.logger.info("telegram_connected", bot=username)
        return username


__all__ = [
    "LogNotifier",
    "NotConfiguredError",
    "NotificationError",
    "Notifier",
    "RATE_LIMIT_MARKER",
    "TelegramNotifier",
]
