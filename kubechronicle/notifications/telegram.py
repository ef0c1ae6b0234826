"""Telegram Bot API notification channel."""

from __future__ import annotations

import httpx
import structlog

from kubechronicle.models.events import ChangeEvent
from kubechronicle.notifications.manager import NotificationChannel, summarize

_log = structlog.get_logger(component="notifications.telegram")

_API_BASE = "https://api.telegram.org"


class TelegramNotificationChannel(NotificationChannel):
    """Sends a plain-text message to every configured chat.

    Delivery succeeds only if every chat accepted the message.
    """

    def __init__(
        self,
        bot_token: str,
        chat_ids: list[str],
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not bot_token:
            raise ValueError("Telegram bot_token must not be empty")
        if not chat_ids:
            raise ValueError("Telegram chat_ids must not be empty")
        self._url = f"{_API_BASE}/bot{bot_token}/sendMessage"
        self._chat_ids = list(chat_ids)
        self._timeout = timeout
        self._transport = transport

    @property
    def channel_name(self) -> str:
        return "telegram"

    async def send(self, event: ChangeEvent) -> bool:
        text = self._build_text(event)
        delivered = True
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for chat_id in self._chat_ids:
                try:
                    response = await client.post(self._url, json={"chat_id": chat_id, "text": text})
                except httpx.HTTPError as exc:
                    _log.warning("telegram_http_error", chat_id=chat_id, error=str(exc), event_id=event.event_id)
                    delivered = False
                    continue
                if not response.is_success:
                    _log.warning(
                        "telegram_non_2xx_response",
                        chat_id=chat_id,
                        status_code=response.status_code,
                        event_id=event.event_id,
                    )
                    delivered = False
        return delivered

    def _build_text(self, event: ChangeEvent) -> str:
        lines = [summarize(event), f"Event: {event.event_id}"]
        if not event.allowed:
            lines.append(f"Blocked by pattern: {event.block_pattern}")
        if event.diff:
            lines.append(f"Changes: {len(event.diff)}")
        return "\n".join(lines)
