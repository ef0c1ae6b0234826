"""Generic JSON webhook notification channel.

Sends the change event as JSON, using the same field names as the stored
record, so consumers need no kubechronicle-specific knowledge.
"""

from __future__ import annotations

import httpx
import structlog

from kubechronicle.models.events import ChangeEvent
from kubechronicle.notifications.manager import NotificationChannel

_log = structlog.get_logger(component="notifications.webhook")


class WebhookNotificationChannel(NotificationChannel):
    """Delivers events by sending a JSON payload to a configurable URL.

    Args:
        url:       Full endpoint URL.
        headers:   Optional extra headers (e.g. Authorization).
        method:    HTTP method, POST unless configured otherwise.
        timeout:   HTTP request timeout in seconds. Defaults to 10.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        method: str = "POST",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url:
            raise ValueError("Webhook url must not be empty")
        self._url = url
        self._headers = headers or {}
        self._method = (method or "POST").upper()
        self._timeout = timeout
        self._transport = transport

    @property
    def channel_name(self) -> str:
        return "webhook"

    async def send(self, event: ChangeEvent) -> bool:
        """Send *event* as JSON. Returns True on a 2xx response."""
        request_headers = {
            "Content-Type": "application/json",
            **self._headers,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.request(
                    self._method,
                    self._url,
                    json=event.to_dict(),
                    headers=request_headers,
                )
                if response.is_success:
                    return True
                _log.warning(
                    "webhook_non_2xx_response",
                    status_code=response.status_code,
                    body=response.text[:200],
                    event_id=event.event_id,
                )
                return False
        except httpx.TimeoutException:
            _log.warning("webhook_request_timeout", event_id=event.event_id, url=self._url)
            return False
        except httpx.HTTPError as exc:
            _log.warning("webhook_http_error", error=str(exc), event_id=event.event_id)
            return False
