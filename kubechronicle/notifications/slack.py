"""Slack incoming-webhook notification channel."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from kubechronicle.models.events import ChangeEvent
from kubechronicle.notifications.manager import NotificationChannel, summarize

_log = structlog.get_logger(component="notifications.slack")

_MAX_PATCH_LINES = 10


class SlackNotificationChannel(NotificationChannel):
    """Posts a Block Kit message to a Slack incoming webhook.

    Args:
        webhook_url: Incoming webhook URL.
        channel:     Optional channel override.
        username:    Optional bot username override.
        timeout:     HTTP request timeout in seconds.
        transport:   Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        webhook_url: str,
        channel: str = "",
        username: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not webhook_url:
            raise ValueError("Slack webhook_url must not be empty")
        self._webhook_url = webhook_url
        self._channel = channel
        self._username = username
        self._timeout = timeout
        self._transport = transport

    @property
    def channel_name(self) -> str:
        return "slack"

    async def send(self, event: ChangeEvent) -> bool:
        payload = self.build_payload(event)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._webhook_url, json=payload)
                if response.is_success:
                    return True
                _log.warning(
                    "slack_non_2xx_response",
                    status_code=response.status_code,
                    body=response.text[:200],
                    event_id=event.event_id,
                )
                return False
        except httpx.HTTPError as exc:
            _log.warning("slack_http_error", error=str(exc), event_id=event.event_id)
            return False

    def build_payload(self, event: ChangeEvent) -> dict[str, Any]:
        summary = summarize(event)
        fields = [
            {"type": "mrkdwn", "text": f"*Operation*\n{event.operation.value}"},
            {"type": "mrkdwn", "text": f"*Kind*\n{event.resource_kind}"},
            {"type": "mrkdwn", "text": f"*Namespace*\n{event.namespace or '-'}"},
            {"type": "mrkdwn", "text": f"*User*\n{event.actor.username or '-'}"},
        ]
        blocks: list[dict[str, Any]] = [
            {"type": "section", "text": {"type": "mrkdwn", "text": f"*{summary}*"}},
            {"type": "section", "fields": fields},
        ]
        if not event.allowed:
            blocks.append(
                {"type": "context", "elements": [{"type": "mrkdwn", "text": f"Blocked by `{event.block_pattern}`"}]}
            )
        if event.diff:
            lines = [f"{patch.op.value} {patch.path}" for patch in event.diff[:_MAX_PATCH_LINES]]
            if len(event.diff) > _MAX_PATCH_LINES:
                lines.append(f"... {len(event.diff) - _MAX_PATCH_LINES} more")
            blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": "```" + "\n".join(lines) + "```"}})

        payload: dict[str, Any] = {"text": summary, "blocks": blocks}
        if self._channel:
            payload["channel"] = self._channel
        if self._username:
            payload["username"] = self._username
        return payload
