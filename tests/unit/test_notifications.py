"""Tests for notification routing and channel payloads."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from kubechronicle.models.alerting import AlertConfig
from kubechronicle.models.events import ChangeEvent, Operation, PatchOp, PatchOperation
from kubechronicle.notifications import (
    EmailNotificationChannel,
    NotificationChannel,
    NotificationRouter,
    SlackNotificationChannel,
    SMTPConfig,
    TelegramNotificationChannel,
    WebhookNotificationChannel,
    build_notification_router,
)
from kubechronicle.notifications.manager import summarize

from tests.factories import make_event


class _RecordingChannel(NotificationChannel):
    def __init__(self, name: str = "recording", result: bool = True, error: Exception | None = None) -> None:
        self._name = name
        self._result = result
        self._error = error
        self.sent: list[ChangeEvent] = []

    @property
    def channel_name(self) -> str:
        return self._name

    async def send(self, event: ChangeEvent) -> bool:
        self.sent.append(event)
        if self._error is not None:
            raise self._error
        return self._result


class _HangingChannel(NotificationChannel):
    @property
    def channel_name(self) -> str:
        return "hanging"

    async def send(self, event: ChangeEvent) -> bool:
        await asyncio.Event().wait()
        return True


def _capture(status: int = 200) -> tuple[list[httpx.Request], httpx.MockTransport]:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status, json={"ok": status < 300})

    return requests, httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


class TestNotificationRouter:
    async def test_fans_out_to_every_channel(self) -> None:
        first, second = _RecordingChannel("a"), _RecordingChannel("b")
        router = NotificationRouter([first, second])
        await asyncio.gather(*router.send(make_event()))
        assert len(first.sent) == 1
        assert len(second.sent) == 1

    async def test_operation_filter(self) -> None:
        channel = _RecordingChannel()
        router = NotificationRouter([channel], operations=["delete"])
        assert router.send(make_event(operation=Operation.UPDATE)) == []
        await asyncio.gather(*router.send(make_event(operation=Operation.DELETE)))
        assert [event.operation for event in channel.sent] == [Operation.DELETE]

    async def test_failing_channel_does_not_affect_others(self) -> None:
        broken = _RecordingChannel("broken", error=RuntimeError("down"))
        healthy = _RecordingChannel("healthy")
        router = NotificationRouter([broken, healthy])
        await asyncio.gather(*router.send(make_event()))
        assert len(healthy.sent) == 1

    async def test_send_does_not_wait_for_delivery(self) -> None:
        router = NotificationRouter([_HangingChannel()])
        tasks = router.send(make_event())
        assert len(tasks) == 1
        assert not tasks[0].done()
        await router.stop()
        assert tasks[0].cancelled()


class TestBuildRouter:
    def test_none_config(self) -> None:
        assert build_notification_router(None) is None

    def test_no_usable_channel(self) -> None:
        config = AlertConfig.model_validate({"slack": {"channel": "#ops"}, "telegram": {"bot_token": "t"}})
        assert build_notification_router(config) is None

    def test_all_channels(self) -> None:
        config = AlertConfig.model_validate(
            {
                "slack": {"webhook_url": "https://hooks.slack.com/services/T/B/X"},
                "telegram": {"bot_token": "123:abc", "chat_ids": ["42"]},
                "email": {"smtp_host": "smtp.example.com", "from": "kc@example.com", "to": ["ops@example.com"]},
                "webhook": {"url": "https://audit.example.com/events"},
                "operations": ["DELETE"],
            }
        )
        router = build_notification_router(config)
        assert router is not None
        assert [channel.channel_name for channel in router.channels] == ["slack", "telegram", "email", "webhook"]
        assert not router.should_alert(make_event(operation=Operation.CREATE))

    def test_email_without_sender_is_skipped(self) -> None:
        config = AlertConfig.model_validate(
            {"email": {"smtp_host": "smtp.example.com", "to": ["ops@example.com"]}}
        )
        assert build_notification_router(config) is None


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------


class TestWebhookChannel:
    async def test_posts_event_json(self) -> None:
        requests, transport = _capture()
        channel = WebhookNotificationChannel(
            "https://audit.example.com/events", headers={"Authorization": "Bearer t"}, transport=transport
        )
        assert await channel.send(make_event())
        assert requests[0].method == "POST"
        assert requests[0].headers["Authorization"] == "Bearer t"
        body = json.loads(requests[0].content)
        assert body["id"] == "UPDATE-Deployment-my-app-1"
        assert body["source"] == {"tool": "kubectl"}

    async def test_configured_method(self) -> None:
        requests, transport = _capture()
        channel = WebhookNotificationChannel("https://audit.example.com/events", method="put", transport=transport)
        assert await channel.send(make_event())
        assert requests[0].method == "PUT"

    async def test_non_2xx_is_failure(self) -> None:
        _, transport = _capture(status=503)
        channel = WebhookNotificationChannel("https://audit.example.com/events", transport=transport)
        assert not await channel.send(make_event())

    async def test_transport_error_is_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        channel = WebhookNotificationChannel("https://audit.example.com/events", transport=httpx.MockTransport(handler))
        assert not await channel.send(make_event())

    def test_empty_url_rejected(self) -> None:
        with pytest.raises(ValueError):
            WebhookNotificationChannel("")


class TestSlackChannel:
    async def test_posts_block_kit_payload(self) -> None:
        requests, transport = _capture()
        channel = SlackNotificationChannel("https://hooks.slack.com/x", channel="#ops", transport=transport)
        assert await channel.send(make_event())
        body = json.loads(requests[0].content)
        assert body["channel"] == "#ops"
        assert body["text"] == summarize(make_event())

    def test_blocked_event_mentions_pattern(self) -> None:
        channel = SlackNotificationChannel("https://hooks.slack.com/x")
        payload = channel.build_payload(make_event(allowed=False, block_pattern="prod-*"))
        assert any("prod-*" in json.dumps(block) for block in payload["blocks"])

    def test_long_diff_is_truncated(self) -> None:
        diff = tuple(PatchOperation(PatchOp.ADD, f"/metadata/labels/l{i}", "v") for i in range(15))
        payload = SlackNotificationChannel("https://hooks.slack.com/x").build_payload(make_event(diff=diff))
        text = payload["blocks"][-1]["text"]["text"]
        assert "/metadata/labels/l9" in text
        assert "/metadata/labels/l10" not in text
        assert "... 5 more" in text


class TestTelegramChannel:
    async def test_sends_to_every_chat(self) -> None:
        requests, transport = _capture()
        channel = TelegramNotificationChannel("123:abc", ["1", "2"], transport=transport)
        assert await channel.send(make_event())
        assert [json.loads(r.content)["chat_id"] for r in requests] == ["1", "2"]
        assert requests[0].url.path.endswith("/sendMessage")

    async def test_any_failed_chat_fails_delivery(self) -> None:
        _, transport = _capture(status=400)
        channel = TelegramNotificationChannel("123:abc", ["1"], transport=transport)
        assert not await channel.send(make_event())


class TestEmailChannel:
    def _channel(self, subject: str = "") -> EmailNotificationChannel:
        smtp = SMTPConfig(host="smtp.example.com", port=587, username="", password="", from_addr="kc@example.com")
        return EmailNotificationChannel(smtp, ["ops@example.com", "sre@example.com"], subject=subject)

    def test_message_headers(self) -> None:
        msg = self._channel().build_message(make_event())
        assert msg["Subject"] == "[kubechronicle] UPDATE Deployment/my-app"
        assert msg["From"] == "kc@example.com"
        assert msg["To"] == "ops@example.com, sre@example.com"

    def test_subject_template(self) -> None:
        msg = self._channel(subject="{operation} in {namespace}").build_message(make_event())
        assert msg["Subject"] == "UPDATE in default"

    def test_bad_template_used_verbatim(self) -> None:
        msg = self._channel(subject="{unknown}").build_message(make_event())
        assert msg["Subject"] == "{unknown}"

    def test_html_is_escaped(self) -> None:
        event = make_event(name="<script>")
        html_part = self._channel().build_message(event).get_payload()[1].get_payload(decode=True).decode()
        assert "<script>" not in html_part
        assert "&lt;script&gt;" in html_part

    def test_tls_defaults_by_port(self) -> None:
        assert SMTPConfig("h", 465, "", "", "a@b").use_tls
        assert not SMTPConfig("h", 587, "", "", "a@b").use_tls

    async def test_connection_error_is_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        channel = self._channel()

        def _refuse(event: ChangeEvent) -> None:
            raise ConnectionRefusedError("refused")

        monkeypatch.setattr(channel, "_send_sync", _refuse)
        assert not await channel.send(make_event())
