"""Notification routing for change events.

NotificationChannel  -- ABC every channel must implement.
NotificationRouter   -- Filters events by operation and fans each one out
                        to every channel as an independent task; one
                        channel failing or hanging never affects another
                        or the event processor.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Iterable

import structlog

from kubechronicle.models.events import ChangeEvent
from kubechronicle.observability.metrics import notifications_total

_log = structlog.get_logger(component="notifications.manager")

_VERBS = {"CREATE": "created", "UPDATE": "updated", "DELETE": "deleted", "EXEC": "exec into"}


class NotificationChannel(ABC):
    """Abstract base class for all notification channels.

    ``send`` should not raise; return ``False`` on delivery failure instead.
    """

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Channel identifier used in metrics and logs."""

    @abstractmethod
    async def send(self, event: ChangeEvent) -> bool:
        """Deliver *event* via this channel.

        Returns:
            True  -- message accepted by the remote endpoint.
            False -- delivery failed (already logged inside implementation).
        """


class NotificationRouter:
    """Fire-and-forget fan-out of change events.

    Args:
        channels:   Channels to deliver to.
        operations: Operations worth alerting on; empty means all.
    """

    def __init__(self, channels: list[NotificationChannel], operations: Iterable[str] = ()) -> None:
        self._channels = channels
        self._operations = frozenset(op.upper() for op in operations)
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    def should_alert(self, event: ChangeEvent) -> bool:
        if not self._operations:
            return True
        return event.operation.value in self._operations

    def send(self, event: ChangeEvent) -> list[asyncio.Task[None]]:
        """Schedule one delivery task per channel and return immediately.

        The returned tasks are only useful to callers that want to wait for
        delivery, such as tests.
        """
        if not self._channels or not self.should_alert(event):
            return []
        tasks = []
        for channel in self._channels:
            task = asyncio.create_task(self._send_one(channel, event), name=f"notify-{channel.channel_name}")
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return tasks

    async def stop(self) -> None:
        """Cancel deliveries still in flight."""
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._pending.clear()

    async def _send_one(self, channel: NotificationChannel, event: ChangeEvent) -> None:
        """Deliver to a single channel, recording metrics regardless of outcome."""
        try:
            success = await channel.send(event)
        except Exception as exc:  # noqa: BLE001
            _log.error(
                "notification_channel_unexpected_error",
                channel=channel.channel_name,
                event_id=event.event_id,
                error=str(exc),
            )
            success = False

        label = "true" if success else "false"
        notifications_total.labels(channel=channel.channel_name, success=label).inc()

        if success:
            _log.info(
                "notification_sent",
                channel=channel.channel_name,
                event_id=event.event_id,
                operation=event.operation.value,
                resource=f"{event.resource_kind}/{event.name}",
                namespace=event.namespace,
            )
        else:
            _log.warning("notification_failed", channel=channel.channel_name, event_id=event.event_id)


def summarize(event: ChangeEvent) -> str:
    """One-line human summary shared by the chat and email channels."""
    verb = "blocked" if not event.allowed else _VERBS.get(event.operation.value, event.operation.value.lower())
    location = f" in {event.namespace}" if event.namespace else ""
    actor = event.actor.username or "unknown user"
    return f"{event.resource_kind}/{event.name}{location} {verb} by {actor} (via {event.source_tool.value})"
