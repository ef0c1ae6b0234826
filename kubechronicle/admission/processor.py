"""Bounded hand-off between the admission path and persistence.

The handler offers events without waiting; a single consumer task saves
each one to the store and forwards it to the notification router. Failures
are logged and the event is dropped: there is no retry and no back-pressure
towards the webhook.
"""

from __future__ import annotations

import asyncio

import structlog

from kubechronicle.models.events import ChangeEvent
from kubechronicle.notifications.manager import NotificationRouter
from kubechronicle.observability.metrics import events_dropped_total, events_saved_total, queue_depth
from kubechronicle.store.base import EventStore

_log = structlog.get_logger(component="admission.processor")

DEFAULT_QUEUE_SIZE = 1000


class EventProcessor:
    """Single-consumer queue feeding the store and notification router.

    Args:
        store:   Destination for every event; ``None`` logs events instead.
        router:  Optional notification router.
        maxsize: Queue capacity. Offers beyond it are dropped.
    """

    def __init__(
        self,
        store: EventStore | None = None,
        router: NotificationRouter | None = None,
        maxsize: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._store = store
        self._router = router
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=maxsize)
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def offer(self, event: ChangeEvent) -> bool:
        """Queue *event* without waiting. Returns False if it was dropped."""
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            _log.warning("event_queue_full", event_id=event.event_id, allowed=event.allowed)
            events_dropped_total.labels(reason="queue_full").inc()
            return False
        queue_depth.set(self._queue.qsize())
        return True

    async def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="event-processor")

    async def stop(self) -> None:
        """Cancel the consumer. Events still queued are abandoned."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        if self.pending:
            _log.info("event_processor_abandoned_events", count=self.pending)

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            queue_depth.set(self._queue.qsize())
            try:
                await self.process(event)
            finally:
                self._queue.task_done()

    async def process(self, event: ChangeEvent) -> None:
        """Persist and notify one event. Never raises."""
        if self._store is None:
            _log.info("change_event_unstored", **event.to_dict())
        else:
            try:
                await self._store.save(event)
            except Exception as exc:  # noqa: BLE001
                _log.error("change_event_save_failed", event_id=event.event_id, error=str(exc))
                events_saved_total.labels(success="false").inc()
            else:
                _log.info(
                    "change_event_saved",
                    event_id=event.event_id,
                    operation=event.operation.value,
                    resource_kind=event.resource_kind,
                    name=event.name,
                )
                events_saved_total.labels(success="true").inc()

        if self._router is not None:
            self._router.send(event)
