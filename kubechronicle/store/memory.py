"""Bounded in-process event store.

Keeps the most recent events in memory. Nothing survives a restart; it backs
local runs and tests when no external store is wired in.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any

from kubechronicle.models.events import ChangeEvent
from kubechronicle.store.base import EventStore, StoreError, event_to_record


class InMemoryEventStore(EventStore):
    """Holds up to ``max_events`` records, evicting the oldest first."""

    def __init__(self, max_events: int = 10000) -> None:
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._max_events = max_events
        self._records: OrderedDict[str, dict[str, Any]] = OrderedDict()
        self._closed = False

    async def save(self, event: ChangeEvent) -> None:
        if self._closed:
            raise StoreError("store is closed")
        if not event.event_id:
            raise StoreError("event has no ID")
        self._records[event.event_id] = event_to_record(event)
        self._records.move_to_end(event.event_id)
        while len(self._records) > self._max_events:
            self._records.popitem(last=False)

    async def close(self) -> None:
        self._closed = True

    def get(self, event_id: str) -> dict[str, Any] | None:
        return self._records.get(event_id)

    def records(self) -> list[dict[str, Any]]:
        """All records, oldest first."""
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)
