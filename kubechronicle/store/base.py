"""Event storage interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from kubechronicle.models.events import ChangeEvent


class StoreError(Exception):
    """Raised by a store that could not persist an event."""


class EventStore(ABC):
    """Persists change events, one record per event ID."""

    @abstractmethod
    async def save(self, event: ChangeEvent) -> None:
        """Persist *event*.

        Raises:
            StoreError: the event was not stored.
        """

    async def close(self) -> None:  # noqa: B027
        """Release connections. The default has nothing to release."""


def event_to_record(event: ChangeEvent) -> dict[str, Any]:
    """Build the persisted shape of *event*.

    ``diff`` and ``object_snapshot`` are structured documents (``None`` when
    absent); ``allowed`` and ``block_pattern`` are plain scalar columns.
    """
    payload = event.to_dict()
    return {
        "id": event.event_id,
        "timestamp": payload["timestamp"],
        "operation": payload["operation"],
        "resource_kind": event.resource_kind,
        "namespace": event.namespace,
        "name": event.name,
        "actor": payload["actor"],
        "source": payload["source"],
        "diff": payload.get("diff"),
        "object_snapshot": payload.get("object_snapshot"),
        "allowed": event.allowed,
        "block_pattern": event.block_pattern,
    }
