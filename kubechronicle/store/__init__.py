"""Change event storage.

Submodules:
    base    -- EventStore interface, StoreError and the persisted record shape.
    memory  -- Bounded in-process store.
"""

from kubechronicle.store.base import EventStore, StoreError, event_to_record
from kubechronicle.store.memory import InMemoryEventStore

__all__ = ["EventStore", "InMemoryEventStore", "StoreError", "event_to_record"]
