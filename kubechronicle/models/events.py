"""Change event data structures and enumerations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class Operation(StrEnum):
    """Kind of change observed by the webhook."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    EXEC = "EXEC"


class SourceTool(StrEnum):
    """Best-effort guess at what issued the change."""

    KUBECTL = "kubectl"
    HELM = "helm"
    CONTROLLER = "controller"
    UNKNOWN = "unknown"


class PatchOp(StrEnum):
    """RFC 6902 operation tags produced by the diff engine."""

    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


@dataclass(frozen=True)
class PatchOperation:
    """One RFC 6902 patch entry. ``value`` is unused for ``remove``."""

    op: PatchOp
    path: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        if self.op == PatchOp.REMOVE:
            return {"op": self.op.value, "path": self.path}
        return {"op": self.op.value, "path": self.path, "value": self.value}


@dataclass(frozen=True)
class Actor:
    """Who made the change."""

    username: str = ""
    groups: tuple[str, ...] = ()
    service_account: str = ""
    source_ip: str = ""


@dataclass(frozen=True)
class ChangeEvent:
    """Canonical record of one intercepted operation.

    Built once by the admission handler and never mutated afterwards; the
    handler stamps the candidate with ``dataclasses.replace`` when it assigns
    the timestamp and ID. UPDATE events carry ``diff``, DELETE events carry
    ``object_snapshot`` and CREATE carries neither.
    """

    operation: Operation
    resource_kind: str
    namespace: str
    name: str
    actor: Actor = field(default_factory=Actor)
    source_tool: SourceTool = SourceTool.UNKNOWN
    diff: tuple[PatchOperation, ...] = ()
    object_snapshot: dict[str, Any] | None = None
    allowed: bool = True
    block_pattern: str = ""
    event_id: str = ""
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if self.diff and self.object_snapshot is not None:
            raise ValueError("a change event carries either a diff or a snapshot, not both")
        if self.diff and self.operation != Operation.UPDATE:
            raise ValueError(f"diff is only recorded for UPDATE, got {self.operation}")
        if self.object_snapshot is not None and self.operation != Operation.DELETE:
            raise ValueError(f"object snapshot is only recorded for DELETE, got {self.operation}")
        if not self.allowed and not self.block_pattern:
            raise ValueError("a denied event must name the block pattern that matched")

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON shape shared by stores and webhooks."""
        payload: dict[str, Any] = {
            "id": self.event_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "operation": self.operation.value,
            "resource_kind": self.resource_kind,
            "namespace": self.namespace,
            "name": self.name,
            "actor": {
                "username": self.actor.username,
                "groups": list(self.actor.groups),
                "service_account": self.actor.service_account,
                "source_ip": self.actor.source_ip,
            },
            "source": {"tool": self.source_tool.value},
            "allowed": self.allowed,
        }
        if self.diff:
            payload["diff"] = [patch.to_dict() for patch in self.diff]
        if self.object_snapshot is not None:
            payload["object_snapshot"] = self.object_snapshot
        if self.block_pattern:
            payload["block_pattern"] = self.block_pattern
        return payload


def generate_event_id(operation: str, resource_kind: str, name: str, timestamp_ns: int) -> str:
    """Derive an event ID from its identity and nanosecond timestamp.

    Unique in practice only: two events for the same resource stamped in the
    same nanosecond would collide.
    """
    return f"{operation}-{resource_kind}-{name}-{timestamp_ns}"


def timestamp_from_ns(timestamp_ns: int) -> datetime:
    """Convert a nanosecond epoch timestamp to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp_ns / 1_000_000_000, tz=UTC)
