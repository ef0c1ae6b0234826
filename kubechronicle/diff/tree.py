"""Node classification for decoded Kubernetes object trees.

Objects arrive as decoded JSON: dicts with string keys, lists and scalars.
Every algorithm in this package dispatches on ``kind_of`` instead of
re-checking Python types at each step.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class NodeKind(Enum):
    ABSENT = "absent"
    MAP = "map"
    SEQUENCE = "sequence"
    SCALAR = "scalar"


def kind_of(node: Any) -> NodeKind:
    """Classify *node*. ``None`` (JSON null or a missing value) is ABSENT."""
    if node is None:
        return NodeKind.ABSENT
    if isinstance(node, dict):
        return NodeKind.MAP
    if isinstance(node, (list, tuple)):
        return NodeKind.SEQUENCE
    return NodeKind.SCALAR


def deep_equal(left: Any, right: Any) -> bool:
    """Structural equality that keeps ``True`` distinct from ``1``."""
    left_kind = kind_of(left)
    if left_kind is not kind_of(right):
        return False
    if left_kind is NodeKind.ABSENT:
        return True
    if left_kind is NodeKind.MAP:
        if left.keys() != right.keys():
            return False
        return all(deep_equal(value, right[key]) for key, value in left.items())
    if left_kind is NodeKind.SEQUENCE:
        if len(left) != len(right):
            return False
        return all(deep_equal(a, b) for a, b in zip(left, right, strict=True))
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return bool(left == right)


def escape_pointer(key: str) -> str:
    """Escape one RFC 6901 reference token (``~`` -> ``~0``, ``/`` -> ``~1``)."""
    return key.replace("~", "~0").replace("/", "~1")


def child_path(path: str, key: str | int) -> str:
    return f"{path}/{escape_pointer(str(key))}"
