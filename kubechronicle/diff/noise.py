"""Exclusion of fields Kubernetes rewrites on its own.

These sub-trees change on nearly every write (server-side apply bookkeeping,
optimistic-concurrency counters, controller status) and would drown the
meaningful part of a diff.
"""

from __future__ import annotations

from typing import Any

from kubechronicle.diff.tree import NodeKind, child_path, kind_of

LAST_APPLIED_ANNOTATION_PATH = "/metadata/annotations/kubectl.kubernetes.io~1last-applied-configuration"

EXCLUDED_PATHS: frozenset[str] = frozenset(
    {
        "/metadata/managedFields",
        "/metadata/resourceVersion",
        "/metadata/generation",
        "/metadata/creationTimestamp",
        "/status",
        LAST_APPLIED_ANNOTATION_PATH,
    }
)

EXCLUDED_PREFIXES: tuple[str, ...] = ("/status/", "/metadata/managedFields/")


def is_noise(path: str) -> bool:
    """Return True if the RFC 6901 *path* points into an excluded sub-tree."""
    if not path.startswith("/"):
        path = "/" + path
    return path in EXCLUDED_PATHS or path.startswith(EXCLUDED_PREFIXES)


def exclude_noise(node: Any, path_prefix: str = "") -> Any:
    """Return a copy of *node* with every excluded sub-tree dropped.

    The input is never modified. Scalars are returned as-is.
    """
    kind = kind_of(node)
    if kind is NodeKind.MAP:
        filtered: dict[str, Any] = {}
        for key, value in node.items():
            path = child_path(path_prefix, key)
            if not is_noise(path):
                filtered[key] = exclude_noise(value, path)
        return filtered
    if kind is NodeKind.SEQUENCE:
        items: list[Any] = []
        for index, item in enumerate(node):
            path = child_path(path_prefix, index)
            if not is_noise(path):
                items.append(exclude_noise(item, path))
        return items
    return node
