"""Structural diff between two versions of a Kubernetes object.

Produces RFC 6902 patch operations after noise exclusion and, for Secrets,
value hashing. Sequences are never diffed element by element: any change to
a list replaces the whole list at its path.
"""

from __future__ import annotations

from typing import Any

from kubechronicle.diff.noise import exclude_noise
from kubechronicle.diff.redaction import SENSITIVE_KIND, redact_sensitive
from kubechronicle.diff.tree import NodeKind, child_path, deep_equal, kind_of
from kubechronicle.models.events import PatchOp, PatchOperation


def prepare(tree: Any, resource_kind: str) -> Any:
    """Apply noise exclusion then, for Secrets, redaction."""
    filtered = exclude_noise(tree, "")
    if resource_kind == SENSITIVE_KIND:
        filtered = redact_sensitive(filtered)
    return filtered


def compute_diff(old: Any, new: Any, resource_kind: str) -> list[PatchOperation]:
    """Return the patch operations that turn *old* into *new*.

    Either side may be ``None``. Operations come back in traversal order:
    at each map level removals and changes follow the old map's key order and
    additions follow the new map's.
    """
    patches: list[PatchOperation] = []
    _diff_node(prepare(old, resource_kind), prepare(new, resource_kind), "", patches)
    return patches


def _diff_node(old: Any, new: Any, path: str, patches: list[PatchOperation]) -> None:
    old_kind = kind_of(old)
    new_kind = kind_of(new)

    if old_kind is NodeKind.ABSENT and new_kind is NodeKind.ABSENT:
        return
    if old_kind is NodeKind.ABSENT:
        patches.append(PatchOperation(PatchOp.ADD, path, new))
        return
    if new_kind is NodeKind.ABSENT:
        patches.append(PatchOperation(PatchOp.REMOVE, path))
        return
    if old_kind is not new_kind:
        patches.append(PatchOperation(PatchOp.REPLACE, path, new))
        return

    if old_kind is NodeKind.MAP:
        for key, old_value in old.items():
            key_path = child_path(path, key)
            if key not in new:
                patches.append(PatchOperation(PatchOp.REMOVE, key_path))
            elif not deep_equal(old_value, new[key]):
                _diff_node(old_value, new[key], key_path, patches)
        for key, new_value in new.items():
            if key not in old:
                patches.append(PatchOperation(PatchOp.ADD, child_path(path, key), new_value))
        return

    # Sequences and scalars are replaced whole.
    if not deep_equal(old, new):
        patches.append(PatchOperation(PatchOp.REPLACE, path, new))
