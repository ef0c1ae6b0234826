"""Turns a decoded AdmissionRequest into a candidate ChangeEvent.

The candidate carries identity, actor, source tool and the payload (diff for
UPDATE, filtered snapshot for DELETE). Timestamp, ID and the allow/deny
outcome are assigned later by the handler.
"""

from __future__ import annotations

from typing import Any

import structlog

from kubechronicle.admission.envelope import AdmissionRequest
from kubechronicle.diff import compute_diff, prepare
from kubechronicle.models.events import Actor, ChangeEvent, Operation, PatchOperation, SourceTool

_log = structlog.get_logger(component="admission.decoder")

SERVICE_ACCOUNT_PREFIX = "system:serviceaccount"
REMOTE_ADDR_EXTRA = "authentication.kubernetes.io/remote-addr"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
_CONTROLLER_USERS = frozenset({"system:kube-controller-manager", "system:kube-scheduler"})
# EXEC events come from the audit path, never from an AdmissionReview.
_ADMISSION_OPERATIONS = {op.value: op for op in (Operation.CREATE, Operation.UPDATE, Operation.DELETE)}


class DecodeError(Exception):
    """Raised when an AdmissionRequest cannot be turned into a ChangeEvent."""


def decode_request(request: AdmissionRequest) -> ChangeEvent:
    """Build the candidate event for *request*.

    Raises:
        DecodeError: unsupported operation, or an object that is not a map.
    """
    operation = _ADMISSION_OPERATIONS.get(request.operation.upper())
    if operation is None:
        raise DecodeError(f"unsupported operation: {request.operation!r}")

    old_obj = _as_object(request.old_obj, "oldObject")
    new_obj = _as_object(request.obj, "object")
    resource_kind = request.kind.kind
    user = request.user_info

    name = request.name
    if operation == Operation.DELETE and not name and old_obj is not None:
        name = _metadata_name(old_obj)

    remote_addr = user.extra.get(REMOTE_ADDR_EXTRA) or []
    actor = Actor(
        username=user.username,
        groups=tuple(user.groups),
        service_account=user.username if user.username.startswith(SERVICE_ACCOUNT_PREFIX) else "",
        source_ip=remote_addr[0] if remote_addr else "",
    )

    diff: tuple[PatchOperation, ...] = ()
    snapshot: dict[str, Any] | None = None
    if operation == Operation.UPDATE and old_obj is not None and new_obj is not None:
        diff = _safe_diff(old_obj, new_obj, resource_kind)
    elif operation == Operation.DELETE and old_obj is not None:
        snapshot = prepare(old_obj, resource_kind)

    return ChangeEvent(
        operation=operation,
        resource_kind=resource_kind,
        namespace=request.namespace,
        name=name,
        actor=actor,
        source_tool=detect_source_tool(user.username, new_obj),
        diff=diff,
        object_snapshot=snapshot,
    )


def detect_source_tool(username: str, obj: dict[str, Any] | None) -> SourceTool:
    """Guess which tool issued the change from the user and object labels."""
    metadata = obj.get("metadata") if obj else None
    labels = metadata.get("labels") if isinstance(metadata, dict) else None
    if isinstance(labels, dict) and labels.get(MANAGED_BY_LABEL) == "Helm":
        return SourceTool.HELM

    if username in _CONTROLLER_USERS or username.startswith(SERVICE_ACCOUNT_PREFIX):
        return SourceTool.CONTROLLER
    if username and not username.startswith("system:"):
        return SourceTool.KUBECTL
    return SourceTool.UNKNOWN


def _as_object(value: Any, field_name: str) -> dict[str, Any] | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise DecodeError(f"{field_name} is {type(value).__name__}, expected an object")
    return value


def _metadata_name(obj: dict[str, Any]) -> str:
    metadata = obj.get("metadata")
    if isinstance(metadata, dict):
        name = metadata.get("name")
        if isinstance(name, str):
            return name
    return ""


def _safe_diff(old_obj: dict[str, Any], new_obj: dict[str, Any], resource_kind: str) -> tuple[PatchOperation, ...]:
    # The event is still recorded without a diff if computing one fails.
    try:
        return tuple(compute_diff(old_obj, new_obj, resource_kind))
    except Exception as exc:  # noqa: BLE001
        _log.error("diff_failed", resource_kind=resource_kind, error=str(exc))
        return ()
