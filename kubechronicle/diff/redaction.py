"""One-way hashing of Secret payloads.

Secret ``data`` and ``stringData`` values are replaced by their SHA-256
digest before diffing or snapshotting. Both sides of a diff are hashed the
same way, so an unchanged value produces no patch and a changed one shows up
as a new digest without revealing either plaintext.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

import structlog

from kubechronicle.diff.tree import NodeKind, kind_of

_log = structlog.get_logger(component="diff.redaction")

SENSITIVE_KIND = "Secret"
SENSITIVE_KEYS: frozenset[str] = frozenset({"data", "stringData"})
HASH_PREFIX = "sha256:"


def hash_value(value: Any) -> str:
    """Return ``"sha256:<64 hex>"`` for a single leaf.

    Strings hash their UTF-8 bytes, bytes hash as-is and anything else hashes
    its canonical JSON encoding. A value that cannot be encoded hashes an
    error marker instead of raising.
    """
    if isinstance(value, str):
        data = value.encode("utf-8")
    elif isinstance(value, (bytes, bytearray)):
        data = bytes(value)
    else:
        try:
            data = json.dumps(value, sort_keys=True, separators=(",", ":"), allow_nan=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            _log.warning("secret_value_unencodable", value_type=type(value).__name__, error=str(exc))
            data = f"<hash-error:{exc}>".encode()
    return HASH_PREFIX + hashlib.sha256(data).hexdigest()


def redact_sensitive(node: Any) -> Any:
    """Return a copy of *node* with every ``data``/``stringData`` leaf hashed.

    Maps are walked recursively; the sensitive keys may appear at any depth.
    A sensitive key whose value is not a map is hashed whole.
    """
    if kind_of(node) is not NodeKind.MAP:
        return node
    result: dict[str, Any] = {}
    for key, value in node.items():
        if key in SENSITIVE_KEYS:
            result[key] = _hash_payload(value)
        else:
            result[key] = redact_sensitive(value)
    return result


def _hash_payload(payload: Any) -> Any:
    kind = kind_of(payload)
    if kind is NodeKind.ABSENT:
        return None
    if kind is NodeKind.MAP:
        return {key: hash_value(value) for key, value in payload.items()}
    return hash_value(payload)
