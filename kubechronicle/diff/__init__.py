"""Diff and redaction engine for Kubernetes object trees.

Submodules:
    tree       -- Node classification, structural equality, JSON pointers.
    noise      -- Exclusion of server-managed fields.
    redaction  -- SHA-256 hashing of Secret payloads.
    engine     -- RFC 6902 patch generation.
"""

from kubechronicle.diff.engine import compute_diff, prepare
from kubechronicle.diff.noise import exclude_noise, is_noise
from kubechronicle.diff.redaction import hash_value, redact_sensitive

__all__ = [
    "compute_diff",
    "exclude_noise",
    "hash_value",
    "is_noise",
    "prepare",
    "redact_sensitive",
]
