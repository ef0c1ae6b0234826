"""Core data structures for kubechronicle."""

from kubechronicle.models.alerting import AlertConfig
from kubechronicle.models.config import KubeChronicleConfig
from kubechronicle.models.events import (
    Actor,
    ChangeEvent,
    Operation,
    PatchOp,
    PatchOperation,
    SourceTool,
    generate_event_id,
)
from kubechronicle.models.rules import (
    DEFAULT_BLOCK_MESSAGE,
    BlockRules,
    IgnoreRules,
    PolicySnapshot,
)

__all__ = [
    "DEFAULT_BLOCK_MESSAGE",
    "Actor",
    "AlertConfig",
    "BlockRules",
    "ChangeEvent",
    "IgnoreRules",
    "KubeChronicleConfig",
    "Operation",
    "PatchOp",
    "PatchOperation",
    "PolicySnapshot",
    "SourceTool",
    "generate_event_id",
]
