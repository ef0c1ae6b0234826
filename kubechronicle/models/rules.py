"""Ignore and block rule sets.

Both documents arrive as JSON (inline from the environment or from the
mounted patterns directory) and are validated with pydantic. Instances are
frozen: a configuration reload builds new objects and swaps the whole
``PolicySnapshot``.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_BLOCK_MESSAGE = "Resource blocked by kubechronicle policy"


class IgnoreRules(BaseModel):
    """Events matching any pattern here are allowed but not recorded.

    An empty list leaves that dimension unconstrained; the rule set matches
    when any one dimension matches.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    namespace_patterns: tuple[str, ...] = ()
    name_patterns: tuple[str, ...] = ()
    resource_kind_patterns: tuple[str, ...] = ()

    @field_validator("namespace_patterns", "name_patterns", "resource_kind_patterns", mode="before")
    @classmethod
    def _null_as_empty(cls, value: object) -> object:
        return () if value is None else value


class BlockRules(IgnoreRules):
    """Events matching these patterns are denied.

    ``operation_patterns`` gates the rule set: when non-empty, only the listed
    operations (compared case-insensitively) can be blocked at all.
    """

    operation_patterns: tuple[str, ...] = ()
    message: str = ""

    @field_validator("operation_patterns", mode="before")
    @classmethod
    def _null_operations(cls, value: object) -> object:
        return () if value is None else value

    @field_validator("message", mode="before")
    @classmethod
    def _null_message(cls, value: object) -> object:
        return "" if value is None else value

    @property
    def effective_message(self) -> str:
        return self.message or DEFAULT_BLOCK_MESSAGE


@dataclass(frozen=True)
class PolicySnapshot:
    """The pair of rule sets a single admission decision reads."""

    ignore: IgnoreRules | None = None
    block: BlockRules | None = None
