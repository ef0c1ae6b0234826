"""Ignore and block rule evaluation for change events."""

from __future__ import annotations

from typing import NamedTuple

from kubechronicle.models.events import ChangeEvent
from kubechronicle.models.rules import BlockRules, IgnoreRules
from kubechronicle.policy.patterns import matches, matches_any


class BlockVerdict(NamedTuple):
    """Outcome of ``should_block``. ``pattern`` is the rule that matched."""

    blocked: bool
    pattern: str = ""
    message: str = ""


NOT_BLOCKED = BlockVerdict(blocked=False)


def should_ignore(event: ChangeEvent, rules: IgnoreRules | None) -> bool:
    """Return True if the event matches any ignore pattern in any dimension."""
    if rules is None:
        return False
    return (
        matches_any(event.namespace, rules.namespace_patterns)
        or matches_any(event.name, rules.name_patterns)
        or matches_any(event.resource_kind, rules.resource_kind_patterns)
    )


def should_block(event: ChangeEvent, rules: BlockRules | None) -> BlockVerdict:
    """Decide whether *event* must be denied.

    A non-empty ``operation_patterns`` list gates the whole rule set: the
    event's operation must equal one entry, ignoring case. Past the gate,
    namespace, name and kind patterns are checked in that order and the
    first pattern that matches is returned verbatim. Empty patterns never
    block.
    """
    if rules is None:
        return NOT_BLOCKED

    if rules.operation_patterns:
        operation = str(event.operation).casefold()
        if not any(operation == op.casefold() for op in rules.operation_patterns):
            return NOT_BLOCKED

    dimensions = (
        (event.namespace, rules.namespace_patterns),
        (event.name, rules.name_patterns),
        (event.resource_kind, rules.resource_kind_patterns),
    )
    for value, patterns in dimensions:
        for pattern in patterns:
            if pattern and matches(value, pattern):
                return BlockVerdict(blocked=True, pattern=pattern, message=rules.effective_message)

    return NOT_BLOCKED
