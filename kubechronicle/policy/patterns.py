"""Glob-style matching for ignore and block rules.

Only ``*`` is special: it matches any run of characters, including none.
Every other character, ``?`` included, matches itself.
"""

from __future__ import annotations

from collections.abc import Iterable

WILDCARD = "*"


def matches(value: str, pattern: str) -> bool:
    """Return True if *value* matches *pattern*."""
    if WILDCARD not in pattern:
        return value == pattern
    return _match_wildcard(value, pattern)


def matches_any(value: str, patterns: Iterable[str]) -> bool:
    """Return True if *value* matches at least one pattern.

    An empty collection matches nothing.
    """
    return any(matches(value, pattern) for pattern in patterns)


def _match_wildcard(value: str, pattern: str) -> bool:
    v_idx = 0
    p_idx = 0
    v_len = len(value)
    p_len = len(pattern)

    while p_idx < p_len:
        if pattern[p_idx] == WILDCARD:
            while p_idx < p_len and pattern[p_idx] == WILDCARD:
                p_idx += 1
            if p_idx == p_len:
                return True
            rest = pattern[p_idx:]
            # Try every split point of the remaining input.
            return any(_match_wildcard(value[split:], rest) for split in range(v_idx, v_len + 1))
        if v_idx < v_len and value[v_idx] == pattern[p_idx]:
            v_idx += 1
            p_idx += 1
        else:
            return False

    return v_idx == v_len
