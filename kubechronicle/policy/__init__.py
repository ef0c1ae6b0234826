"""Rule matching, evaluation and hot reload.

Submodules:
    patterns  -- ``*`` wildcard matcher.
    evaluator -- Ignore/block decisions for a change event.
    reloader  -- Rule store and periodic reload from mounted files.
"""

from kubechronicle.policy.evaluator import BlockVerdict, should_block, should_ignore
from kubechronicle.policy.patterns import matches, matches_any
from kubechronicle.policy.reloader import ConfigReloader, RuleStore

__all__ = [
    "BlockVerdict",
    "ConfigReloader",
    "RuleStore",
    "matches",
    "matches_any",
    "should_block",
    "should_ignore",
]
