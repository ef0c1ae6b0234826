"""Hot-reloadable rule configuration.

``RuleStore`` holds the current ``PolicySnapshot``. Readers take the lock
only long enough to grab the reference; writers build a new snapshot and
swap it in, so a decision always sees one consistent pair of rule sets.

``ConfigReloader`` re-reads ``IGNORE_CONFIG`` and ``BLOCK_CONFIG`` from the
mounted patterns directory on a fixed interval. A missing or unparsable file
leaves the previous rule set in force.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import TypeVar

import structlog
from pydantic import ValidationError

from kubechronicle.models.rules import BlockRules, IgnoreRules, PolicySnapshot
from kubechronicle.observability.metrics import config_reloads_total

_log = structlog.get_logger(component="policy.reloader")

IGNORE_CONFIG_FILE = "IGNORE_CONFIG"
BLOCK_CONFIG_FILE = "BLOCK_CONFIG"

_RulesT = TypeVar("_RulesT", IgnoreRules, BlockRules)


class RuleStore:
    """Thread-safe holder of the active ignore/block rule sets."""

    def __init__(self, ignore: IgnoreRules | None = None, block: BlockRules | None = None) -> None:
        self._lock = threading.Lock()
        self._snapshot = PolicySnapshot(ignore=ignore, block=block)

    def snapshot(self) -> PolicySnapshot:
        with self._lock:
            return self._snapshot

    def replace(self, ignore: IgnoreRules | None = None, block: BlockRules | None = None) -> None:
        """Swap in new rule sets in one step. A ``None`` side keeps its current rules."""
        with self._lock:
            current = self._snapshot
            self._snapshot = PolicySnapshot(
                ignore=current.ignore if ignore is None else ignore,
                block=current.block if block is None else block,
            )

    def replace_ignore(self, rules: IgnoreRules) -> None:
        self.replace(ignore=rules)

    def replace_block(self, rules: BlockRules) -> None:
        self.replace(block=rules)


class ConfigReloader:
    """Periodically refreshes a ``RuleStore`` from mounted files.

    Args:
        store:     Rule store to update.
        directory: Mount path holding ``IGNORE_CONFIG`` and ``BLOCK_CONFIG``.
        interval:  Seconds between reload attempts.
    """

    def __init__(self, store: RuleStore, directory: str | Path, interval: float = 30.0) -> None:
        self._store = store
        self._directory = Path(directory)
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="config-reloader")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await asyncio.to_thread(self.reload)
            except Exception as exc:  # noqa: BLE001
                _log.exception("config_reload_failed", error=str(exc))

    def reload(self) -> bool:
        """Re-read both files once and swap them in together.

        Returns True if either rule set changed.
        """
        ignore = self._load(IGNORE_CONFIG_FILE, IgnoreRules)
        block = self._load(BLOCK_CONFIG_FILE, BlockRules)
        if ignore is None and block is None:
            return False

        self._store.replace(ignore=ignore, block=block)
        if ignore is not None:
            _log.info(
                "ignore_config_reloaded",
                namespace_patterns=list(ignore.namespace_patterns),
                name_patterns=list(ignore.name_patterns),
                resource_kind_patterns=list(ignore.resource_kind_patterns),
            )
        if block is not None:
            _log.info(
                "block_config_reloaded",
                namespace_patterns=list(block.namespace_patterns),
                name_patterns=list(block.name_patterns),
                resource_kind_patterns=list(block.resource_kind_patterns),
                operation_patterns=list(block.operation_patterns),
            )
        return True

    def _load(self, filename: str, model: type[_RulesT]) -> _RulesT | None:
        path = self._directory / filename
        try:
            data = path.read_bytes()
        except OSError as exc:
            # Absent when rules are supplied through the environment only.
            _log.debug("config_file_unreadable", path=str(path), error=str(exc))
            config_reloads_total.labels(config=filename, result="missing").inc()
            return None
        try:
            rules = model.model_validate_json(data.decode("utf-8").strip())
        except (UnicodeDecodeError, ValidationError) as exc:
            _log.warning("config_file_invalid", path=str(path), error=str(exc))
            config_reloads_total.labels(config=filename, result="invalid").inc()
            return None
        config_reloads_total.labels(config=filename, result="loaded").inc()
        return rules
