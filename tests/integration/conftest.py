"""Shared fixtures for kubechronicle integration tests.

Provides wired components (rule store, event store, processor, handler) so
integration tests can exercise the webhook pipeline end to end without a
Kubernetes API server.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from kubechronicle.admission.handler import AdmissionHandler
from kubechronicle.admission.processor import EventProcessor
from kubechronicle.models.config import KubeChronicleConfig, PolicyConfig, StoreConfig, WebhookConfig
from kubechronicle.models.rules import BlockRules, IgnoreRules
from kubechronicle.policy.reloader import RuleStore
from kubechronicle.store.memory import InMemoryEventStore

from tests.factories import FIXED_NS


@pytest.fixture
def rules() -> RuleStore:
    return RuleStore(
        ignore=IgnoreRules(namespace_patterns=("kube-*",)),
        block=BlockRules(
            namespace_patterns=("production",),
            operation_patterns=("DELETE",),
            message="Deletions in production are not allowed",
        ),
    )


@pytest.fixture
def event_store() -> InMemoryEventStore:
    return InMemoryEventStore(max_events=100)


@pytest.fixture
async def processor(event_store: InMemoryEventStore) -> AsyncIterator[EventProcessor]:
    proc = EventProcessor(store=event_store, maxsize=10)
    await proc.start()
    try:
        yield proc
    finally:
        await proc.stop()


@pytest.fixture
def handler(rules: RuleStore, processor: EventProcessor) -> AdmissionHandler:
    return AdmissionHandler(rules, sink=processor, clock=lambda: FIXED_NS)


@pytest.fixture
def patterns_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "patterns"
    directory.mkdir()
    return directory


@pytest.fixture
def app_config(patterns_dir: Path) -> KubeChronicleConfig:
    return KubeChronicleConfig(
        webhook=WebhookConfig(tls_enabled=False),
        policy=PolicyConfig(
            ignore=IgnoreRules(namespace_patterns=("kube-*",)),
            patterns_path=str(patterns_dir),
            reload_interval_seconds=3600,
        ),
        store=StoreConfig(max_events=100),
    )
