"""Tests for environment-driven configuration."""

from __future__ import annotations

import os

import pytest

from kubechronicle.config import load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("KUBECHRONICLE_"):
            monkeypatch.delenv(key)


class TestDefaults:
    def test_defaults(self) -> None:
        config = load_config()
        assert config.webhook.port == 8443
        assert config.webhook.tls_enabled
        assert config.webhook.tls_cert_path == "/etc/webhook/certs/tls.crt"
        assert config.policy.ignore is None
        assert config.policy.block is None
        assert config.policy.patterns_path == "/etc/patterns"
        assert config.policy.reload_interval_seconds == 30
        assert config.processor.queue_size == 1000
        assert config.store.enabled
        assert config.store.max_events == 10000
        assert config.alerting is None
        assert config.log.level == "info"


class TestOverrides:
    def test_scalar_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBECHRONICLE_WEBHOOK_PORT", "9443")
        monkeypatch.setenv("KUBECHRONICLE_TLS_ENABLED", "false")
        monkeypatch.setenv("KUBECHRONICLE_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("KUBECHRONICLE_STORE_ENABLED", "0")
        config = load_config()
        assert config.webhook.port == 9443
        assert not config.webhook.tls_enabled
        assert config.log.level == "debug"
        assert not config.store.enabled

    def test_reload_interval_is_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBECHRONICLE_RELOAD_INTERVAL", "1")
        assert load_config().policy.reload_interval_seconds == 5
        monkeypatch.setenv("KUBECHRONICLE_RELOAD_INTERVAL", "99999")
        assert load_config().policy.reload_interval_seconds == 3600

    def test_queue_size_is_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBECHRONICLE_QUEUE_SIZE", "0")
        assert load_config().processor.queue_size == 1

    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBECHRONICLE_LOG_LEVEL", "verbose")
        with pytest.raises(ValueError, match="Invalid log level"):
            load_config()

    def test_non_numeric_port(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBECHRONICLE_WEBHOOK_PORT", "https")
        with pytest.raises(ValueError):
            load_config()


class TestRuleSources:
    def test_inline_ignore_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(
            "KUBECHRONICLE_IGNORE_CONFIG",
            '{"namespace_patterns": ["kube-*"], "resource_kind_patterns": ["Lease"]}',
        )
        monkeypatch.setenv("KUBECHRONICLE_IGNORE_NAMESPACES", "ignored-because-inline-wins")
        ignore = load_config().policy.ignore
        assert ignore is not None
        assert ignore.namespace_patterns == ("kube-*",)
        assert ignore.resource_kind_patterns == ("Lease",)

    def test_comma_lists(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBECHRONICLE_IGNORE_NAMESPACES", "kube-system, kube-public,,")
        monkeypatch.setenv("KUBECHRONICLE_IGNORE_NAMES", "*-canary")
        ignore = load_config().policy.ignore
        assert ignore is not None
        assert ignore.namespace_patterns == ("kube-system", "kube-public")
        assert ignore.name_patterns == ("*-canary",)

    def test_inline_block_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(
            "KUBECHRONICLE_BLOCK_CONFIG",
            '{"namespace_patterns": ["production"], "operation_patterns": ["DELETE"], "message": "no"}',
        )
        block = load_config().policy.block
        assert block is not None
        assert block.operation_patterns == ("DELETE",)
        assert block.message == "no"

    def test_invalid_inline_json_is_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBECHRONICLE_BLOCK_CONFIG", "{not json")
        assert load_config().policy.block is None

    def test_alert_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(
            "KUBECHRONICLE_ALERT_CONFIG",
            '{"email": {"smtp_host": "smtp.example.com", "from": "kc@example.com", "to": ["ops@example.com"]},'
            ' "operations": ["DELETE"]}',
        )
        alerting = load_config().alerting
        assert alerting is not None
        assert alerting.email is not None
        assert alerting.email.from_addr == "kc@example.com"
        assert alerting.email.smtp_port == 587
        assert alerting.operations == ("DELETE",)
