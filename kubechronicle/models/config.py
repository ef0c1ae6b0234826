"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

from kubechronicle.models.alerting import AlertConfig
from kubechronicle.models.rules import BlockRules, IgnoreRules


@dataclass
class WebhookConfig:
    """HTTPS listener for AdmissionReview requests."""

    port: int = 8443
    tls_enabled: bool = True
    tls_cert_path: str = "/etc/webhook/certs/tls.crt"
    tls_key_path: str = "/etc/webhook/certs/tls.key"


@dataclass
class PolicyConfig:
    """Rule sets supplied at startup plus the hot-reload source."""

    ignore: IgnoreRules | None = None
    block: BlockRules | None = None
    patterns_path: str = "/etc/patterns"
    reload_interval_seconds: int = 30


@dataclass
class ProcessorConfig:
    """Async event processing."""

    queue_size: int = 1000


@dataclass
class StoreConfig:
    """Event storage."""

    enabled: bool = True
    max_events: int = 10000


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class KubeChronicleConfig:
    """Top-level kubechronicle configuration."""

    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    processor: ProcessorConfig = field(default_factory=ProcessorConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    alerting: AlertConfig | None = None
    log: LogConfig = field(default_factory=LogConfig)
