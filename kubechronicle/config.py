"""Configuration loading from environment variables."""

from __future__ import annotations

import os
from typing import TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from kubechronicle.models.alerting import AlertConfig
from kubechronicle.models.config import (
    KubeChronicleConfig,
    LogConfig,
    PolicyConfig,
    ProcessorConfig,
    StoreConfig,
    WebhookConfig,
)
from kubechronicle.models.rules import BlockRules, IgnoreRules

_log = structlog.get_logger(component="config")

_ModelT = TypeVar("_ModelT", bound=BaseModel)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBECHRONICLE_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_list(key: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in _env(key).split(",") if part.strip())


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _env_json(key: str, model: type[_ModelT]) -> _ModelT | None:
    """Parse an inline JSON document; invalid JSON is logged and ignored."""
    raw = _env(key).strip()
    if not raw:
        return None
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        _log.warning("inline_config_invalid", variable=f"KUBECHRONICLE_{key}", error=str(exc))
        return None


def _load_ignore_rules() -> IgnoreRules | None:
    if _env("IGNORE_CONFIG").strip():
        return _env_json("IGNORE_CONFIG", IgnoreRules)
    namespaces = _env_list("IGNORE_NAMESPACES")
    names = _env_list("IGNORE_NAMES")
    if not namespaces and not names:
        return None
    return IgnoreRules(namespace_patterns=namespaces, name_patterns=names)


def load_config() -> KubeChronicleConfig:
    """Load configuration from KUBECHRONICLE_* environment variables."""
    return KubeChronicleConfig(
        webhook=WebhookConfig(
            port=_env_int("WEBHOOK_PORT", 8443, min_val=1, max_val=65535),
            tls_enabled=_env_bool("TLS_ENABLED", True),
            tls_cert_path=_env("TLS_CERT_PATH", "/etc/webhook/certs/tls.crt"),
            tls_key_path=_env("TLS_KEY_PATH", "/etc/webhook/certs/tls.key"),
        ),
        policy=PolicyConfig(
            ignore=_load_ignore_rules(),
            block=_env_json("BLOCK_CONFIG", BlockRules),
            patterns_path=_env("PATTERNS_PATH", "/etc/patterns"),
            reload_interval_seconds=_env_int("RELOAD_INTERVAL", 30, min_val=5, max_val=3600),
        ),
        processor=ProcessorConfig(
            queue_size=_env_int("QUEUE_SIZE", 1000, min_val=1, max_val=100000),
        ),
        store=StoreConfig(
            enabled=_env_bool("STORE_ENABLED", True),
            max_events=_env_int("STORE_MAX_EVENTS", 10000, min_val=1),
        ),
        alerting=_env_json("ALERT_CONFIG", AlertConfig),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
