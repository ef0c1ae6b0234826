"""Prometheus metrics for kubechronicle.

Every metric lives in the default registry and is exposed by the REST layer
on ``GET /metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

admission_requests_total = Counter(
    "kubechronicle_admission_requests_total",
    "Admission requests by terminal outcome.",
    ["outcome"],
)

admission_duration_seconds = Histogram(
    "kubechronicle_admission_duration_seconds",
    "Time spent deciding an admission request.",
    buckets=(0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

events_dropped_total = Counter(
    "kubechronicle_events_dropped_total",
    "Change events dropped before persistence.",
    ["reason"],
)

events_saved_total = Counter(
    "kubechronicle_events_saved_total",
    "Change events handed to the store.",
    ["success"],
)

notifications_total = Counter(
    "kubechronicle_notifications_total",
    "Notification deliveries by channel and result.",
    ["channel", "success"],
)

config_reloads_total = Counter(
    "kubechronicle_config_reloads_total",
    "Rule configuration reload attempts.",
    ["config", "result"],
)

queue_depth = Gauge(
    "kubechronicle_queue_depth",
    "Change events waiting in the processing queue.",
)
