"""Prometheus metrics for interface provisioning.

Counts device attachments and times each provisioning phase. Metrics live in
the default registry; ``get_metrics`` renders them in exposition format for
whatever process embeds the provisioner.
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)

interface_attach_total = Counter(
    "domnet_interface_attach_total",
    "Interface device attachments",
    ["kind", "status"],
)

provision_phase_duration = Histogram(
    "domnet_provision_phase_seconds",
    "Duration of interface provisioning phases",
    ["phase", "status"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, float("inf")),
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
