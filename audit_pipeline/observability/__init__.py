"""Observability layer: in-memory metrics. No external SaaS."""

from audit_pipeline.observability.metrics import MetricsCollector

__all__ = [
    "MetricsCollector",
]
