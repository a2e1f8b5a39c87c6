"""Prometheus-style metrics collector. Thread-safe, in-memory. No real Prometheus dependency."""

import threading
from typing import Any


class MetricsCollector:
    """
    In-memory registry for the audit pipeline: cache hits/misses, refresh outcomes,
    pages fetched, fetch latency. Exposes increment, observe_latency, export_metrics.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, float] = {}
        # name -> {"name:label=value" -> count}
        self._counters_by_labels: dict[str, dict[str, float]] = {}
        self._histograms: dict[str, list[float]] = {}

    def increment(
        self,
        name: str,
        value: float = 1.0,
        *,
        org_id: str | None = None,
        category: str | None = None,
    ) -> None:
        """Increment a counter. Optional org_id or category for dimensional metrics."""
        with self._lock:
            if org_id is not None:
                label = f"org={org_id}"
            elif category is not None:
                label = f"category={category}"
            else:
                self._counters[name] = self._counters.get(name, 0) + value
                return
            key = f"{name}:{label}"
            by_label = self._counters_by_labels.setdefault(name, {})
            by_label[key] = by_label.get(key, 0) + value

    def observe_latency(
        self,
        name: str,
        latency_ms: float,
        *,
        org_id: str | None = None,
    ) -> None:
        """Record a latency observation (histogram-style). Optional org label."""
        with self._lock:
            bucket = name if org_id is None else f"{name}:org={org_id}"
            self._histograms.setdefault(bucket, []).append(latency_ms)

    def counter(self, name: str) -> float:
        """Unlabelled counter plus every labelled series of the same name."""
        with self._lock:
            total = self._counters.get(name, 0)
            total += sum(self._counters_by_labels.get(name, {}).values())
            return total

    def export_metrics(self) -> dict[str, Any]:
        """Export all metrics as a dict (simulated Prometheus-style)."""
        with self._lock:
            return {
                "counters": dict(self._counters),
                "counters_by_labels": {
                    k: dict(v) for k, v in self._counters_by_labels.items()
                },
                "histograms": {
                    k: {
                        "count": len(v),
                        "sum": sum(v),
                        "values": list(v),
                    }
                    for k, v in self._histograms.items()
                },
            }

    def reset(self) -> None:
        """Reset all metrics (for tests)."""
        with self._lock:
            self._counters.clear()
            self._counters_by_labels.clear()
            self._histograms.clear()
