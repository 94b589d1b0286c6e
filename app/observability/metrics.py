"""Prometheus-style metrics collector for the history log. Thread-safe, in-memory."""

import threading
from typing import Any

EVENTS_RECORDED = "history_events_recorded"
IDEMPOTENT_REPLAYS = "history_idempotent_replays"
PAGES_SERVED = "history_pages_served"
QUERY_LATENCY_MS = "history_query_latency_ms"


class MetricsCollector:
    """
    In-memory Prometheus-style registry. Tracks counters and latency histograms.
    Thread-safe. Exposes increment, observe_latency, export_metrics.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, float] = {}
        # name -> {"name:tenant=..." -> value}
        self._counters_by_labels: dict[str, dict[str, float]] = {}
        self._histograms: dict[str, list[float]] = {}

    def increment(
        self,
        name: str,
        value: float = 1.0,
        *,
        tenant_id: str | None = None,
    ) -> None:
        """Increment a counter. Optional tenant_id for per-tenant series."""
        with self._lock:
            if tenant_id is not None:
                key = f"{name}:tenant={tenant_id}"
                series = self._counters_by_labels.setdefault(name, {})
                series[key] = series.get(key, 0) + value
            else:
                self._counters[name] = self._counters.get(name, 0) + value

    def observe_latency(self, name: str, latency_ms: float) -> None:
        """Record a latency observation (histogram-style)."""
        with self._lock:
            self._histograms.setdefault(name, []).append(latency_ms)

    def export_metrics(self) -> dict[str, Any]:
        """Export all metrics as a dict."""
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
