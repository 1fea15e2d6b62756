"""
CATTO Metrics

In-process counters and timings for runs, model calls and PubMed traffic,
served by the API's /metrics endpoint.
"""

import time
from collections import defaultdict
from threading import Lock
from typing import Any


def _labels_key(labels: dict[str, str] | None) -> str:
    if not labels:
        return ""
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))


class Counter:
    """
    Monotonically increasing counter.

    Usage:
        counter = Counter("catto_runs_total", "Analysis runs")
        counter.inc()
        counter.inc(labels={"status": "completed"})
    """

    def __init__(self, name: str, description: str = "") -> None:
        self.name = name
        self.description = description
        self._values: dict[str, float] = defaultdict(float)
        self._lock = Lock()

    def inc(self, value: float = 1.0, labels: dict[str, str] | None = None) -> None:
        if value < 0:
            raise ValueError("Counters can only increase")
        with self._lock:
            self._values[_labels_key(labels)] += value

    def get(self, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            return self._values.get(_labels_key(labels), 0.0)

    def total(self) -> float:
        """Sum across all label combinations."""
        with self._lock:
            return sum(self._values.values())

    def values(self) -> dict[str, float]:
        with self._lock:
            return dict(self._values)


class Gauge:
    """Value that can go up or down (e.g. runs in flight)."""

    def __init__(self, name: str, description: str = "") -> None:
        self.name = name
        self.description = description
        self._values: dict[str, float] = defaultdict(float)
        self._lock = Lock()

    def inc(self, value: float = 1.0, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._values[_labels_key(labels)] += value

    def dec(self, value: float = 1.0, labels: dict[str, str] | None = None) -> None:
        self.inc(-value, labels)

    def get(self, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            return self._values.get(_labels_key(labels), 0.0)

    def values(self) -> dict[str, float]:
        with self._lock:
            return dict(self._values)


class Histogram:
    """
    Count/sum summary of observed durations.

    Usage:
        with histogram.time():
            await provider.acomplete(messages)
    """

    def __init__(self, name: str, description: str = "") -> None:
        self.name = name
        self.description = description
        self._sums: dict[str, float] = defaultdict(float)
        self._counts: dict[str, int] = defaultdict(int)
        self._lock = Lock()

    def observe(self, value: float, labels: dict[str, str] | None = None) -> None:
        key = _labels_key(labels)
        with self._lock:
            self._sums[key] += value
            self._counts[key] += 1

    def time(self, labels: dict[str, str] | None = None) -> "_HistogramTimer":
        return _HistogramTimer(self, labels)

    def summary(self) -> dict[str, float]:
        with self._lock:
            count = sum(self._counts.values())
            total = sum(self._sums.values())
        return {"count": count, "sum": total, "mean": total / count if count else 0.0}


class _HistogramTimer:
    def __init__(self, histogram: Histogram, labels: dict[str, str] | None) -> None:
        self._histogram = histogram
        self._labels = labels
        self._start = 0.0

    def __enter__(self) -> "_HistogramTimer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self._histogram.observe(time.perf_counter() - self._start, self._labels)


class MetricsRegistry:
    """Registry for all metrics, keyed by name."""

    def __init__(self) -> None:
        self._metrics: dict[str, Counter | Gauge | Histogram] = {}
        self._lock = Lock()

    def _get_or_create(self, name: str, factory: type, description: str) -> Any:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = factory(name, description)
                self._metrics[name] = metric
            elif not isinstance(metric, factory):
                raise TypeError(f"Metric {name} already registered as {type(metric).__name__}")
            return metric

    def counter(self, name: str, description: str = "") -> Counter:
        return self._get_or_create(name, Counter, description)

    def gauge(self, name: str, description: str = "") -> Gauge:
        return self._get_or_create(name, Gauge, description)

    def histogram(self, name: str, description: str = "") -> Histogram:
        return self._get_or_create(name, Histogram, description)

    def items(self) -> list[tuple[str, Counter | Gauge | Histogram]]:
        with self._lock:
            return list(self._metrics.items())

    def get_all(self) -> dict[str, Any]:
        """Snapshot of every registered metric."""
        result: dict[str, Any] = {}
        for name, metric in self.items():
            if isinstance(metric, Histogram):
                result[name] = metric.summary()
            else:
                result[name] = metric.values()
        return result

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()


# Global metrics registry
_registry: MetricsRegistry = MetricsRegistry()


def get_registry() -> MetricsRegistry:
    return _registry


def reset_metrics() -> None:
    """Reset global metrics (for testing)."""
    _registry.reset()


class MetricsHelper:
    """
    Name-based access to the global registry.

    Used as the module-level `metrics` instance:
        metrics.counter("catto.pubmed.requests", labels={"endpoint": "esearch"})
    """

    def __init__(self, registry: MetricsRegistry | None = None) -> None:
        self._registry = registry or get_registry()

    def counter(self, name: str, value: float = 1.0, labels: dict[str, str] | None = None) -> None:
        self._registry.counter(name, f"Counter: {name}").inc(value, labels)

    def gauge(self, name: str) -> Gauge:
        return self._registry.gauge(name, f"Gauge: {name}")

    def timer(self, name: str, labels: dict[str, str] | None = None) -> _HistogramTimer:
        return self._registry.histogram(name, f"Timing: {name}").time(labels)

    def get_all(self) -> dict[str, Any]:
        """
        Flattened metrics for the /metrics endpoint.

        Counters and gauges report their total across labels; timings report
        count, sum and mean.
        """
        flat: dict[str, Any] = {}
        for name, metric in self._registry.items():
            if isinstance(metric, Histogram):
                flat[name] = metric.summary()
            else:
                flat[name] = sum(metric.values().values())
        return flat


# Modules use `from catto.observability.metrics import metrics`
metrics = MetricsHelper()
