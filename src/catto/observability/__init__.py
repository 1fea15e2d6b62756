"""
CATTO Observability Layer

Tracing, metrics, and logging setup.
"""

from catto.observability.log_config import JsonFormatter, configure_logging
from catto.observability.metrics import (
    Counter,
    Gauge,
    Histogram,
    MetricsHelper,
    MetricsRegistry,
    get_registry,
    metrics,
    reset_metrics,
)
from catto.observability.tracer import (
    Span,
    SpanEvent,
    SpanKind,
    SpanStatus,
    Tracer,
    get_tracer,
    reset_tracers,
    tracer,
)

__all__ = [
    # Tracer
    "Tracer",
    "Span",
    "SpanEvent",
    "SpanKind",
    "SpanStatus",
    "get_tracer",
    "reset_tracers",
    "tracer",
    # Metrics
    "MetricsRegistry",
    "MetricsHelper",
    "Counter",
    "Gauge",
    "Histogram",
    "get_registry",
    "reset_metrics",
    "metrics",
    # Logging
    "configure_logging",
    "JsonFormatter",
]
