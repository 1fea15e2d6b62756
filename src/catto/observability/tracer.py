"""
CATTO Tracer

Structured tracing for pipeline nodes and external calls using an
OpenTelemetry-compatible span format. Spans are exported as JSONL when
debug mode is on.
"""

from __future__ import annotations

import json
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from catto.config import get_settings

# Finished spans kept in memory per tracer; the JSONL export keeps the rest
MAX_RETAINED_SPANS = 200


class SpanKind(str, Enum):
    """Span types for categorization."""

    INTERNAL = "internal"
    CLIENT = "client"  # External API calls


class SpanStatus(str, Enum):
    """Span completion status."""

    UNSET = "unset"
    OK = "ok"
    ERROR = "error"


@dataclass
class SpanEvent:
    """Event within a span."""

    name: str
    timestamp: float = field(default_factory=time.time)
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class Span:
    """
    Trace span representing a unit of work.

    Usable as a context manager; on exit it is handed back to the tracer that
    started it so the parent span becomes current again.
    """

    trace_id: str
    span_id: str
    name: str
    kind: SpanKind = SpanKind.INTERNAL
    parent_id: str | None = None
    start_time: float = field(default_factory=time.time)
    end_time: float | None = None
    status: SpanStatus = SpanStatus.UNSET
    status_message: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    events: list[SpanEvent] = field(default_factory=list)
    _tracer: Tracer | None = field(default=None, repr=False, compare=False)

    @property
    def duration_ms(self) -> float | None:
        """Duration in milliseconds."""
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time) * 1000

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def add_event(self, name: str, attributes: dict[str, Any] | None = None) -> None:
        self.events.append(SpanEvent(name=name, attributes=attributes or {}))

    def set_status(self, status: SpanStatus, message: str | None = None) -> None:
        self.status = status
        self.status_message = message

    def end(self) -> None:
        if self.end_time is None:
            self.end_time = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "parent_id": self.parent_id,
            "name": self.name,
            "kind": self.kind.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_ms": self.duration_ms,
            "status": self.status.value,
            "status_message": self.status_message,
            "attributes": self.attributes,
            "events": [
                {"name": e.name, "timestamp": e.timestamp, "attributes": e.attributes}
                for e in self.events
            ],
        }

    def __enter__(self) -> Span:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if exc_type is not None:
            self.set_status(SpanStatus.ERROR, str(exc_val))
            self.add_event("exception", {"type": exc_type.__name__, "message": str(exc_val)})
        if self._tracer is not None:
            self._tracer.end_span(self)
        else:
            if self.status == SpanStatus.UNSET:
                self.set_status(SpanStatus.OK)
            self.end()


class Tracer:
    """
    Tracer for structured operation tracking.

    Usage:
        tracer = get_tracer("catto.retrieval")

        with tracer.start_span("pubmed.search") as span:
            span.set_attribute("query", query)
            ids = await client.search(query, 100)
            span.set_attribute("result_count", len(ids))
    """

    def __init__(
        self,
        name: str,
        trace_id: str | None = None,
        export_path: Path | None = None,
        max_spans: int = MAX_RETAINED_SPANS,
    ) -> None:
        self._name = name
        self._trace_id = trace_id or self._generate_id()
        self._export_path = export_path
        self._spans: deque[Span] = deque(maxlen=max_spans)
        self._open: dict[str, Span] = {}
        self._current_span: Span | None = None

    @staticmethod
    def _generate_id() -> str:
        return uuid.uuid4().hex[:16]

    @property
    def trace_id(self) -> str:
        return self._trace_id

    @property
    def current_span(self) -> Span | None:
        return self._current_span

    def start_span(
        self,
        name: str,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: dict[str, Any] | None = None,
    ) -> Span:
        """Start a span and make it current until it is ended."""
        span = Span(
            trace_id=self._trace_id,
            span_id=self._generate_id(),
            parent_id=self._current_span.span_id if self._current_span else None,
            name=f"{self._name}.{name}",
            kind=kind,
            attributes=attributes or {},
            _tracer=self,
        )
        self._open[span.span_id] = span
        self._current_span = span
        return span

    def end_span(self, span: Span, status: SpanStatus = SpanStatus.OK) -> None:
        """End a span and restore its parent as the current span."""
        if span.status == SpanStatus.UNSET:
            span.set_status(status)
        span.end()
        self._spans.append(span)
        self._open.pop(span.span_id, None)
        if self._current_span is span:
            self._current_span = self._open.get(span.parent_id or "")
        if self._export_path:
            self._export_span(span)

    def _export_span(self, span: Span) -> None:
        assert self._export_path is not None
        self._export_path.mkdir(parents=True, exist_ok=True)
        day = datetime.now(timezone.utc).strftime("%Y%m%d")
        with open(self._export_path / f"trace_{self._trace_id}_{day}.jsonl", "a") as f:
            f.write(json.dumps(span.to_dict(), default=str) + "\n")

    def get_spans(self) -> list[Span]:
        """Most recent finished spans, oldest first."""
        return list(self._spans)


# Global tracer registry
_tracers: dict[str, Tracer] = {}


def get_tracer(name: str, trace_id: str | None = None) -> Tracer:
    """
    Get or create a tracer by name.

    In debug mode spans are exported to CATTO_TRACE_DIR.
    """
    key = f"{name}:{trace_id or 'default'}"
    if key not in _tracers:
        settings = get_settings()
        export_path = Path(settings.features.trace_dir) if settings.features.debug else None
        _tracers[key] = Tracer(name, trace_id, export_path)
    return _tracers[key]


def reset_tracers() -> None:
    """Reset all tracers (for testing)."""
    _tracers.clear()


# Modules use `from catto.observability.tracer import tracer`
tracer = get_tracer("catto")
