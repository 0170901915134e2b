"""Per-invocation capture of tool and sub-agent names from process-wide spans.

The bus is a span processor installed once on the tracer provider. An
invocation opens a root span first and registers it with ``begin_capture``;
from then on, every span that ends in the same trace (i.e. anything emitted
while the invocation's context is active, including spans from libraries it
calls) is inspected for a tool or agent name. Spans from other traces are
ignored, which keeps concurrent invocations isolated from one another.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Optional

from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.sdk.trace import ReadableSpan, Span, SpanProcessor

logger = logging.getLogger(__name__)

# Attribute keys checked in order; the first non-empty string wins.
# Version 1 covers the hosted agents client spans and the gen_ai semantic conventions.
EXTRACTION_SCHEMA_VERSION = 1
TOOL_NAME_KEYS: tuple[str, ...] = ("tool.name", "function.name", "gen_ai.tool.name")
AGENT_NAME_KEYS: tuple[str, ...] = ("agent.name", "assistant.name", "gen_ai.agent.name")


def extract_name(attributes: Optional[Mapping[str, Any]], keys: Iterable[str]) -> str | None:
    if not attributes:
        return None
    for key in keys:
        value = attributes.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class UniqueNames:
    """Insertion-ordered set of names."""

    def __init__(self, names: Iterable[str] = ()):
        self._names: dict[str, None] = {}
        for name in names:
            self.add(name)

    def add(self, name: str) -> bool:
        if name in self._names:
            return False
        self._names[name] = None
        return True

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def to_list(self) -> list[str]:
        return list(self._names)


@dataclass(eq=False)
class CaptureHandle:
    trace_id: int
    root_span_id: int
    tools: UniqueNames = field(default_factory=UniqueNames)
    agents: UniqueNames = field(default_factory=UniqueNames)
    closed: bool = False

    def observe(self, attributes: Optional[Mapping[str, Any]]) -> None:
        tool_name = extract_name(attributes, TOOL_NAME_KEYS)
        if tool_name:
            self.tools.add(tool_name)
        agent_name = extract_name(attributes, AGENT_NAME_KEYS)
        if agent_name:
            self.agents.add(agent_name)


class CaptureBus(SpanProcessor):
    """Routes finished spans to the capture handle registered for their trace."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: dict[int, list[CaptureHandle]] = {}

    def begin_capture(self, root_span: trace.Span) -> CaptureHandle:
        span_context = root_span.get_span_context()
        handle = CaptureHandle(trace_id=span_context.trace_id, root_span_id=span_context.span_id)
        if not span_context.is_valid:
            # Non-recording span (tracing not initialized): nothing can correlate to it
            logger.debug("Capture started without a valid span context; nothing will be captured")
            return handle

        with self._lock:
            self._active.setdefault(handle.trace_id, []).append(handle)
        return handle

    def end_capture(self, handle: CaptureHandle) -> tuple[list[str], list[str]]:
        with self._lock:
            handles = self._active.get(handle.trace_id)
            if handles is not None:
                if handle in handles:
                    handles.remove(handle)
                if not handles:
                    del self._active[handle.trace_id]
            handle.closed = True
            return handle.tools.to_list(), handle.agents.to_list()

    def active_count(self) -> int:
        with self._lock:
            return sum(len(handles) for handles in self._active.values())

    def on_start(self, span: Span, parent_context: Optional[otel_context.Context] = None) -> None:
        pass

    def on_end(self, span: ReadableSpan) -> None:
        span_context = span.context
        if span_context is None:
            return

        with self._lock:
            handles = self._active.get(span_context.trace_id)
            if not handles:
                return
            for handle in handles:
                if span_context.span_id == handle.root_span_id:
                    continue
                handle.observe(span.attributes)
                for event in span.events:
                    handle.observe(event.attributes)

    def shutdown(self) -> None:
        with self._lock:
            self._active.clear()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True


_bus: CaptureBus | None = None


def get_capture_bus() -> CaptureBus:
    """Get or create the process-wide capture bus."""
    global _bus

    if _bus is None:
        _bus = CaptureBus()

    return _bus
