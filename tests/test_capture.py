"""Tests for the span capture bus."""

from __future__ import annotations

from opentelemetry import trace

from agent_council_service.instrumentation.capture import (
    AGENT_NAME_KEYS,
    TOOL_NAME_KEYS,
    CaptureBus,
    UniqueNames,
    extract_name,
)


class TestExtractName:
    """Tests for extract_name."""

    def test_first_key_wins(self):
        attributes = {"gen_ai.tool.name": "fallback", "tool.name": "primary"}
        assert extract_name(attributes, TOOL_NAME_KEYS) == "primary"

    def test_skips_blank_and_non_string_values(self):
        attributes = {"tool.name": "  ", "function.name": 3, "gen_ai.tool.name": "search"}
        assert extract_name(attributes, TOOL_NAME_KEYS) == "search"

    def test_no_attributes(self):
        assert extract_name(None, AGENT_NAME_KEYS) is None
        assert extract_name({"other": "x"}, AGENT_NAME_KEYS) is None


class TestUniqueNames:
    """Tests for UniqueNames."""

    def test_keeps_first_insertion_order(self):
        names = UniqueNames(["b", "a", "b", "c", "a"])
        assert names.to_list() == ["b", "a", "c"]
        assert len(names) == 3

    def test_add_reports_novelty(self):
        names = UniqueNames()
        assert names.add("search") is True
        assert names.add("search") is False
        assert "search" in names


class TestCaptureBus:
    """Tests for CaptureBus routing."""

    def test_captures_child_span_attributes(self, tracing):
        with tracing.tracer.start_as_current_span("root") as root:
            handle = tracing.bus.begin_capture(root)
            with tracing.tracer.start_as_current_span("child", attributes={"tool.name": "search"}):
                pass
            with tracing.tracer.start_as_current_span("sub", attributes={"gen_ai.agent.name": "market_analyst"}):
                pass
            tools, agents = tracing.bus.end_capture(handle)

        assert tools == ["search"]
        assert agents == ["market_analyst"]
        assert handle.closed

    def test_captures_span_event_attributes(self, tracing):
        with tracing.tracer.start_as_current_span("root") as root:
            handle = tracing.bus.begin_capture(root)
            with tracing.tracer.start_as_current_span("child") as child:
                child.add_event("tool_call", attributes={"function.name": "get_weather"})
            tools, _ = tracing.bus.end_capture(handle)

        assert tools == ["get_weather"]

    def test_ignores_root_span(self, tracing):
        with tracing.tracer.start_as_current_span("root", attributes={"agent.name": "self"}) as root:
            handle = tracing.bus.begin_capture(root)
        # Root ended while the capture was still open
        tools, agents = tracing.bus.end_capture(handle)

        assert tools == []
        assert agents == []

    def test_ignores_other_traces(self, tracing):
        with tracing.tracer.start_as_current_span("root") as root:
            handle = tracing.bus.begin_capture(root)

        # A separate trace, not a child of the captured root
        with tracing.tracer.start_as_current_span("unrelated", context=trace.set_span_in_context(trace.INVALID_SPAN), attributes={"tool.name": "other"}):
            pass

        tools, _ = tracing.bus.end_capture(handle)
        assert tools == []

    def test_spans_after_end_are_dropped(self, tracing):
        with tracing.tracer.start_as_current_span("root") as root:
            handle = tracing.bus.begin_capture(root)
            tracing.bus.end_capture(handle)
            with tracing.tracer.start_as_current_span("late", attributes={"tool.name": "late"}):
                pass

        assert handle.tools.to_list() == []
        assert tracing.bus.active_count() == 0

    def test_nested_handles_share_trace(self, tracing):
        """Both captures on one trace see the spans emitted while they are open."""
        with tracing.tracer.start_as_current_span("outer") as outer:
            outer_handle = tracing.bus.begin_capture(outer)
            with tracing.tracer.start_as_current_span("inner") as inner:
                inner_handle = tracing.bus.begin_capture(inner)
                with tracing.tracer.start_as_current_span("tool", attributes={"tool.name": "search"}):
                    pass
                assert tracing.bus.active_count() == 2
                inner_tools, _ = tracing.bus.end_capture(inner_handle)
            outer_tools, _ = tracing.bus.end_capture(outer_handle)

        assert inner_tools == ["search"]
        assert outer_tools == ["search"]
        assert tracing.bus.active_count() == 0

    def test_invalid_span_registers_nothing(self):
        bus = CaptureBus()
        handle = bus.begin_capture(trace.INVALID_SPAN)

        assert bus.active_count() == 0
        assert bus.end_capture(handle) == ([], [])

    def test_shutdown_clears_active_captures(self, tracing):
        with tracing.tracer.start_as_current_span("root") as root:
            tracing.bus.begin_capture(root)
            tracing.bus.shutdown()

        assert tracing.bus.active_count() == 0
