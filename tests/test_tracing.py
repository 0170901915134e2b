"""Tests for tracer provider setup."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from agent_council_service.config import Settings
from agent_council_service.instrumentation import tracing as tracing_module
from agent_council_service.instrumentation.capture import get_capture_bus


@pytest.fixture
def set_provider(monkeypatch):
    """Keep the real global tracer provider untouched."""
    monkeypatch.setattr(tracing_module, "_provider", None)
    setter = MagicMock()
    monkeypatch.setattr(tracing_module.trace, "set_tracer_provider", setter)
    yield setter
    tracing_module.shutdown_tracing()


class TestInitTracing:
    def test_installs_provider_once(self, set_provider):
        settings = Settings(APPLICATIONINSIGHTS_CONNECTION_STRING=None)

        first = tracing_module.init_tracing(settings)
        second = tracing_module.init_tracing(settings)

        assert first is second
        set_provider.assert_called_once_with(first)
        assert first.resource.attributes["service.name"] == "agent-council-service"

    def test_capture_bus_sees_spans(self, set_provider):
        provider = tracing_module.init_tracing(Settings(APPLICATIONINSIGHTS_CONNECTION_STRING=None))
        tracer = provider.get_tracer("tests")
        bus = get_capture_bus()

        with tracer.start_as_current_span("root") as root:
            handle = bus.begin_capture(root)
            with tracer.start_as_current_span("child", attributes={"tool.name": "search"}):
                pass
            tools, _ = bus.end_capture(handle)

        assert tools == ["search"]

    def test_shutdown_resets(self, set_provider):
        tracing_module.init_tracing(Settings(APPLICATIONINSIGHTS_CONNECTION_STRING=None))
        tracing_module.shutdown_tracing()

        assert tracing_module._provider is None
