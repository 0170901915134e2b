"""Shared test fixtures and configuration."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from agent_council_service.config import Settings
from agent_council_service.instrumentation.capture import CaptureBus
from tests.helpers import ENDPOINT_A, ENDPOINT_B


@pytest.fixture
def settings():
    """Settings with three agents, two of them sharing an endpoint."""
    return Settings(
        FOUNDRY_AGENTS={
            "Data_Analyst": {"endpoint": ENDPOINT_A, "agent_id": "asst_data"},
            "chief_analyst": {"endpoint": ENDPOINT_A, "agent_id": "asst_chief"},
            "market_analyst": {"endpoint": ENDPOINT_B, "agent_id": "asst_market"},
        },
        POLL_INTERVAL_SECONDS=0,
        APPLICATIONINSIGHTS_CONNECTION_STRING=None,
    )


@pytest.fixture
def tracing():
    """An isolated tracer provider with a capture bus and an in-memory exporter."""
    exporter = InMemorySpanExporter()
    bus = CaptureBus()
    provider = TracerProvider()
    provider.add_span_processor(bus)
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    yield SimpleNamespace(
        bus=bus,
        exporter=exporter,
        provider=provider,
        tracer=provider.get_tracer("tests"),
    )
    provider.shutdown()


@pytest.fixture
def sample_usage_rows():
    """Per-agent aggregate rows as the complexity query returns them."""
    return [
        {
            "agentName": "Data_Analyst",
            "TotalCalls": 10,
            "AvgToolUsage": 2.0,
            "AvgMessageLength": 400.0,
            "MaxMessageLength": 900.0,
        },
        {
            "agentName": "market_analyst",
            "TotalCalls": 4,
            "AvgToolUsage": 0.5,
            "AvgMessageLength": 100.0,
            "MaxMessageLength": 150.0,
        },
    ]
