"""OpenTelemetry tracer provider setup."""

from __future__ import annotations

import logging

from azure.monitor.opentelemetry.exporter import AzureMonitorTraceExporter
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from ..config import Settings, get_settings
from .capture import get_capture_bus

logger = logging.getLogger(__name__)

SERVICE_NAME = "agent-council-service"

_provider: TracerProvider | None = None


def init_tracing(settings: Settings | None = None) -> TracerProvider:
    """Install the process tracer provider with the capture bus attached.

    Safe to call more than once; only the first call configures anything.
    """
    global _provider

    if _provider is not None:
        return _provider

    settings = settings or get_settings()
    provider = TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    provider.add_span_processor(get_capture_bus())

    connection_string = settings.applicationinsights_connection_string
    if connection_string:
        try:
            exporter = AzureMonitorTraceExporter(connection_string=connection_string)
        except ValueError as e:
            logger.warning("Azure Monitor exporter not configured: %s", e)
        else:
            provider.add_span_processor(BatchSpanProcessor(exporter))
            logger.info(
                "Application Insights configured with connection string length: %d",
                len(connection_string),
            )
    else:
        logger.warning("APPLICATIONINSIGHTS_CONNECTION_STRING not set; usage events will not be exported")

    if settings.otel_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _provider = provider
    return provider


def shutdown_tracing() -> None:
    """Flush pending spans and shut the provider down."""
    global _provider

    if _provider is not None:
        _provider.shutdown()
        _provider = None
