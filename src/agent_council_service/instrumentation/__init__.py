"""Tracing setup and per-invocation capture of tool/agent usage."""

from .capture import (
    AGENT_NAME_KEYS,
    TOOL_NAME_KEYS,
    CaptureBus,
    CaptureHandle,
    UniqueNames,
    extract_name,
    get_capture_bus,
)
from .tracing import init_tracing, shutdown_tracing

__all__ = [
    "AGENT_NAME_KEYS",
    "TOOL_NAME_KEYS",
    "CaptureBus",
    "CaptureHandle",
    "UniqueNames",
    "extract_name",
    "get_capture_bus",
    "init_tracing",
    "shutdown_tracing",
]
