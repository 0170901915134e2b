"""Hosted agent service gateway."""

from .client import AgentsClient
from .models import (
    AgentInfo,
    AgentNotFoundError,
    AgentServiceError,
    AgentTransportError,
    ContentItem,
    Message,
    MessageRole,
    Run,
    RunStatus,
    TokenUsage,
    ToolCall,
)
from .registry import AgentRegistry, close_agent_registry, get_agent_registry

__all__ = [
    "AgentsClient",
    "AgentInfo",
    "AgentNotFoundError",
    "AgentServiceError",
    "AgentTransportError",
    "ContentItem",
    "Message",
    "MessageRole",
    "Run",
    "RunStatus",
    "TokenUsage",
    "ToolCall",
    "AgentRegistry",
    "close_agent_registry",
    "get_agent_registry",
]
