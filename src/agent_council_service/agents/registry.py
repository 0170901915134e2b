"""Agent name resolution and process-lifetime client caches."""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..config import AgentEndpoint, Settings, get_settings
from ..credentials import get_token_provider
from .client import AgentsClient
from .models import AgentInfo

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_DESCRIPTION = "Azure AI Foundry Agent"


class AgentRegistry:
    """Resolves agent names to endpoints and shares one client per endpoint.

    Both caches live for the process lifetime. Client creation is synchronous,
    so the lookup and insert happen without yielding to the event loop.
    """

    def __init__(
        self,
        settings: Settings,
        client_factory: Callable[[str], Any] | None = None,
    ):
        self.settings = settings
        self._client_factory = client_factory or self._default_client_factory
        self._clients: dict[str, Any] = {}
        self._agents: dict[str, AgentInfo] = {}

    def _default_client_factory(self, endpoint: str) -> AgentsClient:
        return AgentsClient(
            endpoint,
            get_token_provider(),
            api_version=self.settings.agents_api_version,
            token_scope=self.settings.agents_token_scope,
            timeout=self.settings.request_timeout_seconds,
        )

    def agent_names(self) -> list[str]:
        return self.settings.agent_names()

    def resolve(self, agent_name: str) -> AgentEndpoint:
        entry = self.settings.resolve_agent(agent_name)
        logger.info(
            "Using endpoint %s and agent id %s for agent %s",
            entry.endpoint,
            entry.agent_id,
            agent_name,
        )
        return entry

    def get_client(self, endpoint: str) -> Any:
        client = self._clients.get(endpoint)
        if client is None:
            client = self._clients.setdefault(endpoint, self._client_factory(endpoint))
            logger.info("Created agents client for endpoint %s", endpoint)
        return client

    async def get_agent_info(self, agent_name: str) -> AgentInfo:
        cached = self._agents.get(agent_name)
        if cached is not None:
            return cached

        entry = self.resolve(agent_name)
        info = await self.get_client(entry.endpoint).get_agent(entry.agent_id)
        return self._agents.setdefault(agent_name, info)

    async def get_agent_summary(self, agent_name: str) -> dict[str, Any]:
        """Best-effort metadata for the agent listing; never raises."""
        try:
            info = await self.get_agent_info(agent_name)
        except Exception as e:
            logger.warning("Failed to get info for agent %s: %s", agent_name, e)
            return {
                "name": agent_name,
                "id": "unknown",
                "threadId": None,
                "model": "unknown",
                "description": "Agent not available",
            }

        return {
            "name": agent_name,
            "id": info.id,
            # Threads are created per invocation, never persisted
            "threadId": None,
            "model": info.model or DEFAULT_MODEL,
            "description": f"Agent {agent_name} - {info.description or DEFAULT_DESCRIPTION}",
        }

    async def aclose(self) -> None:
        for endpoint, client in list(self._clients.items()):
            try:
                await client.aclose()
            except Exception as e:
                logger.warning("Error closing agents client for %s: %s", endpoint, e)
        self._clients.clear()


_registry: AgentRegistry | None = None


def get_agent_registry() -> AgentRegistry:
    """Get or create the global agent registry."""
    global _registry

    if _registry is None:
        _registry = AgentRegistry(get_settings())

    return _registry


async def close_agent_registry() -> None:
    global _registry

    if _registry is not None:
        await _registry.aclose()
        _registry = None
