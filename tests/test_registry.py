"""Tests for the agent registry."""

from __future__ import annotations

import pytest

from agent_council_service.agents.models import AgentInfo, AgentTransportError
from agent_council_service.agents.registry import AgentRegistry
from agent_council_service.config import AgentNotConfiguredError, Settings
from tests.helpers import ENDPOINT_A, ENDPOINT_B, FakeGateway


class TestResolve:
    """Name resolution."""

    def test_resolves_configured_agent(self, settings):
        registry = AgentRegistry(settings, client_factory=lambda endpoint: FakeGateway())

        entry = registry.resolve("market_analyst")

        assert entry.endpoint == ENDPOINT_B
        assert entry.agent_id == "asst_market"

    def test_unknown_agent(self, settings):
        registry = AgentRegistry(settings, client_factory=lambda endpoint: FakeGateway())

        with pytest.raises(AgentNotConfiguredError):
            registry.resolve("nobody")

    def test_empty_agent_id(self):
        settings = Settings(FOUNDRY_AGENTS={"half": {"endpoint": ENDPOINT_A, "agent_id": ""}})
        registry = AgentRegistry(settings)

        with pytest.raises(AgentNotConfiguredError, match="agent id is empty"):
            registry.resolve("half")

    def test_agent_names_in_configured_order(self, settings):
        registry = AgentRegistry(settings)
        assert registry.agent_names() == ["Data_Analyst", "chief_analyst", "market_analyst"]


class TestClients:
    """Per-endpoint client cache."""

    def test_one_client_per_endpoint(self, settings):
        created = []

        def factory(endpoint):
            created.append(endpoint)
            return FakeGateway()

        registry = AgentRegistry(settings, client_factory=factory)

        first = registry.get_client(registry.resolve("Data_Analyst").endpoint)
        second = registry.get_client(registry.resolve("chief_analyst").endpoint)
        third = registry.get_client(registry.resolve("market_analyst").endpoint)

        assert first is second
        assert third is not first
        assert created == [ENDPOINT_A, ENDPOINT_B]

    @pytest.mark.asyncio
    async def test_aclose_closes_clients(self, settings):
        gateway = FakeGateway()
        registry = AgentRegistry(settings, client_factory=lambda endpoint: gateway)
        registry.get_client(ENDPOINT_A)

        await registry.aclose()

        assert gateway.call_names == ["aclose"]


class TestAgentSummary:
    """Agent metadata for the listing."""

    @pytest.mark.asyncio
    async def test_summary_from_remote(self, settings):
        gateway = FakeGateway(agent_info=AgentInfo(id="asst_data", model="gpt-4o", description="Crunches numbers"))
        registry = AgentRegistry(settings, client_factory=lambda endpoint: gateway)

        summary = await registry.get_agent_summary("Data_Analyst")

        assert summary == {
            "name": "Data_Analyst",
            "id": "asst_data",
            "threadId": None,
            "model": "gpt-4o",
            "description": "Agent Data_Analyst - Crunches numbers",
        }

    @pytest.mark.asyncio
    async def test_defaults_for_missing_fields(self, settings):
        gateway = FakeGateway(agent_info=AgentInfo(id="asst_data"))
        registry = AgentRegistry(settings, client_factory=lambda endpoint: gateway)

        summary = await registry.get_agent_summary("Data_Analyst")

        assert summary["model"] == "gpt-4o-mini"
        assert summary["description"] == "Agent Data_Analyst - Azure AI Foundry Agent"

    @pytest.mark.asyncio
    async def test_placeholder_on_failure(self, settings):
        gateway = FakeGateway(agent_info=AgentTransportError("unreachable"))
        registry = AgentRegistry(settings, client_factory=lambda endpoint: gateway)

        summary = await registry.get_agent_summary("Data_Analyst")

        assert summary == {
            "name": "Data_Analyst",
            "id": "unknown",
            "threadId": None,
            "model": "unknown",
            "description": "Agent not available",
        }

    @pytest.mark.asyncio
    async def test_info_cached(self, settings):
        gateway = FakeGateway()
        registry = AgentRegistry(settings, client_factory=lambda endpoint: gateway)

        await registry.get_agent_summary("Data_Analyst")
        await registry.get_agent_summary("Data_Analyst")

        assert gateway.count("get_agent") == 1
