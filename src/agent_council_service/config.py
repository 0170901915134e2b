"""Runtime configuration for the agent council service."""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentNotConfiguredError(Exception):
    """Raised when an agent name has no usable endpoint/agent id entry."""

    def __init__(self, agent_name: str, reason: str | None = None):
        message = f"Agent '{agent_name}' is not configured"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.agent_name = agent_name


class AgentEndpoint(BaseModel):
    """Where a named agent lives in the hosted agent service."""

    endpoint: str = ""
    agent_id: str = ""


class Settings(BaseSettings):
    """Runtime configuration for the agent council service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Hosted agents: {"Data_Analyst": {"endpoint": "...", "agent_id": "asst_..."}}
    agents: dict[str, AgentEndpoint] = Field(default_factory=dict, alias="FOUNDRY_AGENTS")
    agents_api_version: str = Field(default="v1", alias="FOUNDRY_API_VERSION")
    agents_token_scope: str = Field(
        default="https://ai.azure.com/.default", alias="FOUNDRY_TOKEN_SCOPE"
    )

    # Run polling
    poll_interval_seconds: float = Field(default=0.5, alias="POLL_INTERVAL_SECONDS")
    max_poll_attempts: int = Field(default=240, alias="MAX_POLL_ATTEMPTS")
    poll_error_tolerance: int = Field(default=3, alias="POLL_ERROR_TOLERANCE")
    request_timeout_seconds: float = Field(default=30.0, alias="REQUEST_TIMEOUT_SECONDS")

    # Application Insights (usage event store)
    applicationinsights_connection_string: str | None = Field(
        default=None, alias="APPLICATIONINSIGHTS_CONNECTION_STRING"
    )
    telemetry_query_url: str = Field(
        default="https://api.applicationinsights.io/v1/apps", alias="TELEMETRY_QUERY_URL"
    )
    telemetry_token_scope: str = Field(
        default="https://api.applicationinsights.io/.default", alias="TELEMETRY_TOKEN_SCOPE"
    )
    telemetry_window_days: int = Field(default=7, alias="TELEMETRY_WINDOW_DAYS")
    otel_console_export: bool = Field(default=False, alias="OTEL_CONSOLE_EXPORT")

    # FastAPI
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "https://localhost:7263",
            "http://localhost:5002",
            "http://localhost:5001",
            "http://localhost:5000",
            "http://localhost:5033",
        ],
        alias="CORS_ORIGINS",
    )
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8080, alias="APP_PORT")
    debug: bool = Field(default=False, alias="DEBUG")

    def agent_names(self) -> list[str]:
        return list(self.agents)

    def resolve_agent(self, agent_name: str) -> AgentEndpoint:
        """Look up the endpoint and remote agent id for a human-readable agent name."""
        entry = self.agents.get(agent_name)
        if entry is None:
            raise AgentNotConfiguredError(agent_name)
        if not entry.endpoint:
            raise AgentNotConfiguredError(agent_name, "endpoint is empty")
        if not entry.agent_id:
            raise AgentNotConfiguredError(agent_name, "agent id is empty")
        return entry


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
