"""Typed report records returned by the telemetry service."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class _Report(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ModelUtilization(_Report):
    agent_name: str = Field(alias="agentName")
    model_name: str = Field(alias="modelName")
    calls: int


class AggregateStat(_Report):
    """Average and maximum of one usage dimension for an agent."""

    avg: float = 0.0
    max: float = 0.0


class AgentComplexity(_Report):
    agent_name: str = Field(alias="agentName")
    total_calls: int = Field(alias="totalCalls")
    avg_tool_usage: float = Field(alias="avgToolUsage")
    avg_message_length: float = Field(alias="avgMessageLength")
    estimated_tokens: float = Field(alias="estimatedTokens")
    max_message_length: float = Field(alias="maxMessageLength")
    complexity_index: float = Field(alias="complexityIndex")


class SuccessRate(_Report):
    total: int
    failures: int
    failure_rate: float = Field(alias="failureRate")


class AgentTrace(_Report):
    id: str
    name: str
    timestamp: datetime | None = None
    duration_ms: float = Field(default=0.0, alias="durationMs")
    status: str
    agent_name: str | None = Field(default=None, alias="agentName")
    agent_id: str | None = Field(default=None, alias="agentId")
    message_length: int = Field(default=0, alias="messageLength")
    response_length: int = Field(default=0, alias="responseLength")
    run_status: str | None = Field(default=None, alias="runStatus")


class AgentMetrics(_Report):
    agent_name: str = Field(alias="agentName")
    time_range: str = Field(alias="timeRange")
    total_calls: int = Field(default=0, alias="totalCalls")
    average_duration_ms: float = Field(default=0.0, alias="averageDurationMs")
    max_duration_ms: float = Field(default=0.0, alias="maxDurationMs")
    min_duration_ms: float = Field(default=0.0, alias="minDurationMs")
    error_count: int = Field(default=0, alias="errorCount")
    success_count: int = Field(default=0, alias="successCount")
    success_rate: float = Field(default=0.0, alias="successRate")
    total_message_length: int = Field(default=0, alias="totalMessageLength")
    total_response_length: int = Field(default=0, alias="totalResponseLength")


class AgentError(_Report):
    id: str
    timestamp: datetime | None = None
    message: str
    exception: str = ""
    agent_name: str | None = Field(default=None, alias="agentName")
    run_status: str | None = Field(default=None, alias="runStatus")


class DashboardSummary(_Report):
    time_range: str = Field(alias="timeRange")
    total_calls: int = Field(default=0, alias="totalCalls")
    unique_agents: int = Field(default=0, alias="uniqueAgents")
    average_duration_ms: float = Field(default=0.0, alias="averageDurationMs")
    error_count: int = Field(default=0, alias="errorCount")
    success_rate: float = Field(default=0.0, alias="successRate")
    total_message_length: int = Field(default=0, alias="totalMessageLength")
    total_response_length: int = Field(default=0, alias="totalResponseLength")
