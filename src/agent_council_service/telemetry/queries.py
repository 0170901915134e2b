"""KQL queries over the usage events recorded on ``Agent.<name>.Chat`` spans.

The spans are exported as ``dependencies`` rows; the usage dimensions live in
``customDimensions``. Rows without ``run.final_status`` are other spans
(client calls, tool calls) and are excluded. The trailing time window is
passed separately as the query ``timespan``.
"""

from __future__ import annotations

COMPLETED_STATUS = "completed"

USAGE_EVENTS = """dependencies
| extend
    agentName = trim(" ", tostring(customDimensions["agent.name"])),
    modelName = trim(" ", tostring(customDimensions["agent.model"])),
    agentId = tostring(customDimensions["agent.id"]),
    toolUsage = todouble(customDimensions["tool.usage_count"]),
    messageLength = todouble(customDimensions["message.length"]),
    responseLength = todouble(customDimensions["response.length"]),
    runStatus = tostring(customDimensions["run.final_status"]),
    errorType = tostring(customDimensions["error.type"])
| where isnotempty(runStatus)
| where isnotempty(agentName) and agentName != 'unknown_agent'"""


def kql_string(value: str) -> str:
    """Quote a value as a KQL string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


AGENT_MODEL_USAGE = (
    USAGE_EVENTS
    + """
| where isnotempty(modelName)
| summarize Calls = count() by agentName, modelName
| sort by Calls desc"""
)

MODEL_UTILIZATION = (
    USAGE_EVENTS
    + """
| summarize Calls = count() by agentName, modelName
| sort by Calls desc"""
)

TOOL_USAGE = (
    USAGE_EVENTS
    + """
| summarize AvgToolUsage = avg(coalesce(toolUsage, 0.0)), MaxToolUsage = max(coalesce(toolUsage, 0.0)) by agentName
| sort by AvgToolUsage desc"""
)

AGENT_COMPLEXITY = (
    USAGE_EVENTS
    + """
| summarize
    TotalCalls = count(),
    AvgToolUsage = avg(coalesce(toolUsage, 0.0)),
    AvgMessageLength = avg(coalesce(messageLength, 0.0)),
    MaxMessageLength = max(coalesce(messageLength, 0.0))
    by agentName"""
)

SUCCESS_RATE = (
    USAGE_EVENTS
    + f"""
| summarize Total = count(), Failures = countif(runStatus != "{COMPLETED_STATUS}") by agentName"""
)

RESPONSE_EFFICIENCY = (
    USAGE_EVENTS
    + """
| summarize AvgResponseLength = avg(coalesce(responseLength, 0.0)), MaxResponseLength = max(coalesce(responseLength, 0.0)) by agentName
| sort by AvgResponseLength desc"""
)

DASHBOARD_SUMMARY = (
    USAGE_EVENTS
    + f"""
| summarize
    Calls = count(),
    Failures = countif(runStatus != "{COMPLETED_STATUS}"),
    TotalDuration = sum(duration),
    TotalMessageLength = sum(coalesce(messageLength, 0.0)),
    TotalResponseLength = sum(coalesce(responseLength, 0.0))
    by agentName"""
)


def recent_traces(count: int, agent_name: str | None = None) -> str:
    query = USAGE_EVENTS
    if agent_name:
        query += f"\n| where agentName == {kql_string(agent_name)}"
    return (
        query
        + f"""
| top {int(count)} by timestamp desc
| project id, name, timestamp, duration, success, agentName, agentId, messageLength, responseLength, runStatus"""
    )


def agent_metrics(agent_name: str) -> str:
    return (
        USAGE_EVENTS
        + f"""
| where agentName == {kql_string(agent_name)}
| summarize
    TotalCalls = count(),
    AvgDuration = avg(duration),
    MaxDuration = max(duration),
    MinDuration = min(duration),
    ErrorCount = countif(runStatus != "{COMPLETED_STATUS}"),
    TotalMessageLength = sum(coalesce(messageLength, 0.0)),
    TotalResponseLength = sum(coalesce(responseLength, 0.0))"""
    )


def recent_errors(count: int) -> str:
    return (
        USAGE_EVENTS
        + f"""
| where runStatus != "{COMPLETED_STATUS}"
| top {int(count)} by timestamp desc
| project id, timestamp, name, errorType, agentName, runStatus"""
    )
