"""Usage reports computed from the historical usage event store.

Every report is read-only and best-effort: when the store cannot be queried
the failure is logged and an empty or zeroed result is returned.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable

from ..config import get_settings
from . import queries
from .models import (
    AgentComplexity,
    AgentError,
    AgentMetrics,
    AgentTrace,
    AggregateStat,
    DashboardSummary,
    ModelUtilization,
    SuccessRate,
)
from .store import create_store

logger = logging.getLogger(__name__)

# Message length divisor in the raw complexity score
COMPLEXITY_MESSAGE_DIVISOR = 200.0
# Characters per token for the token estimate
CHARS_PER_TOKEN = 4.0


def kql_round(value: float, digits: int) -> float:
    """Round half away from zero, like the store's ``round()``."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _num(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    return float(value)


def _int(value: Any) -> int:
    return int(round(_num(value)))


def compute_complexity(rows: list[dict[str, Any]]) -> list[AgentComplexity]:
    """Normalize per-agent raw complexity against the largest one.

    ``raw = avg tool usage + avg message length / 200`` and
    ``index = round(100 * raw / max raw, 1)``.
    """
    raw_scores = []
    for row in rows:
        avg_tool_usage = _num(row.get("AvgToolUsage"))
        avg_message_length = _num(row.get("AvgMessageLength"))
        raw_scores.append(avg_tool_usage + avg_message_length / COMPLEXITY_MESSAGE_DIVISOR)

    max_raw = max(raw_scores, default=0.0)

    results = []
    for row, raw in zip(rows, raw_scores):
        avg_message_length = _num(row.get("AvgMessageLength"))
        results.append(
            AgentComplexity(
                agent_name=row.get("agentName") or "",
                total_calls=_int(row.get("TotalCalls")),
                avg_tool_usage=_num(row.get("AvgToolUsage")),
                avg_message_length=avg_message_length,
                estimated_tokens=kql_round(avg_message_length / CHARS_PER_TOKEN, 1),
                max_message_length=_num(row.get("MaxMessageLength")),
                complexity_index=kql_round(100 * (raw / max_raw), 1) if max_raw > 0 else 0.0,
            )
        )

    results.sort(key=lambda item: item.complexity_index, reverse=True)
    return results


class TelemetryQueryService:
    def __init__(self, store_factory: Callable[[], Any] | None = None, *, window_days: int = 7):
        self._store_factory = store_factory or create_store
        self._store: Any = None
        self.window_days = window_days

    @property
    def timespan(self) -> str:
        return f"P{self.window_days}D"

    @property
    def time_range(self) -> str:
        return f"{self.window_days}d"

    def _get_store(self) -> Any:
        # Configuration errors surface here, on first use
        if self._store is None:
            self._store = self._store_factory()
        return self._store

    async def _query(self, query: str, timespan: str | None = None) -> list[dict[str, Any]]:
        return await self._get_store().query(query, timespan or self.timespan)

    async def get_agent_model_usage(self) -> list[ModelUtilization]:
        """Invocation counts by (agent, model), most used first."""
        try:
            rows = await self._query(queries.AGENT_MODEL_USAGE)
            return [
                ModelUtilization(
                    agent_name=row.get("agentName") or "",
                    model_name=row.get("modelName") or "",
                    calls=_int(row.get("Calls")),
                )
                for row in rows
            ]
        except Exception:
            logger.exception("Error getting agent and model usage")
            return []

    async def get_agent_usage(self) -> dict[str, int]:
        """Legacy shape of the agent/model usage report: ``{"agent-model": calls}``."""
        return {
            f"{item.agent_name}-{item.model_name}": item.calls
            for item in await self.get_agent_model_usage()
        }

    async def get_tool_usage(self) -> dict[str, AggregateStat]:
        try:
            rows = await self._query(queries.TOOL_USAGE)
            return {
                row.get("agentName") or "": AggregateStat(
                    avg=_num(row.get("AvgToolUsage")),
                    max=_num(row.get("MaxToolUsage")),
                )
                for row in rows
            }
        except Exception:
            logger.exception("Error getting tool usage")
            return {}

    async def get_agent_complexity(self) -> list[AgentComplexity]:
        try:
            rows = await self._query(queries.AGENT_COMPLEXITY)
            return compute_complexity(rows)
        except Exception:
            logger.exception("Error getting agent complexity")
            return []

    async def get_success_rate(self) -> dict[str, SuccessRate]:
        """Failure rate per agent; a failure is any final status other than completed."""
        try:
            rows = await self._query(queries.SUCCESS_RATE)
            rates = []
            for row in rows:
                total = _int(row.get("Total"))
                if total <= 0:
                    continue
                failures = _int(row.get("Failures"))
                rates.append(
                    (
                        row.get("agentName") or "",
                        SuccessRate(
                            total=total,
                            failures=failures,
                            failure_rate=kql_round(100.0 * failures / total, 2),
                        ),
                    )
                )
            rates.sort(key=lambda item: item[1].failure_rate, reverse=True)
            return dict(rates)
        except Exception:
            logger.exception("Error getting success rate")
            return {}

    async def get_response_efficiency(self) -> dict[str, AggregateStat]:
        try:
            rows = await self._query(queries.RESPONSE_EFFICIENCY)
            return {
                row.get("agentName") or "": AggregateStat(
                    avg=_num(row.get("AvgResponseLength")),
                    max=_num(row.get("MaxResponseLength")),
                )
                for row in rows
            }
        except Exception:
            logger.exception("Error getting response efficiency")
            return {}

    async def get_model_utilization(self) -> list[ModelUtilization]:
        try:
            rows = await self._query(queries.MODEL_UTILIZATION)
            return [
                ModelUtilization(
                    agent_name=row.get("agentName") or "",
                    model_name=row.get("modelName") or "",
                    calls=_int(row.get("Calls")),
                )
                for row in rows
            ]
        except Exception:
            logger.exception("Error getting model utilization")
            return []

    async def get_recent_traces(self, count: int = 50, agent_name: str | None = None) -> list[AgentTrace]:
        try:
            rows = await self._query(queries.recent_traces(count, agent_name))
            return [
                AgentTrace(
                    id=str(row.get("id") or ""),
                    name=row.get("name") or "",
                    timestamp=row.get("timestamp"),
                    duration_ms=_num(row.get("duration")),
                    status="Information" if row.get("success") in (True, "True", "true") else "Error",
                    agent_name=row.get("agentName"),
                    agent_id=row.get("agentId") or None,
                    message_length=_int(row.get("messageLength")),
                    response_length=_int(row.get("responseLength")),
                    run_status=row.get("runStatus"),
                )
                for row in rows
            ]
        except Exception:
            logger.exception("Error retrieving recent traces")
            return []

    async def get_agent_metrics(self, agent_name: str, hours: int = 24) -> AgentMetrics:
        empty = AgentMetrics(agent_name=agent_name, time_range=f"{hours}h")
        try:
            rows = await self._query(queries.agent_metrics(agent_name), timespan=f"PT{int(hours)}H")
        except Exception:
            logger.exception("Error retrieving metrics for agent %s", agent_name)
            return empty

        if not rows:
            return empty

        row = rows[0]
        total = _int(row.get("TotalCalls"))
        errors = _int(row.get("ErrorCount"))
        return AgentMetrics(
            agent_name=agent_name,
            time_range=f"{hours}h",
            total_calls=total,
            average_duration_ms=_num(row.get("AvgDuration")),
            max_duration_ms=_num(row.get("MaxDuration")),
            min_duration_ms=_num(row.get("MinDuration")),
            error_count=errors,
            success_count=total - errors,
            success_rate=kql_round(100.0 * (total - errors) / total, 2) if total else 0.0,
            total_message_length=_int(row.get("TotalMessageLength")),
            total_response_length=_int(row.get("TotalResponseLength")),
        )

    async def get_recent_errors(self, count: int = 20) -> list[AgentError]:
        try:
            rows = await self._query(queries.recent_errors(count))
            return [
                AgentError(
                    id=str(row.get("id") or ""),
                    timestamp=row.get("timestamp"),
                    message=f"Agent {row.get('agentName')} run ended with status {row.get('runStatus')}",
                    exception=row.get("errorType") or "",
                    agent_name=row.get("agentName"),
                    run_status=row.get("runStatus"),
                )
                for row in rows
            ]
        except Exception:
            logger.exception("Error retrieving recent errors")
            return []

    async def get_dashboard_summary(self) -> DashboardSummary:
        """Totals over the trailing window."""
        try:
            rows = await self._query(queries.DASHBOARD_SUMMARY)
        except Exception:
            logger.exception("Error querying dashboard summary")
            return DashboardSummary(time_range=self.time_range)

        total = sum(_int(row.get("Calls")) for row in rows)
        errors = sum(_int(row.get("Failures")) for row in rows)
        agents = {row.get("agentName") for row in rows if row.get("agentName")}
        total_duration = sum(_num(row.get("TotalDuration")) for row in rows)
        return DashboardSummary(
            time_range=self.time_range,
            total_calls=total,
            unique_agents=len(agents),
            average_duration_ms=kql_round(total_duration / total, 2) if total else 0.0,
            error_count=errors,
            success_rate=kql_round(100.0 * (total - errors) / total, 2) if total else 0.0,
            total_message_length=sum(_int(row.get("TotalMessageLength")) for row in rows),
            total_response_length=sum(_int(row.get("TotalResponseLength")) for row in rows),
        )

    async def aclose(self) -> None:
        if self._store is not None:
            await self._store.aclose()
            self._store = None


_service: TelemetryQueryService | None = None


def get_telemetry_service() -> TelemetryQueryService:
    """Get or create the global telemetry service."""
    global _service

    if _service is None:
        _service = TelemetryQueryService(window_days=get_settings().telemetry_window_days)

    return _service


async def close_telemetry_service() -> None:
    global _service

    if _service is not None:
        await _service.aclose()
        _service = None
