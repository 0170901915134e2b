"""Usage analytics over the historical usage event store."""

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
from .service import (
    TelemetryQueryService,
    close_telemetry_service,
    compute_complexity,
    get_telemetry_service,
    kql_round,
)
from .store import (
    AppInsightsQueryClient,
    TelemetryConfigurationError,
    TelemetryStoreError,
    extract_application_id,
)

__all__ = [
    "AgentComplexity",
    "AgentError",
    "AgentMetrics",
    "AgentTrace",
    "AggregateStat",
    "DashboardSummary",
    "ModelUtilization",
    "SuccessRate",
    "TelemetryQueryService",
    "close_telemetry_service",
    "compute_complexity",
    "get_telemetry_service",
    "kql_round",
    "AppInsightsQueryClient",
    "TelemetryConfigurationError",
    "TelemetryStoreError",
    "extract_application_id",
]
