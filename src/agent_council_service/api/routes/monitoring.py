"""API routes for usage monitoring reports."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ...telemetry.service import TelemetryQueryService, get_telemetry_service

router = APIRouter()


@router.get("/summary")
async def get_dashboard_summary(service: TelemetryQueryService = Depends(get_telemetry_service)):
    return await service.get_dashboard_summary()


@router.get("/traces")
async def get_traces(
    count: int = Query(default=50, ge=1, le=1000),
    agent_name: str | None = Query(default=None, alias="agentName"),
    service: TelemetryQueryService = Depends(get_telemetry_service),
):
    traces = await service.get_recent_traces(count, agent_name)
    return {"traces": traces}


@router.get("/metrics/{agent_name}")
async def get_agent_metrics(
    agent_name: str,
    hours: int = Query(default=24, ge=1, le=24 * 90),
    service: TelemetryQueryService = Depends(get_telemetry_service),
):
    return await service.get_agent_metrics(agent_name, hours)


@router.get("/errors")
async def get_errors(
    count: int = Query(default=20, ge=1, le=1000),
    service: TelemetryQueryService = Depends(get_telemetry_service),
):
    errors = await service.get_recent_errors(count)
    return {"errors": errors}


@router.get("/agent-usage")
async def get_agent_usage(service: TelemetryQueryService = Depends(get_telemetry_service)):
    return await service.get_agent_model_usage()


@router.get("/tool-usage")
async def get_tool_usage(service: TelemetryQueryService = Depends(get_telemetry_service)):
    return await service.get_tool_usage()


@router.get("/model-utilization")
async def get_model_utilization(service: TelemetryQueryService = Depends(get_telemetry_service)):
    return await service.get_model_utilization()


@router.get("/response-efficiency")
async def get_response_efficiency(service: TelemetryQueryService = Depends(get_telemetry_service)):
    return await service.get_response_efficiency()


@router.get("/complexity")
async def get_agent_complexity(service: TelemetryQueryService = Depends(get_telemetry_service)):
    return await service.get_agent_complexity()


@router.get("/success-rate")
async def get_success_rate(service: TelemetryQueryService = Depends(get_telemetry_service)):
    return await service.get_success_rate()
