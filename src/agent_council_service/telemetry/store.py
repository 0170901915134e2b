"""Query client for the Application Insights usage event store."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings, get_settings
from ..credentials import BearerTokenProvider, get_token_provider

logger = logging.getLogger(__name__)


class TelemetryStoreError(Exception):
    """Error querying the usage event store."""

    def __init__(self, message: str, status_code: int | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


class TelemetryConfigurationError(TelemetryStoreError):
    """The store connection string is missing or unusable."""


def extract_application_id(connection_string: str | None) -> str | None:
    """Pull ``ApplicationId`` out of a ``Key=Value;Key=Value`` connection string."""
    if not connection_string:
        return None
    for part in connection_string.split(";"):
        key, sep, value = part.partition("=")
        if sep and key.strip().lower() == "applicationid" and value.strip():
            return value.strip()
    return None


def rows_from_payload(payload: dict[str, Any]) -> list[dict[str, Any]]:
    """Turn the first result table into a list of ``{column: value}`` rows."""
    tables = payload.get("tables")
    if not isinstance(tables, list):
        raise TelemetryStoreError("Query response has no tables")
    if not tables:
        return []

    table = tables[0]
    columns = [column.get("name") for column in table.get("columns") or []]
    rows = []
    for raw_row in table.get("rows") or []:
        if len(raw_row) != len(columns):
            raise TelemetryStoreError(
                f"Row has {len(raw_row)} values but table has {len(columns)} columns"
            )
        rows.append(dict(zip(columns, raw_row)))
    return rows


class AppInsightsQueryClient:
    """Runs KQL queries against one Application Insights resource."""

    def __init__(
        self,
        application_id: str,
        token_provider: BearerTokenProvider,
        *,
        base_url: str = "https://api.applicationinsights.io/v1/apps",
        token_scope: str = "https://api.applicationinsights.io/.default",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.application_id = application_id
        self._token_provider = token_provider
        self._url = f"{base_url.rstrip('/')}/{application_id}/query"
        self._token_scope = token_scope
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        token_provider: BearerTokenProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "AppInsightsQueryClient":
        if not settings.applicationinsights_connection_string:
            raise TelemetryConfigurationError("Application Insights connection string not configured")

        application_id = extract_application_id(settings.applicationinsights_connection_string)
        if not application_id:
            raise TelemetryConfigurationError("Could not extract ApplicationId from connection string")

        logger.info("Using Application Insights ApplicationId: %s", application_id)
        return cls(
            application_id,
            token_provider or get_token_provider(),
            base_url=settings.telemetry_query_url,
            token_scope=settings.telemetry_token_scope,
            timeout=settings.request_timeout_seconds,
            http_client=http_client,
        )

    async def query(self, query: str, timespan: str = "P7D") -> list[dict[str, Any]]:
        try:
            headers = await self._token_provider.auth_headers(self._token_scope)
        except Exception as e:
            raise TelemetryStoreError(f"Failed to acquire access token: {e}", cause=e) from e

        try:
            response = await self._http.post(
                self._url,
                headers=headers,
                json={"query": query, "timespan": timespan},
            )
        except httpx.HTTPError as e:
            raise TelemetryStoreError(f"Query request failed: {e}", cause=e) from e

        if not response.is_success:
            raise TelemetryStoreError(
                f"Query failed ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TelemetryStoreError("Query returned a non-JSON body", cause=e) from e
        return rows_from_payload(payload)

    async def aclose(self) -> None:
        await self._http.aclose()


def create_store(settings: Settings | None = None) -> AppInsightsQueryClient:
    return AppInsightsQueryClient.from_settings(settings or get_settings())
