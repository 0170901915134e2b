"""HTTP client for the hosted agents API (threads, messages, runs)."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

import httpx
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..credentials import BearerTokenProvider
from .models import (
    AgentInfo,
    AgentNotFoundError,
    AgentServiceError,
    AgentTransportError,
    Message,
    MessageRole,
    Run,
    ToolCall,
)

logger = logging.getLogger(__name__)

_PAGE_SIZE = 100


class AgentsClient:
    """Thin async wrapper around one project endpoint of the hosted agents API.

    Errors are surfaced, never retried, at this layer. Every call emits a
    span so the instrumentation capture can observe it.
    """

    def __init__(
        self,
        endpoint: str,
        token_provider: BearerTokenProvider,
        *,
        api_version: str = "v1",
        token_scope: str = "https://ai.azure.com/.default",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
        tracer: trace.Tracer | None = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self._token_provider = token_provider
        self._api_version = api_version
        self._token_scope = token_scope
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._tracer = tracer or trace.get_tracer(__name__)
        self._server_address = urlparse(self.endpoint).netloc

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        span_attributes = {"az.namespace": "Microsoft.CognitiveServices", "server.address": self._server_address}
        span_attributes.update(attributes or {})

        with self._tracer.start_as_current_span(f"agents.{operation}", attributes=span_attributes) as span:
            try:
                headers = await self._token_provider.auth_headers(self._token_scope)
            except Exception as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise AgentTransportError(f"Failed to acquire access token: {e}", cause=e) from e

            query = {"api-version": self._api_version, **(params or {})}
            try:
                response = await self._http.request(
                    method,
                    f"{self.endpoint}{path}",
                    headers=headers,
                    params=query,
                    json=json,
                )
            except httpx.HTTPError as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise AgentTransportError(f"{operation} failed: {e}", cause=e) from e

            span.set_attribute("http.response.status_code", response.status_code)
            if response.status_code == 404:
                span.set_status(Status(StatusCode.ERROR, "not found"))
                raise AgentNotFoundError(f"{operation} failed (404): {response.text}", status_code=404)
            if not response.is_success:
                span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
                error_cls = AgentTransportError if response.status_code in (401, 403, 408, 429) or response.status_code >= 500 else AgentServiceError
                raise error_cls(
                    f"{operation} failed ({response.status_code}): {response.text}",
                    status_code=response.status_code,
                )

            try:
                return response.json()
            except ValueError as e:
                raise AgentServiceError(f"{operation} returned a non-JSON body", cause=e) from e

    async def create_thread(self) -> str:
        payload = await self._request("create_thread", "POST", "/threads", json={})
        return payload["id"]

    async def post_message(self, thread_id: str, role: MessageRole, text: str) -> str:
        payload = await self._request(
            "create_message",
            "POST",
            f"/threads/{thread_id}/messages",
            json={"role": MessageRole(role).value, "content": text},
            attributes={"thread.id": thread_id},
        )
        return payload["id"]

    async def start_run(self, thread_id: str, agent_id: str) -> Run:
        payload = await self._request(
            "create_run",
            "POST",
            f"/threads/{thread_id}/runs",
            json={"assistant_id": agent_id},
            attributes={"thread.id": thread_id, "assistant.id": agent_id},
        )
        return Run.from_payload(payload)

    async def get_run(self, thread_id: str, run_id: str) -> Run:
        payload = await self._request(
            "get_run",
            "GET",
            f"/threads/{thread_id}/runs/{run_id}",
            attributes={"thread.id": thread_id, "run.id": run_id},
        )
        return Run.from_payload(payload)

    async def cancel_run(self, thread_id: str, run_id: str) -> Run:
        payload = await self._request(
            "cancel_run",
            "POST",
            f"/threads/{thread_id}/runs/{run_id}/cancel",
            attributes={"thread.id": thread_id, "run.id": run_id},
        )
        return Run.from_payload(payload)

    async def list_messages(self, thread_id: str, order: str = "asc") -> list[Message]:
        """List all messages on a thread, following pagination."""
        messages: list[Message] = []
        after: str | None = None
        while True:
            params: dict[str, Any] = {"order": order, "limit": _PAGE_SIZE}
            if after:
                params["after"] = after
            payload = await self._request(
                "list_messages",
                "GET",
                f"/threads/{thread_id}/messages",
                params=params,
                attributes={"thread.id": thread_id},
            )
            page = [Message.from_payload(item) for item in payload.get("data") or []]
            messages.extend(page)
            if not payload.get("has_more") or not page:
                return messages
            after = payload.get("last_id") or page[-1].id

    async def list_run_steps(self, thread_id: str, run_id: str) -> list[ToolCall]:
        """Return the tool calls a run made, emitting a span for each one."""
        payload = await self._request(
            "list_run_steps",
            "GET",
            f"/threads/{thread_id}/runs/{run_id}/steps",
            params={"order": "asc", "limit": _PAGE_SIZE},
            attributes={"thread.id": thread_id, "run.id": run_id},
        )

        calls: list[ToolCall] = []
        for step in payload.get("data") or []:
            details = step.get("step_details") or {}
            if details.get("type") != "tool_calls":
                continue
            for raw_call in details.get("tool_calls") or []:
                call = ToolCall.from_payload(raw_call)
                if call.name:
                    calls.append(call)
                    self._emit_tool_call(call, thread_id, run_id)
        return calls

    def _emit_tool_call(self, call: ToolCall, thread_id: str, run_id: str) -> None:
        attributes: dict[str, Any] = {"thread.id": thread_id, "run.id": run_id, "tool.type": call.type}
        if call.connected_agent:
            attributes["agent.name"] = call.name
            span_name = f"invoke_agent {call.name}"
        else:
            attributes["tool.name"] = call.name
            span_name = f"execute_tool {call.name}"
        with self._tracer.start_as_current_span(span_name, attributes=attributes):
            pass

    async def get_agent(self, agent_id: str) -> AgentInfo:
        payload = await self._request(
            "get_agent",
            "GET",
            f"/assistants/{agent_id}",
            attributes={"assistant.id": agent_id},
        )
        return AgentInfo.from_payload(payload)
