"""Shared test helpers: an in-memory stand-in for the hosted agents API."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Iterable

from agent_council_service.agents.models import (
    AgentInfo,
    ContentItem,
    Message,
    MessageRole,
    Run,
    RunStatus,
    ToolCall,
)

ENDPOINT_A = "https://council-a.services.ai.azure.com/api/projects/analysts"
ENDPOINT_B = "https://council-b.services.ai.azure.com/api/projects/markets"

_ids = itertools.count(1)


def text_message(role: MessageRole, text: str, created_at: int) -> Message:
    return Message(
        id=f"msg_{next(_ids)}",
        role=role,
        created_at=created_at,
        content=[ContentItem(type="text", text=text)],
    )


class FakeGateway:
    """Records every call and replays scripted run statuses.

    ``statuses`` are returned by successive ``get_run`` calls (the last one
    repeats); an entry that is an exception instance is raised instead.
    ``tool_calls`` are emitted as spans from ``list_run_steps``, the way the
    real client reports them.
    """

    def __init__(
        self,
        statuses: Iterable[Any] = (RunStatus.COMPLETED,),
        messages: list[Message] | None = None,
        tool_calls: Iterable[ToolCall] = (),
        tracer: Any = None,
        last_error: str | None = None,
        model: str = "gpt-4o",
        create_thread_error: Exception | None = None,
        agent_info: AgentInfo | Exception | None = None,
        step_delay: float = 0,
    ):
        self.statuses = list(statuses)
        self.messages = messages
        self.tool_calls = list(tool_calls)
        self.tracer = tracer
        self.last_error = last_error
        self.model = model
        self.create_thread_error = create_thread_error
        self.agent_info = agent_info
        self.step_delay = step_delay
        self.calls: list[tuple] = []
        self._status_index = 0

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    @property
    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def _run(self, status: RunStatus, thread_id: str, run_id: str = "run_1") -> Run:
        return Run(
            id=run_id,
            thread_id=thread_id,
            status=status,
            model=self.model,
            last_error=self.last_error if status == RunStatus.FAILED else None,
        )

    async def create_thread(self) -> str:
        self.calls.append(("create_thread",))
        if self.create_thread_error:
            raise self.create_thread_error
        return f"thread_{next(_ids)}"

    async def post_message(self, thread_id: str, role: MessageRole, text: str) -> str:
        self.calls.append(("post_message", thread_id, role, text))
        return f"msg_{next(_ids)}"

    async def start_run(self, thread_id: str, agent_id: str) -> Run:
        self.calls.append(("start_run", thread_id, agent_id))
        return self._run(RunStatus.QUEUED, thread_id)

    async def get_run(self, thread_id: str, run_id: str) -> Run:
        self.calls.append(("get_run", thread_id, run_id))
        index = min(self._status_index, len(self.statuses) - 1)
        self._status_index += 1
        status = self.statuses[index]
        if self.step_delay:
            await asyncio.sleep(self.step_delay)
        if isinstance(status, Exception):
            raise status
        return self._run(status, thread_id, run_id)

    async def cancel_run(self, thread_id: str, run_id: str) -> Run:
        self.calls.append(("cancel_run", thread_id, run_id))
        return self._run(RunStatus.CANCELLED, thread_id, run_id)

    async def list_messages(self, thread_id: str, order: str = "asc") -> list[Message]:
        self.calls.append(("list_messages", thread_id, order))
        if self.messages is not None:
            return list(self.messages)
        return [
            text_message(MessageRole.USER, "hello", 100),
            text_message(MessageRole.ASSISTANT, "Hi there", 101),
        ]

    async def list_run_steps(self, thread_id: str, run_id: str) -> list[ToolCall]:
        self.calls.append(("list_run_steps", thread_id, run_id))
        for call in self.tool_calls:
            if self.step_delay:
                await asyncio.sleep(self.step_delay)
            if self.tracer is None:
                continue
            key = "agent.name" if call.connected_agent else "tool.name"
            with self.tracer.start_as_current_span(f"step {call.name}", attributes={key: call.name}):
                pass
        return list(self.tool_calls)

    async def get_agent(self, agent_id: str) -> AgentInfo:
        self.calls.append(("get_agent", agent_id))
        if isinstance(self.agent_info, Exception):
            raise self.agent_info
        return self.agent_info or AgentInfo(id=agent_id, name=agent_id, model=self.model, description="Analyst")

    async def aclose(self) -> None:
        self.calls.append(("aclose",))


class FakeStore:
    """Usage event store returning canned rows keyed by a marker in the query."""

    def __init__(self, rows_by_marker: dict[str, list[dict[str, Any]]] | None = None, error: Exception | None = None):
        self.rows_by_marker = rows_by_marker or {}
        self.error = error
        self.queries: list[tuple[str, str]] = []

    async def query(self, query: str, timespan: str = "P7D") -> list[dict[str, Any]]:
        self.queries.append((query, timespan))
        if self.error:
            raise self.error
        for marker, rows in self.rows_by_marker.items():
            if marker in query:
                return [dict(row) for row in rows]
        return []

    async def aclose(self) -> None:
        pass


class FakeTokenProvider:
    def __init__(self, token: str = "test-token"):
        self.token = token
        self.scopes: list[str] = []

    async def auth_headers(self, scope: str) -> dict[str, str]:
        self.scopes.append(scope)
        return {"Authorization": f"Bearer {self.token}"}
