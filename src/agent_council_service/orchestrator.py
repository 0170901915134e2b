"""Drives one chat turn against a hosted agent.

A turn creates a fresh thread, posts the user's message, starts a run,
polls it until it reaches a terminal status and extracts the newest
assistant reply. Tool and sub-agent usage observed while the turn is in
flight is captured from the process-wide spans, and the turn's usage event
is recorded as attributes on its root span.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .agents.models import (
    AgentServiceError,
    AgentTransportError,
    Message,
    MessageRole,
    Run,
    RunStatus,
    TokenUsage,
)
from .agents.registry import AgentRegistry, get_agent_registry
from .config import AgentNotConfiguredError, Settings, get_settings
from .instrumentation.capture import CaptureBus, get_capture_bus

logger = logging.getLogger(__name__)


class InvocationValidationError(ValueError):
    """The caller supplied an empty agent name or message."""


class InvocationTimeoutError(Exception):
    """The run did not reach a terminal status within the poll budget."""

    def __init__(self, attempts: int, last_status: RunStatus):
        super().__init__(f"run still {last_status.value} after {attempts} status checks")
        self.attempts = attempts
        self.last_status = last_status


class InvocationState(str, Enum):
    IDLE = "idle"
    THREAD_CREATED = "thread_created"
    MESSAGE_POSTED = "message_posted"
    RUN_STARTED = "run_started"
    POLLING = "polling"
    RUN_TERMINAL = "run_terminal"
    RESPONSE_EXTRACTED = "response_extracted"
    DONE = "done"
    ERROR = "error"


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    RUN_FAILED = "run_failed"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


@dataclass
class InvocationRecord:
    """Everything known about one turn while it is in flight."""

    agent_name: str
    input_text: str
    state: InvocationState = InvocationState.IDLE
    agent_id: str | None = None
    thread_id: str | None = None
    run_id: str | None = None
    model: str | None = None
    final_status: RunStatus | None = None
    usage: TokenUsage | None = None
    tools: list[str] = field(default_factory=list)
    agents: list[str] = field(default_factory=list)
    reply: str = ""
    error_kind: ErrorKind | None = None

    def advance(self, state: InvocationState) -> None:
        logger.debug("Invocation for %s: %s -> %s", self.agent_name, self.state.value, state.value)
        self.state = state


@dataclass(frozen=True)
class InvocationResult:
    reply: str
    tools: list[str]
    agents: list[str]
    status: str | None = None
    error_kind: ErrorKind | None = None
    thread_id: str | None = None
    run_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def from_record(cls, record: InvocationRecord) -> "InvocationResult":
        return cls(
            reply=record.reply,
            tools=list(record.tools),
            agents=list(record.agents),
            status=record.final_status.value if record.final_status else None,
            error_kind=record.error_kind,
            thread_id=record.thread_id,
            run_id=record.run_id,
        )


def select_reply(messages: Iterable[Message]) -> Message | None:
    """Pick the most recent assistant message; later list position breaks ties."""
    latest: tuple[int, int] | None = None
    selected: Message | None = None
    for index, message in enumerate(messages):
        if message.role != MessageRole.ASSISTANT:
            continue
        key = (message.created_at, index)
        if latest is None or key > latest:
            latest, selected = key, message
    return selected


def no_response_reply(agent_name: str) -> str:
    return f"Agent {agent_name} completed but no response was generated."


def run_failed_reply(agent_name: str, run: Run) -> str:
    return f"Agent {agent_name} run failed with status: {run.status.value}. Error: {run.last_error or ''}"


def timeout_reply(agent_name: str, error: InvocationTimeoutError) -> str:
    return (
        f"Agent {agent_name} run timed out after {error.attempts} status checks "
        f"(last status: {error.last_status.value})."
    )


def error_reply(agent_name: str, error: BaseException) -> str:
    return f"Error processing chat for {agent_name}: {error}"


class AgentOrchestrator:
    def __init__(
        self,
        registry: AgentRegistry,
        *,
        capture_bus: CaptureBus | None = None,
        tracer: trace.Tracer | None = None,
        poll_interval: float = 0.5,
        max_poll_attempts: int = 240,
        poll_error_tolerance: int = 3,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.registry = registry
        self.capture_bus = capture_bus or get_capture_bus()
        self._tracer = tracer or trace.get_tracer(__name__)
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.poll_error_tolerance = poll_error_tolerance
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, registry: AgentRegistry, **kwargs: Any) -> "AgentOrchestrator":
        return cls(
            registry,
            poll_interval=settings.poll_interval_seconds,
            max_poll_attempts=settings.max_poll_attempts,
            poll_error_tolerance=settings.poll_error_tolerance,
            **kwargs,
        )

    async def invoke(self, agent_name: str, user_text: str) -> InvocationResult:
        """Run one chat turn. Only validation errors and cancellation escape."""
        if not agent_name or not agent_name.strip():
            raise InvocationValidationError("Agent name cannot be empty")
        if not user_text or not user_text.strip():
            raise InvocationValidationError("Message cannot be empty")

        record = InvocationRecord(agent_name=agent_name, input_text=user_text)
        logger.info("Sending message to agent %s (%d characters)", agent_name, len(user_text))

        try:
            entry = self.registry.resolve(agent_name)
        except AgentNotConfiguredError as e:
            logger.error("Cannot invoke agent %s: %s", agent_name, e)
            record.error_kind = ErrorKind.CONFIGURATION
            record.reply = error_reply(agent_name, e)
            record.advance(InvocationState.ERROR)
            return InvocationResult.from_record(record)
        record.agent_id = entry.agent_id

        with self._tracer.start_as_current_span(f"Agent.{agent_name}.Chat") as span:
            # Registered before any remote call so no child span is missed
            handle = self.capture_bus.begin_capture(span)
            try:
                client = self.registry.get_client(entry.endpoint)
                record.reply = await self._run_turn(client, record)
            except asyncio.CancelledError:
                logger.warning("Invocation for %s cancelled in state %s", agent_name, record.state.value)
                record.advance(InvocationState.ERROR)
                record.error_kind = ErrorKind.INTERNAL
                await self._cancel_remote_run(record)
                raise
            except InvocationTimeoutError as e:
                logger.error("Run %s for agent %s timed out: %s", record.run_id, agent_name, e)
                record.advance(InvocationState.ERROR)
                record.error_kind = ErrorKind.TIMEOUT
                record.reply = timeout_reply(agent_name, e)
                await self._cancel_remote_run(record)
            except AgentServiceError as e:
                logger.exception("Agent service error for %s in state %s", agent_name, record.state.value)
                record.advance(InvocationState.ERROR)
                record.error_kind = ErrorKind.TRANSPORT
                record.reply = error_reply(agent_name, e)
            except Exception as e:
                logger.exception("Error sending message to agent %s", agent_name)
                record.advance(InvocationState.ERROR)
                record.error_kind = ErrorKind.INTERNAL
                record.reply = error_reply(agent_name, e)
            finally:
                record.tools, record.agents = self.capture_bus.end_capture(handle)
                self._record_usage(span, record)

        if record.state != InvocationState.ERROR:
            record.advance(InvocationState.DONE)
        return InvocationResult.from_record(record)

    async def _run_turn(self, client: Any, record: InvocationRecord) -> str:
        agent_name = record.agent_name

        record.thread_id = await client.create_thread()
        record.advance(InvocationState.THREAD_CREATED)
        logger.info("Created thread %s for agent %s", record.thread_id, agent_name)

        await client.post_message(record.thread_id, MessageRole.USER, record.input_text)
        record.advance(InvocationState.MESSAGE_POSTED)

        run = await client.start_run(record.thread_id, record.agent_id)
        record.run_id = run.id
        record.advance(InvocationState.RUN_STARTED)
        logger.info("Created run %s for agent %s", run.id, agent_name)

        run = await self._poll_until_terminal(client, record, run)
        record.final_status = run.status
        record.model = run.model
        record.usage = run.usage
        record.advance(InvocationState.RUN_TERMINAL)

        await self._collect_tool_calls(client, record)

        if run.status != RunStatus.COMPLETED:
            logger.error(
                "Run failed for agent %s with status: %s, Error: %s",
                agent_name,
                run.status.value,
                run.last_error or "",
            )
            record.error_kind = ErrorKind.RUN_FAILED
            record.advance(InvocationState.ERROR)
            return run_failed_reply(agent_name, run)

        messages = await client.list_messages(record.thread_id, order="asc")
        logger.info("Retrieved %d messages from thread %s", len(messages), record.thread_id)
        record.advance(InvocationState.RESPONSE_EXTRACTED)

        message = select_reply(messages)
        if message is None:
            logger.warning("No assistant message found in completed run for agent %s", agent_name)
            return no_response_reply(agent_name)

        reply = message.text
        logger.info("Received response from agent %s: %d characters", agent_name, len(reply))
        return reply

    async def _poll_until_terminal(self, client: Any, record: InvocationRecord, run: Run) -> Run:
        record.advance(InvocationState.POLLING)
        attempts = 0
        consecutive_errors = 0
        while True:
            await self._sleep(self.poll_interval)
            attempts += 1
            try:
                run = await client.get_run(record.thread_id, run.id)
            except AgentTransportError as e:
                consecutive_errors += 1
                if consecutive_errors > self.poll_error_tolerance:
                    raise
                logger.warning(
                    "Transient error polling run %s (%d/%d): %s",
                    run.id,
                    consecutive_errors,
                    self.poll_error_tolerance,
                    e,
                )
            else:
                consecutive_errors = 0
                logger.debug("Run %s status: %s", run.id, run.status.value)
                if run.status.is_terminal:
                    return run

            if attempts >= self.max_poll_attempts:
                raise InvocationTimeoutError(attempts, run.status)

    async def _collect_tool_calls(self, client: Any, record: InvocationRecord) -> None:
        # Tool calls surface as spans emitted by the client; the capture bus records them
        try:
            await client.list_run_steps(record.thread_id, record.run_id)
        except AgentServiceError as e:
            logger.warning("Could not list run steps for run %s: %s", record.run_id, e)

    async def _cancel_remote_run(self, record: InvocationRecord) -> None:
        if not record.thread_id or not record.run_id or record.final_status is not None:
            return
        try:
            client = self.registry.get_client(self.registry.resolve(record.agent_name).endpoint)
            await client.cancel_run(record.thread_id, record.run_id)
            logger.info("Cancelled run %s for agent %s", record.run_id, record.agent_name)
        except Exception as e:
            logger.warning("Failed to cancel run %s: %s", record.run_id, e)

    @staticmethod
    def _record_usage(span: trace.Span, record: InvocationRecord) -> None:
        """Attach the usage event dimensions to the turn's root span."""
        span.set_attribute("agent.name", record.agent_name)
        span.set_attribute("agent.id", record.agent_id or "")
        span.set_attribute("agent.model", record.model or "")
        span.set_attribute("thread.id", record.thread_id or "")
        span.set_attribute("run.id", record.run_id or "")
        span.set_attribute("tool.usage_count", len(record.tools))
        span.set_attribute("tools.used", record.tools)
        span.set_attribute("agents.used", record.agents)
        span.set_attribute("message.length", len(record.input_text))
        span.set_attribute("response.length", len(record.reply))
        span.set_attribute(
            "run.final_status",
            record.final_status.value if record.final_status else "error",
        )
        span.set_attribute("invocation.state", record.state.value)
        if record.usage:
            span.set_attribute("gen_ai.usage.input_tokens", record.usage.prompt_tokens)
            span.set_attribute("gen_ai.usage.output_tokens", record.usage.completion_tokens)
        if record.error_kind:
            span.set_attribute("error.type", record.error_kind.value)
            span.set_status(Status(StatusCode.ERROR, record.reply))


_orchestrator: AgentOrchestrator | None = None


def get_orchestrator() -> AgentOrchestrator:
    """Get or create the global orchestrator."""
    global _orchestrator

    if _orchestrator is None:
        _orchestrator = AgentOrchestrator.from_settings(get_settings(), get_agent_registry())

    return _orchestrator
