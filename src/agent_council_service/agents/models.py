"""Typed views over the hosted agent service payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AgentServiceError(Exception):
    """Error talking to the hosted agent service."""

    def __init__(self, message: str, status_code: int | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


class AgentTransportError(AgentServiceError):
    """Network, authentication or server-side failure."""


class AgentNotFoundError(AgentServiceError):
    """Unknown agent, thread or run."""


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self not in (RunStatus.QUEUED, RunStatus.IN_PROGRESS)


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


_UNSUPPORTED_ACTION_ERROR = "Run requires a client-side tool action, which this service does not support"


def parse_run_status(value: str) -> tuple[RunStatus, str | None]:
    """Map a wire status onto the closed RunStatus set.

    Returns the status plus an error message to use when the mapping itself
    implies a failure.
    """
    normalized = (value or "").strip().lower()
    if normalized == "cancelling":
        return RunStatus.IN_PROGRESS, None
    if normalized == "requires_action":
        return RunStatus.FAILED, _UNSUPPORTED_ACTION_ERROR
    try:
        return RunStatus(normalized), None
    except ValueError:
        raise AgentServiceError(f"Unknown run status: {value!r}") from None


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class Run:
    id: str
    thread_id: str
    status: RunStatus
    model: str | None = None
    last_error: str | None = None
    usage: TokenUsage | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Run":
        status, mapped_error = parse_run_status(payload.get("status", ""))
        last_error = payload.get("last_error") or None
        if isinstance(last_error, dict):
            last_error = last_error.get("message") or last_error.get("code")
        usage = payload.get("usage")
        return cls(
            id=payload["id"],
            thread_id=payload.get("thread_id", ""),
            status=status,
            model=payload.get("model"),
            last_error=last_error or mapped_error,
            usage=TokenUsage(
                prompt_tokens=usage.get("prompt_tokens") or 0,
                completion_tokens=usage.get("completion_tokens") or 0,
                total_tokens=usage.get("total_tokens") or 0,
            )
            if isinstance(usage, dict)
            else None,
        )


@dataclass
class ContentItem:
    """One fragment of a message: text, or a reference to a file/image."""

    type: str
    text: str | None = None
    file_id: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ContentItem":
        item_type = payload.get("type", "")
        if item_type == "text":
            text = payload.get("text") or {}
            return cls(type="text", text=text.get("value", "") if isinstance(text, dict) else str(text))
        if item_type == "image_file":
            return cls(type=item_type, file_id=(payload.get("image_file") or {}).get("file_id"))
        if item_type == "image_url":
            return cls(type=item_type, file_id=(payload.get("image_url") or {}).get("url"))
        return cls(type=item_type)

    def render(self) -> str:
        if self.type == "text":
            return self.text or ""
        if self.type.startswith("image"):
            return f"[Image from ID: {self.file_id}]"
        return f"[Unsupported content: {self.type}]"


@dataclass
class Message:
    id: str
    role: MessageRole | str
    created_at: int
    content: list[ContentItem] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Message":
        role = payload.get("role", "")
        try:
            role = MessageRole(role)
        except ValueError:
            pass
        return cls(
            id=payload["id"],
            role=role,
            created_at=int(payload.get("created_at") or 0),
            content=[ContentItem.from_payload(item) for item in payload.get("content") or []],
        )

    @property
    def text(self) -> str:
        return "".join(item.render() for item in self.content)


@dataclass
class ToolCall:
    """A tool invocation recorded in a run step."""

    type: str
    name: str | None = None
    connected_agent: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ToolCall":
        call_type = payload.get("type", "")
        if call_type == "function":
            return cls(type=call_type, name=(payload.get("function") or {}).get("name"))
        if call_type == "connected_agent":
            details = payload.get("connected_agent") or {}
            return cls(type=call_type, name=details.get("name") or details.get("agent_id"), connected_agent=True)
        # Built-in tools (code_interpreter, file_search, bing_grounding, ...) are named by their type
        return cls(type=call_type, name=call_type or None)


@dataclass
class AgentInfo:
    id: str
    name: str | None = None
    model: str | None = None
    description: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AgentInfo":
        return cls(
            id=payload["id"],
            name=payload.get("name"),
            model=payload.get("model"),
            description=payload.get("description"),
        )
