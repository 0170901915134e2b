"""API routes for chatting with hosted agents."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ...agents.registry import AgentRegistry, get_agent_registry
from ...orchestrator import AgentOrchestrator, InvocationValidationError, get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter()

T = TypeVar("T")

# How often to check for a client disconnect while a turn is running
DISCONNECT_CHECK_SECONDS = 0.5


class ChatRequest(BaseModel):
    """Request body for a chat turn."""

    message: str | None = None


class ChatResponse(BaseModel):
    """Response body for a chat turn."""

    reply: str
    tools_used: list[str] = Field(default_factory=list, alias="toolsUsed")
    connected_agents: list[str] = Field(default_factory=list, alias="connectedAgents")

    model_config = {"populate_by_name": True}


class ClientDisconnected(Exception):
    """The HTTP client went away before the turn finished."""


async def run_until_disconnect(request: Request, awaitable: Awaitable[T]) -> T:
    """Await ``awaitable`` as a task, cancelling it if the client disconnects."""
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_CHECK_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning("Client disconnected from %s; cancelling", request.url.path)
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


def _problem(status: int, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={
            "type": "about:blank",
            "title": "An error occurred while processing your request.",
            "status": status,
            "detail": detail,
        },
        media_type="application/problem+json",
    )


@router.post("/{agent_name}/chat")
async def chat_with_agent(
    agent_name: str,
    payload: ChatRequest,
    request: Request,
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
):
    """Send one message to an agent and return its reply."""
    if not payload.message or not payload.message.strip():
        raise HTTPException(status_code=400, detail="Message cannot be empty")
    if not agent_name or not agent_name.strip():
        raise HTTPException(status_code=400, detail="Agent name cannot be empty")

    logger.info("Received chat request for agent %s", agent_name)

    try:
        result = await run_until_disconnect(request, orchestrator.invoke(agent_name, payload.message))
    except InvocationValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ClientDisconnected:
        return _problem(499, "Client closed request")
    except Exception as e:
        logger.exception("Error processing chat request for agent %s", agent_name)
        return _problem(500, f"Error processing chat: {e}")

    return ChatResponse(reply=result.reply, tools_used=result.tools, connected_agents=result.agents)


@router.get("")
async def list_agents(registry: AgentRegistry = Depends(get_agent_registry)) -> dict[str, Any]:
    """List configured agents with best-effort metadata."""
    names = registry.agent_names()
    agents = await asyncio.gather(*(registry.get_agent_summary(name) for name in names))
    return {"agents": list(agents)}
