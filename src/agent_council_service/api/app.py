"""FastAPI application setup."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..agents.registry import close_agent_registry
from ..config import get_settings
from ..credentials import close_token_provider
from ..instrumentation import init_tracing, shutdown_tracing
from ..telemetry.service import close_telemetry_service
from .routes import agents, monitoring

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Tracing first, so the capture bus sees every span
    init_tracing(get_settings())
    logger.info("Agent council service starting...")

    yield

    logger.info("Agent council service shutting down...")

    for name, close in (
        ("agent registry", close_agent_registry),
        ("telemetry service", close_telemetry_service),
        ("token provider", close_token_provider),
    ):
        try:
            await asyncio.wait_for(close(), timeout=3.0)
        except asyncio.TimeoutError:
            logger.warning("Closing %s timed out", name)
        except Exception as e:
            logger.warning("Error closing %s: %s", name, e)

    # Last, so pending spans are flushed
    shutdown_tracing()
    logger.info("Agent council service shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Agent Council Service",
        description="Chat gateway and usage monitoring for hosted agents",
        version="1.0.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(agents.router, prefix="/api/agents", tags=["agents"])
    app.include_router(monitoring.router, prefix="/api/monitoring", tags=["monitoring"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
