"""Entry point for running the agent council service."""

import logging

import uvicorn

from .config import Settings, get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def log_startup(settings: Settings) -> None:
    """Summarize what this instance will serve."""
    names = settings.agent_names()
    if names:
        logger.info("Configured agents (%d): %s", len(names), ", ".join(names))
    else:
        logger.warning("No agents configured; set FOUNDRY_AGENTS to enable chat")

    if settings.applicationinsights_connection_string:
        logger.info("Usage events export to Application Insights (%d day report window)", settings.telemetry_window_days)
    else:
        logger.warning("APPLICATIONINSIGHTS_CONNECTION_STRING not set; monitoring reports will be empty")


def main():
    """Run the agent council service."""
    settings = get_settings()

    logger.info(f"Starting agent council service on {settings.app_host}:{settings.app_port}")
    log_startup(settings)

    uvicorn.run(
        "agent_council_service.api.app:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
