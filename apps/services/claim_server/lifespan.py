"""
Claim Server Lifespan Handler

Manages application startup and shutdown events.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from libs.core.logging_config import configure_logging, get_logger

# uvicorn.error until setup_logging has run
logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Startup:
        - Initializes centralized logging
        - Logs the active claim policy

    Shutdown:
        - Logs shutdown message

    Args:
        app: FastAPI application instance
    """
    settings = app.state.settings
    configure_logging(settings, service_name="claim_server")

    server_logger = get_logger("claim_server")
    server_logger.info("Claim server starting...")
    server_logger.info(
        f"Reward: {settings.server.reward_label} | challenge: {settings.server.challenge_token} | "
        f"ledger: {'enabled' if app.state.challenge_ledger is not None else 'disabled'}"
    )
    if app.state.challenge_ledger is None:
        server_logger.warning(
            "Challenge ledger disabled: repeated claims with the same proof are all granted"
        )
    server_logger.info(f"Claim server ready on port {settings.server.port}")

    yield

    server_logger.info("Claim server shutdown complete")
