"""Uvicorn server entry point."""

import uvicorn
from loguru import logger

from fixture_proxy.config import Settings
from fixture_proxy.server.app import create_app


def run_server(settings: Settings) -> None:
    """Run the proxy with Uvicorn until interrupted."""
    app = create_app(settings)

    logger.info(f"Starting server on {settings.host}:{settings.port}")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=settings.log_level == "DEBUG",
    )
