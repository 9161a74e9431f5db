"""Command-line entry point."""

from __future__ import annotations

import logging
import sys

import click
import uvicorn

from searchapi_mcp.app import create_app
from searchapi_mcp.config import load_settings
from searchapi_mcp.exceptions import ConfigurationError
from searchapi_mcp.utilities.logging import configure_logging

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.command()
@click.option("--host", default=None, help="Interface to bind (default: HOST or 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Port to listen on (default: PORT or 3000)")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log verbosity (default: LOG_LEVEL or INFO)",
)
def main(host: str | None, port: int | None, log_level: str | None) -> int:
    overrides = {
        name: value
        for name, value in {"host": host, "port": port, "log_level": log_level}.items()
        if value is not None
    }
    try:
        settings = load_settings(**overrides)
    except ConfigurationError as e:
        configure_logging(log_level.upper() if log_level else "INFO")  # type: ignore[arg-type]
        logger.error("Failed to start server: %s", e)
        sys.exit(1)

    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info("Starting MCP SearchAPI Server on %s:%d", settings.host, settings.port)
    try:
        uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    finally:
        logger.info("Shutting down server...")
    return 0
