"""Logging utilities for the SearchAPI MCP server."""

import logging
from collections.abc import Mapping
from typing import Any, Literal

from rich.console import Console
from rich.logging import RichHandler

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

SENSITIVE_KEYS = frozenset({"api_key", "authorization"})


def configure_logging(level: LogLevel = "INFO") -> None:
    """Configure logging for the server process.

    Args:
        level: the log level to use
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def redact_sensitive_data(
    data: Mapping[str, Any] | None,
    sensitive_keys: frozenset[str] | set[str] | None = None,
) -> Mapping[str, Any] | None:
    """Return a shallow copy with sensitive values replaced by "***".

    Used before logging outbound request parameters so the SearchAPI key
    never reaches the logs.
    """
    if data is None:
        return None

    keys = sensitive_keys or SENSITIVE_KEYS
    return {key: "***" if key.lower() in keys else value for key, value in data.items()}
