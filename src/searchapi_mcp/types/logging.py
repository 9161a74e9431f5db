"""MCP Logging Types - Client-controlled log notifications."""

from typing import Any, Final, Literal

from searchapi_mcp.types.protocol import MCPModel, RequestParams

LoggingLevel = Literal["debug", "info", "notice", "warning", "error", "critical", "alert", "emergency"]

# RFC 5424 severities, least to most severe
LOGGING_LEVELS: Final[tuple[LoggingLevel, ...]] = (
    "debug",
    "info",
    "notice",
    "warning",
    "error",
    "critical",
    "alert",
    "emergency",
)


class SetLevelRequestParams(RequestParams):
    """Parameters for a logging/setLevel request."""

    level: LoggingLevel


class LoggingMessageNotificationParams(MCPModel):
    """Parameters for a notifications/message notification."""

    level: LoggingLevel
    logger: str | None = None
    data: Any


def is_level_enabled(level: LoggingLevel, threshold: LoggingLevel | None) -> bool:
    """True when ``level`` is at or above ``threshold``. No threshold means the client never opted in."""
    if threshold is None:
        return False
    return LOGGING_LEVELS.index(level) >= LOGGING_LEVELS.index(threshold)
