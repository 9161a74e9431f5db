"""Error taxonomy for the SearchAPI MCP server."""

from typing import Any

from searchapi_mcp.types.json_rpc import ErrorData


class McpError(Exception):
    """Exception carrying a JSON-RPC error back to the peer.

    Raised from a request handler, the dispatcher turns it into an error
    response with the wrapped code and message instead of a generic internal error.

    Attributes:
        error: The ErrorData object to send to the peer
    """

    error: ErrorData

    def __init__(self, error: ErrorData):
        super().__init__(error.message)
        self.error = error

    @classmethod
    def from_code(cls, code: int, message: str, data: Any | None = None) -> "McpError":
        return cls(ErrorData(code=code, message=message, data=data))


class ToolError(Exception):
    """Error in tool operations, reported to the agent as tool-level error content."""


class SearchApiError(Exception):
    """Base error for failed calls to the SearchAPI.io upstream."""


class SearchApiStatusError(SearchApiError):
    """The upstream answered with a non-2xx status."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"SearchAPI request failed with status {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class SearchApiConnectionError(SearchApiError):
    """The upstream could not be reached or did not answer in time."""

    def __init__(self, message: str = "SearchAPI request failed: No response received"):
        super().__init__(message)


class ConfigurationError(Exception):
    """Startup configuration is missing or invalid."""


class SessionConflictError(Exception):
    """A live session already exists under the given id."""

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} is already registered")
        self.session_id = session_id


class ChannelClosedError(Exception):
    """A frame was forwarded to a channel that has already closed."""

    def __init__(self, session_id: str | None):
        super().__init__(f"Channel for session {session_id} is closed")
        self.session_id = session_id


class PushStreamConflictError(Exception):
    """A session already has its server-to-client push stream open."""

    def __init__(self, session_id: str | None):
        super().__init__(f"Session {session_id} already has an open push stream")
        self.session_id = session_id
