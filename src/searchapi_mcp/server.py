"""Method table for one session.

A LowLevelServer maps JSON-RPC method names to coroutines and turns whatever
they return or raise into a response frame. It knows nothing about HTTP or
sessions; ``searchapi_mcp.app.create_server`` builds one per channel.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel

from searchapi_mcp.context import RequestContext
from searchapi_mcp.exceptions import McpError
from searchapi_mcp.types.json_rpc import (
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    JSONRPCErrorResponse,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCResultResponse,
    error_response,
)
from searchapi_mcp.types.protocol import ServerCapabilities

logger = logging.getLogger(__name__)

RequestHandler = Callable[[RequestContext, JSONRPCRequest], Awaitable[Any]]
NotificationHandler = Callable[[RequestContext, JSONRPCNotification], Awaitable[None]]


def _result_payload(result: Any) -> dict[str, Any]:
    if isinstance(result, BaseModel):
        return result.model_dump(by_alias=True, exclude_none=True)
    if isinstance(result, dict):
        return result
    return {}


class LowLevelServer:
    """Handler registry and dispatch.

    Usage:
        server = LowLevelServer(name="mcp-searchapi-server", version="1.0.0")

        @server.request_handler("tools/list")
        async def list_tools(ctx: RequestContext, request: JSONRPCRequest) -> ListToolsResult:
            return ListToolsResult(tools=[tool.definition()])

    A request handler may return a pydantic model, a dict, or None (an empty
    result). Raising McpError sends that error to the client; any other
    exception is logged and reported as an internal error.
    """

    def __init__(self, *, name: str, version: str, instructions: str | None = None) -> None:
        self.name = name
        self.version = version
        self.instructions = instructions
        self._request_handlers: dict[str, RequestHandler] = {}
        self._notification_handlers: dict[str, NotificationHandler] = {}

    def request_handler(self, method: str) -> Callable[[RequestHandler], RequestHandler]:
        def decorator(fn: RequestHandler) -> RequestHandler:
            self._request_handlers[method] = fn
            return fn

        return decorator

    def notification_handler(self, method: str) -> Callable[[NotificationHandler], NotificationHandler]:
        def decorator(fn: NotificationHandler) -> NotificationHandler:
            self._notification_handlers[method] = fn
            return fn

        return decorator

    async def dispatch_request(self, ctx: RequestContext, request: JSONRPCRequest) -> JSONRPCResponse:
        handler = self._request_handlers.get(request.method)
        if handler is None:
            return error_response(METHOD_NOT_FOUND, f"Method not found: {request.method}", request.id)

        try:
            result = await handler(ctx, request)
        except McpError as e:
            logger.debug("%s rejected: %s", request.method, e.error.message)
            return JSONRPCErrorResponse(id=request.id, error=e.error)
        except Exception:
            logger.exception("Unhandled error in %s handler", request.method)
            return error_response(INTERNAL_ERROR, "Internal error", request.id)
        return JSONRPCResultResponse(id=request.id, result=_result_payload(result))

    async def dispatch_notification(self, ctx: RequestContext, notification: JSONRPCNotification) -> None:
        """Run the notification's handler, if any. Errors are logged; there is no one to report them to."""
        handler = self._notification_handlers.get(notification.method)
        if handler is None:
            logger.debug("No handler for notification %s", notification.method)
            return
        try:
            await handler(ctx, notification)
        except Exception:
            logger.exception("Unhandled error in %s handler", notification.method)

    def get_capabilities(self) -> ServerCapabilities:
        """Capabilities advertised in the initialize result, derived from the registered methods."""
        caps = ServerCapabilities()
        if {"tools/list", "tools/call"} & self._request_handlers.keys():
            caps.tools = {"listChanged": False}
        if "logging/setLevel" in self._request_handlers:
            caps.logging = {}
        return caps
