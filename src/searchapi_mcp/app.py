"""Server and ASGI application assembly."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from searchapi_mcp import __version__
from searchapi_mcp.config import Settings
from searchapi_mcp.context import RequestContext
from searchapi_mcp.exceptions import McpError
from searchapi_mcp.searchapi.client import SearchApiClient
from searchapi_mcp.server import LowLevelServer
from searchapi_mcp.tools.shopping import ShoppingSearchTool
from searchapi_mcp.transport.gateway import ProtocolGateway
from searchapi_mcp.types.json_rpc import INVALID_PARAMS, JSONRPCRequest
from searchapi_mcp.types.logging import (
    LoggingLevel,
    LoggingMessageNotificationParams,
    SetLevelRequestParams,
    is_level_enabled,
)
from searchapi_mcp.types.protocol import EmptyResult
from searchapi_mcp.types.tools import CallToolRequestParams, CallToolResult, ListToolsResult

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp-searchapi-server"
MCP_PATH = "/mcp"
HEALTH_PATH = "/health"


def create_server(search_client: SearchApiClient) -> LowLevelServer:
    """Build the server for one session, with its own tool handler and log level."""
    server = LowLevelServer(name=SERVER_NAME, version=__version__)
    tool = ShoppingSearchTool(search_client)
    log_level: LoggingLevel | None = None

    async def send_log(ctx: RequestContext, level: LoggingLevel, data: Any) -> None:
        if not is_level_enabled(level, log_level):
            return
        params = LoggingMessageNotificationParams(level=level, logger=tool.name, data=data)
        await ctx.push_notification("notifications/message", params.model_dump(by_alias=True, exclude_none=True))

    @server.request_handler("tools/list")
    async def list_tools(ctx: RequestContext, request: JSONRPCRequest) -> ListToolsResult:
        return ListToolsResult(tools=[tool.definition()])

    @server.request_handler("tools/call")
    async def call_tool(ctx: RequestContext, request: JSONRPCRequest) -> CallToolResult:
        try:
            params = CallToolRequestParams.model_validate(request.params)
        except ValidationError as e:
            raise McpError.from_code(INVALID_PARAMS, "Invalid params: tools/call requires a tool name") from e
        if params.name != tool.name:
            raise McpError.from_code(INVALID_PARAMS, f"Unknown tool: {params.name}")

        progress_token = (params.meta or {}).get("progressToken")

        async def report_progress(progress: float, message: str) -> None:
            # Only clients that asked for progress get it; it turns the reply into an SSE stream
            if progress_token is None:
                return
            await ctx.send_notification(
                "notifications/progress",
                {"progressToken": progress_token, "progress": progress, "total": 1, "message": message},
            )

        await report_progress(0, "Searching Google Shopping")
        result = await tool.call(params.arguments)
        await report_progress(1, "Search finished")
        query = (params.arguments or {}).get("query")
        if result.is_error:
            await send_log(ctx, "error", {"message": result.content[0].text, "query": query})
        else:
            await send_log(ctx, "info", {"message": "Google Shopping search completed", "query": query})
        return result

    @server.request_handler("logging/setLevel")
    async def set_level(ctx: RequestContext, request: JSONRPCRequest) -> EmptyResult:
        nonlocal log_level
        try:
            params = SetLevelRequestParams.model_validate(request.params)
        except ValidationError as e:
            raise McpError.from_code(INVALID_PARAMS, "Invalid params: unknown logging level") from e
        log_level = params.level
        logger.debug("Client log level set to %s", log_level)
        return EmptyResult()

    return server


class StreamableHTTPASGIApp:
    """ASGI application for the MCP endpoint."""

    def __init__(self, gateway: ProtocolGateway):
        self.gateway = gateway

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.gateway.handle_request(scope, receive, send)


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "service": SERVER_NAME})


def create_app(settings: Settings, search_client: SearchApiClient | None = None) -> Starlette:
    """Create the Starlette app serving ``/health`` and the MCP endpoint.

    The gateway runs for the lifetime of the app. When no ``search_client``
    is given one is built from the settings and closed on shutdown.
    """
    owns_client = search_client is None
    client = search_client or SearchApiClient(
        settings.searchapi_api_key.get_secret_value(),
        base_url=settings.searchapi_base_url,
        timeout_ms=settings.searchapi_timeout,
    )
    gateway = ProtocolGateway(
        lambda: create_server(client),
        session_idle_timeout=settings.session_idle_timeout,
        max_body_bytes=settings.max_body_bytes,
    )

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        try:
            async with gateway.run():
                logger.info(
                    "MCP SearchAPI Server started (health: %s, mcp: %s)",
                    HEALTH_PATH,
                    MCP_PATH,
                )
                yield
        finally:
            if owns_client:
                await client.aclose()

    app = Starlette(
        routes=[
            Route(HEALTH_PATH, endpoint=health, methods=["GET"]),
            Route(MCP_PATH, endpoint=StreamableHTTPASGIApp(gateway)),
        ],
        lifespan=lifespan,
    )
    app.state.gateway = gateway
    return app
