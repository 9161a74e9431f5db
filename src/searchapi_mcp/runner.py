"""RunningServer - binds a LowLevelServer to one channel.

Handles the init handshake and ping internally; the LowLevelServer never sees
them as requests. They're protocol machinery, not application logic.
"""

from __future__ import annotations

import logging

from searchapi_mcp.context import PushNotification, RequestContext, ResponseSink
from searchapi_mcp.server import LowLevelServer
from searchapi_mcp.session import SessionInfo
from searchapi_mcp.types.json_rpc import (
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResultResponse,
    RequestId,
)
from searchapi_mcp.types.protocol import (
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    EmptyResult,
    Implementation,
    InitializeRequestParams,
    InitializeResult,
)

logger = logging.getLogger(__name__)


def negotiate_protocol_version(requested: str) -> str:
    """Echo the client's version when we speak it, otherwise offer our latest."""
    if requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return LATEST_PROTOCOL_VERSION


class RunningServer:
    """A server bound to a single session's channel, ready to handle frames."""

    def __init__(self, server: LowLevelServer, *, push: PushNotification | None = None) -> None:
        self._server = server
        self._push = push

    @property
    def server(self) -> LowLevelServer:
        return self._server

    def initialize(
        self, request_id: RequestId, params: InitializeRequestParams
    ) -> tuple[SessionInfo, JSONRPCResultResponse]:
        """Run the initialize handshake. Returns the new SessionInfo and the response to send."""
        protocol_version = negotiate_protocol_version(params.protocol_version)

        result = InitializeResult(
            protocol_version=protocol_version,
            capabilities=self._server.get_capabilities(),
            server_info=Implementation(name=self._server.name, version=self._server.version),
            instructions=self._server.instructions,
        )
        response = JSONRPCResultResponse(
            id=request_id,
            result=result.model_dump(by_alias=True, exclude_none=True),
        )
        session_info = SessionInfo(
            client_info=params.client_info,
            client_capabilities=params.capabilities,
            protocol_version=protocol_version,
        )
        logger.info(
            "Initialized session for client %s %s (protocol %s)",
            params.client_info.name,
            params.client_info.version,
            protocol_version,
        )
        return session_info, response

    async def handle_message(
        self,
        sink: ResponseSink,
        message: JSONRPCMessage,
        *,
        session: SessionInfo | None = None,
    ) -> None:
        """Dispatch a single non-initialize frame.

        For requests: dispatches to the server and responds via sink.
        For notifications: dispatches to the server; nothing is sent back.
        """
        if isinstance(message, JSONRPCRequest):
            if message.method == "ping":
                await sink.send_result(
                    JSONRPCResultResponse(id=message.id, result=EmptyResult().model_dump(exclude_none=True))
                )
                return

            ctx = self._context(sink, session, message.id)
            response = await self._server.dispatch_request(ctx, message)
            await sink.send_result(response)
            return

        if isinstance(message, JSONRPCNotification):
            if message.method == "notifications/initialized":
                # Nothing to do once the handshake has completed
                return
            ctx = self._context(sink, session, None)
            await self._server.dispatch_notification(ctx, message)
            return

        # This server never issues requests to the client, so any response
        # arriving here has nothing to resolve.
        logger.debug("Ignoring client response frame %r", getattr(message, "id", None))

    def _context(self, sink: ResponseSink, session: SessionInfo | None, request_id) -> RequestContext:
        if self._push is None:
            return RequestContext(session=session, request_id=request_id, _sink=sink)
        return RequestContext(session=session, request_id=request_id, _sink=sink, _push=self._push)
