"""Protocol gateway: routes HTTP requests on the MCP endpoint to session channels."""

from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

import anyio
from anyio.abc import TaskGroup
from pydantic import ValidationError
from sse_starlette import EventSourceResponse
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import Message, Receive, Scope, Send

from searchapi_mcp.exceptions import ChannelClosedError, PushStreamConflictError
from searchapi_mcp.server import LowLevelServer
from searchapi_mcp.transport.channel import (
    AcceptedResponse,
    JSONResult,
    PostResult,
    SessionChannel,
    SSEStream,
)
from searchapi_mcp.transport.http_body import DEFAULT_MAX_BODY_BYTES, BodyTooLargeError, read_request_body
from searchapi_mcp.transport.lifecycle import LifecycleSupervisor
from searchapi_mcp.transport.registry import SessionRegistry
from searchapi_mcp.transport.sink import SinkEvent
from searchapi_mcp.types.json_rpc import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    NO_VALID_SESSION,
    PARSE_ERROR,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
    JSONRPCRequest,
    error_response,
)

logger = logging.getLogger(__name__)

MCP_SESSION_ID_HEADER = "mcp-session-id"
CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_SSE = "text/event-stream"
NO_VALID_SESSION_MESSAGE = "Bad Request: No valid session ID provided"

ServerFactory = Callable[[], LowLevelServer]


# --- Classification ---


@dataclass(frozen=True)
class Init:
    """Start a new session."""


@dataclass(frozen=True)
class Resume:
    """Forward to the live session ``session_id``."""

    session_id: str


@dataclass(frozen=True)
class Invalid:
    """Neither a valid initialization nor a known session."""


Classification = Init | Resume | Invalid


def is_initialize_request(message: JSONRPCMessage) -> bool:
    return isinstance(message, JSONRPCRequest) and message.method == "initialize"


def classify_inbound(session_id: str | None, *, is_init_request: bool, session_exists: bool) -> Classification:
    """Decide what an inbound POST does before anything is touched.

    A known session id always resumes, even for an initialize frame (the
    channel then refuses the second handshake). No session id plus an
    initialize frame creates a session. Everything else is invalid.
    """
    if session_id is not None and session_exists:
        return Resume(session_id)
    if session_id is None and is_init_request:
        return Init()
    return Invalid()


# --- Response helpers ---


class _ResponseStartTracker:
    """ASGI send wrapper recording whether response headers have gone out."""

    def __init__(self, send: Send) -> None:
        self._send = send
        self.started = False

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.started = True
        await self._send(message)


def _session_headers(session_id: str | None) -> dict[str, str]:
    return {MCP_SESSION_ID_HEADER: session_id} if session_id else {}


def _dump_response(body: JSONRPCMessage) -> dict[str, Any]:
    data = body.model_dump(by_alias=True, exclude_none=True)
    if isinstance(body, JSONRPCErrorResponse) and body.id is None:
        data["id"] = None
    return data


def _jsonrpc_error(
    status_code: int,
    code: int,
    message: str,
    *,
    session_id: str | None = None,
) -> JSONResponse:
    return JSONResponse(
        _dump_response(error_response(code, message)),
        status_code=status_code,
        headers=_session_headers(session_id),
    )


def _describe(message: JSONRPCMessage | None) -> str:
    """Short description of a frame for error logs, including the search query of a tool call."""
    if message is None:
        return "<unparsed>"
    method = getattr(message, "method", None)
    if method is None:
        return "<response>"
    params = getattr(message, "params", None) or {}
    if method == "tools/call":
        # Arguments are unvalidated here and may be any JSON value
        arguments = params.get("arguments")
        query = arguments.get("query") if isinstance(arguments, dict) else None
        return f"tools/call {params.get('name')!r} query={query!r}"
    return method


class ProtocolGateway:
    """Routes requests on the MCP endpoint to per-session channels.

    Owns the session registry. Each new session gets its own channel and a
    fresh server from ``server_factory``; the lifecycle supervisor drops
    registry entries as channels close.

    Only one gateway should exist per application, and its run() context
    can only be entered once. Use it in the Starlette lifespan:

        async with gateway.run():
            yield

    Args:
        server_factory: Builds the LowLevelServer for a new channel.
        session_idle_timeout: Seconds of inactivity after which a session is
            closed. None disables expiry.
        max_body_bytes: Cap on POST body size.
        session_id_generator: Overrides the channel's id generator.
    """

    def __init__(
        self,
        server_factory: ServerFactory,
        *,
        session_idle_timeout: float | None = None,
        max_body_bytes: int | None = DEFAULT_MAX_BODY_BYTES,
        session_id_generator: Callable[[], str] | None = None,
    ) -> None:
        self.server_factory = server_factory
        self.session_idle_timeout = session_idle_timeout
        self.max_body_bytes = max_body_bytes
        self._session_id_generator = session_id_generator

        self.registry = SessionRegistry()
        self.supervisor = LifecycleSupervisor(self.registry)

        self._task_group: TaskGroup | None = None
        self._run_lock = anyio.Lock()
        self._has_started = False

    @contextlib.asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        """Provide the task group all channels run their handlers in.

        Leaving the context cancels in-flight handlers and drops every session
        without flushing anything to clients.
        """
        async with self._run_lock:
            if self._has_started:
                raise RuntimeError(
                    "ProtocolGateway .run() can only be called once per instance. "
                    "Create a new instance if you need to run again."
                )
            self._has_started = True

        async with anyio.create_task_group() as tg:
            self._task_group = tg
            if self.session_idle_timeout is not None:
                tg.start_soon(self.supervisor.sweep_idle, self.session_idle_timeout)
            logger.info("Protocol gateway started")
            try:
                yield
            finally:
                logger.info("Protocol gateway shutting down")
                tg.cancel_scope.cancel()
                self._task_group = None
                await self.supervisor.shutdown()

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI entry point for the MCP endpoint."""
        if self._task_group is None:
            raise RuntimeError("Task group is not initialized. Make sure to use run().")

        method = scope["method"]
        if method == "POST":
            await self.handle_inbound(scope, receive, send)
        elif method == "GET":
            await self.handle_notification_stream(scope, receive, send)
        elif method == "DELETE":
            await self.handle_termination(scope, receive, send)
        else:
            response = Response(
                "Method Not Allowed",
                status_code=HTTPStatus.METHOD_NOT_ALLOWED,
                headers={"Allow": "GET, POST, DELETE"},
            )
            await response(scope, receive, send)

    # --- POST ---

    async def handle_inbound(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Classify a client frame and forward it to a new or existing session."""
        request = Request(scope, receive)
        tracked_send = _ResponseStartTracker(send)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        message: JSONRPCMessage | None = None
        created: SessionChannel | None = None

        try:
            parsed = await self._read_message(request)
            if isinstance(parsed, Response):
                await parsed(scope, receive, tracked_send)
                return
            message = parsed

            existing = self.registry.get(session_id) if session_id is not None else None
            decision = classify_inbound(
                session_id,
                is_init_request=is_initialize_request(message),
                session_exists=existing is not None and not existing.is_closed,
            )

            if isinstance(decision, Invalid):
                logger.debug("Rejected %s: no valid session (header %r)", _describe(message), session_id)
                response = _jsonrpc_error(HTTPStatus.BAD_REQUEST, NO_VALID_SESSION, NO_VALID_SESSION_MESSAGE)
                await response(scope, receive, tracked_send)
                return

            if isinstance(decision, Init):
                created = self._create_channel()
                channel = created
            else:
                assert existing is not None
                channel = existing

            try:
                result = await channel.handle_post(message)
            except ChannelClosedError:
                # Closed between lookup and forward
                response = _jsonrpc_error(HTTPStatus.BAD_REQUEST, NO_VALID_SESSION, NO_VALID_SESSION_MESSAGE)
                await response(scope, receive, tracked_send)
                return

            if created is not None and created.session_id is None:
                # The handshake was rejected before an id was issued
                await created.close("initialization rejected")
                created = None

            await self._write_post_result(result, scope, receive, tracked_send)
        except Exception:
            logger.exception("Error handling %s for session %s", _describe(message), session_id)
            if created is not None:
                await created.close("initialization failed")
            if tracked_send.started:
                return
            response = _jsonrpc_error(HTTPStatus.INTERNAL_SERVER_ERROR, INTERNAL_ERROR, "Internal server error")
            await response(scope, receive, send)

    async def _read_message(self, request: Request) -> JSONRPCMessage | Response:
        """Validate headers and body. Returns the parsed frame or the error response to send."""
        content_type = request.headers.get("content-type", "")
        if CONTENT_TYPE_JSON not in content_type:
            return _jsonrpc_error(
                HTTPStatus.UNSUPPORTED_MEDIA_TYPE,
                INVALID_REQUEST,
                "Unsupported Media Type: Content-Type must be application/json",
            )

        accept = request.headers.get("accept", "")
        if CONTENT_TYPE_JSON not in accept or CONTENT_TYPE_SSE not in accept:
            return _jsonrpc_error(
                HTTPStatus.NOT_ACCEPTABLE,
                INVALID_REQUEST,
                "Not Acceptable: Client must accept both application/json and text/event-stream",
            )

        try:
            body = await read_request_body(request, max_body_bytes=self.max_body_bytes)
        except BodyTooLargeError as e:
            return _jsonrpc_error(HTTPStatus.REQUEST_ENTITY_TOO_LARGE, INVALID_REQUEST, f"Payload Too Large: {e}")

        try:
            raw = json.loads(body)
        except ValueError:
            return _jsonrpc_error(HTTPStatus.BAD_REQUEST, PARSE_ERROR, "Parse error: Invalid JSON")

        if isinstance(raw, list):
            return _jsonrpc_error(
                HTTPStatus.BAD_REQUEST, INVALID_REQUEST, "Invalid Request: Batch messages are not supported"
            )

        try:
            return JSONRPCMessageAdapter.validate_python(raw)
        except ValidationError:
            return _jsonrpc_error(HTTPStatus.BAD_REQUEST, INVALID_REQUEST, "Invalid Request: Not a JSON-RPC 2.0 message")

    def _create_channel(self) -> SessionChannel:
        assert self._task_group is not None

        def register(session_id: str) -> None:
            self.registry.put(session_id, channel)
            logger.info("Created session %s", session_id)

        kwargs: dict[str, Any] = {}
        if self._session_id_generator is not None:
            kwargs["session_id_generator"] = self._session_id_generator
        channel = SessionChannel(
            self.server_factory(),
            self._task_group,
            on_session_initialized=register,
            **kwargs,
        )
        self.supervisor.bind(channel)
        return channel

    async def _write_post_result(self, result: PostResult, scope: Scope, receive: Receive, send: Send) -> None:
        if isinstance(result, AcceptedResponse):
            response: Response = Response(
                status_code=HTTPStatus.ACCEPTED,
                headers=_session_headers(result.session_id),
            )
        elif isinstance(result, JSONResult):
            response = JSONResponse(
                _dump_response(result.body),
                status_code=result.status_code,
                headers=_session_headers(result.session_id),
            )
        else:
            response = EventSourceResponse(
                _sse_events(result),
                headers=_session_headers(result.session_id),
            )
        await response(scope, receive, send)

    # --- GET ---

    async def handle_notification_stream(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Open the long-lived server-to-client SSE stream of an existing session."""
        request = Request(scope, receive)

        if CONTENT_TYPE_SSE not in request.headers.get("accept", ""):
            response = Response(
                "Not Acceptable: Client must accept text/event-stream",
                status_code=HTTPStatus.NOT_ACCEPTABLE,
            )
            await response(scope, receive, send)
            return

        channel = self._lookup(request)
        if channel is None:
            await _no_valid_session_response(scope, receive, send)
            return

        try:
            stream = channel.open_notification_stream()
        except PushStreamConflictError:
            response = Response(
                "Conflict: Only one notification stream is allowed per session",
                status_code=HTTPStatus.CONFLICT,
                headers=_session_headers(channel.session_id),
            )
            await response(scope, receive, send)
            return
        except ChannelClosedError:
            await _no_valid_session_response(scope, receive, send)
            return

        async def events() -> AsyncIterator[dict[str, str]]:
            async with stream:
                async for event in stream:
                    yield _sse_message(event)

        logger.debug("Serving push stream for session %s", channel.session_id)
        try:
            response = EventSourceResponse(events(), headers=_session_headers(channel.session_id))
            await response(scope, receive, send)
        finally:
            channel.release_notification_stream()

    # --- DELETE ---

    async def handle_termination(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Terminate an existing session on the client's request."""
        request = Request(scope, receive)
        channel = self._lookup(request)
        if channel is None:
            await _no_valid_session_response(scope, receive, send)
            return

        session_id = channel.session_id
        await channel.terminate()
        response = Response(status_code=HTTPStatus.OK, headers=_session_headers(session_id))
        await response(scope, receive, send)

    def _lookup(self, request: Request) -> SessionChannel | None:
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        if session_id is None:
            return None
        channel = self.registry.get(session_id)
        if channel is None or channel.is_closed:
            return None
        return channel


def _sse_message(event: SinkEvent) -> dict[str, str]:
    message: dict[str, str] = {
        "event": "message",
        "data": event.message.model_dump_json(by_alias=True, exclude_none=True),
    }
    if event.event_id is not None:
        message["id"] = event.event_id
    return message


async def _sse_events(result: SSEStream) -> AsyncIterator[dict[str, str]]:
    try:
        yield _sse_message(result.first_event)
        async for event in result.event_stream:
            yield _sse_message(event)
    finally:
        result.event_stream.close()


async def _no_valid_session_response(scope: Scope, receive: Receive, send: Send) -> None:
    response = Response(NO_VALID_SESSION_MESSAGE, status_code=HTTPStatus.BAD_REQUEST)
    await response(scope, receive, send)
