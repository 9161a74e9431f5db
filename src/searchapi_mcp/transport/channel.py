"""SessionChannel - the duplex, per-session communication handle.

One channel serves one client session. It owns the session's protocol state
(handshake result, push stream, activity clock), runs request handlers in the
gateway's task group and turns their output into something the HTTP layer can
write: a plain JSON response, an SSE stream, or a bare 202.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

import anyio
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from pydantic import ValidationError

from searchapi_mcp.exceptions import ChannelClosedError, PushStreamConflictError
from searchapi_mcp.runner import RunningServer
from searchapi_mcp.server import LowLevelServer
from searchapi_mcp.session import SessionInfo
from searchapi_mcp.transport.sink import ChannelSink, NullSink, SinkEvent
from searchapi_mcp.types.json_rpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    error_response,
)
from searchapi_mcp.types.protocol import InitializeRequestParams

logger = logging.getLogger(__name__)

# Per-request event buffer; a handler may emit this many notifications before the HTTP side catches up
REQUEST_STREAM_BUFFER = 16
# Push notifications beyond this backlog are dropped rather than blocking a handler
PUSH_STREAM_BUFFER = 32


# --- Post result types ---


@dataclass
class AcceptedResponse:
    """Notification or client response accepted. Ack with 202."""

    session_id: str | None


@dataclass
class JSONResult:
    """Handler completed without intermediate messages. Return as JSON."""

    body: JSONRPCResponse
    session_id: str | None
    status_code: int = 200


@dataclass
class SSEStream:
    """Handler is streaming. First event already available."""

    first_event: SinkEvent
    event_stream: MemoryObjectReceiveStream[SinkEvent]
    session_id: str | None


PostResult = AcceptedResponse | JSONResult | SSEStream


@dataclass(frozen=True)
class ChannelClosed:
    """Emitted by a channel each time it is closed."""

    session_id: str | None
    reason: str


CloseListener = Callable[[ChannelClosed], None]
SessionInitializedCallback = Callable[[str], None]


def _default_session_id() -> str:
    return uuid4().hex


class SessionChannel:
    """Duplex handle for one client session.

    Args:
        server: A LowLevelServer dedicated to this channel.
        task_group: Where request handlers run. Handlers outlive the HTTP
            exchange that started them; if the client is gone by the time
            they finish, their output is discarded.
        session_id_generator: Produces the session id during initialize.
        on_session_initialized: Called with the generated id before the
            initialize frame is processed. The gateway registers the channel here.
    """

    def __init__(
        self,
        server: LowLevelServer,
        task_group: TaskGroup,
        *,
        session_id_generator: Callable[[], str] = _default_session_id,
        on_session_initialized: SessionInitializedCallback | None = None,
    ) -> None:
        self._running = RunningServer(server, push=self.send_notification)
        self._task_group = task_group
        self._session_id_generator = session_id_generator
        self._on_session_initialized = on_session_initialized

        self.session_id: str | None = None
        self.created_at = datetime.now(timezone.utc)
        self.closed = anyio.Event()

        self._session_info: SessionInfo | None = None
        self._push_stream: MemoryObjectSendStream[SinkEvent] | None = None
        self._close_listener: CloseListener | None = None
        self._is_closed = False
        self._last_activity = anyio.current_time()

    @property
    def is_closed(self) -> bool:
        return self._is_closed

    @property
    def session_info(self) -> SessionInfo | None:
        return self._session_info

    @property
    def has_push_stream(self) -> bool:
        return self._push_stream is not None

    def idle_seconds(self) -> float:
        return anyio.current_time() - self._last_activity

    def touch(self) -> None:
        self._last_activity = anyio.current_time()

    def subscribe(self, listener: CloseListener) -> None:
        """Register the single consumer of this channel's close events."""
        if self._close_listener is not None:
            raise RuntimeError(f"Channel for session {self.session_id} already has a close subscriber")
        self._close_listener = listener

    # --- inbound frames ---

    async def handle_post(self, message: JSONRPCMessage) -> PostResult:
        """Forward one client frame into the session and describe the HTTP answer."""
        if self._is_closed:
            raise ChannelClosedError(self.session_id)
        self.touch()

        if isinstance(message, JSONRPCRequest) and message.method == "initialize":
            return self._handle_initialize(message)

        if isinstance(message, JSONRPCNotification):
            self._task_group.start_soon(self._run_notification, message)
            return AcceptedResponse(session_id=self.session_id)

        if not isinstance(message, JSONRPCRequest):
            await self._running.handle_message(NullSink(), message, session=self._session_info)
            return AcceptedResponse(session_id=self.session_id)

        send, recv = anyio.create_memory_object_stream[SinkEvent](REQUEST_STREAM_BUFFER)
        sink = ChannelSink(send)
        self._task_group.start_soon(self._run_handler, sink, message)

        try:
            first = await recv.receive()
        except anyio.EndOfStream:
            # Handler closed the sink without answering
            recv.close()
            return JSONResult(
                body=error_response(INTERNAL_ERROR, "Internal error", message.id),
                session_id=self.session_id,
            )
        except BaseException:
            recv.close()
            raise

        if first.is_final:
            recv.close()
            return JSONResult(body=first.message, session_id=self.session_id)  # type: ignore[arg-type]

        return SSEStream(first_event=first, event_stream=recv, session_id=self.session_id)

    def _handle_initialize(self, request: JSONRPCRequest) -> JSONResult:
        if self.session_id is not None:
            return JSONResult(
                body=error_response(INVALID_REQUEST, "Invalid Request: Server already initialized", request.id),
                session_id=self.session_id,
                status_code=400,
            )

        try:
            params = InitializeRequestParams.model_validate(request.params)
        except ValidationError as e:
            logger.debug("Rejected initialize request: %s", e)
            return JSONResult(
                body=error_response(INVALID_PARAMS, "Invalid params: malformed initialize request", request.id),
                session_id=None,
                status_code=400,
            )

        # Registered before the handshake runs; a resume racing this response must find the session
        self.session_id = self._session_id_generator()
        if self._on_session_initialized is not None:
            self._on_session_initialized(self.session_id)

        self._session_info, response = self._running.initialize(request.id, params)
        return JSONResult(body=response, session_id=self.session_id)

    async def _run_handler(self, sink: ChannelSink, message: JSONRPCRequest) -> None:
        try:
            await self._running.handle_message(sink, message, session=self._session_info)
        except Exception:
            logger.exception("Handler error for %s in session %s", message.method, self.session_id)
        finally:
            await sink.close()
        if sink.discarded:
            logger.debug(
                "Discarded response to request %r in session %s: the client is no longer listening",
                message.id,
                self.session_id,
            )

    async def _run_notification(self, message: JSONRPCNotification) -> None:
        try:
            await self._running.handle_message(NullSink(), message, session=self._session_info)
        except Exception:
            logger.exception("Notification handler error in session %s", self.session_id)

    # --- server-initiated push stream ---

    def open_notification_stream(self) -> MemoryObjectReceiveStream[SinkEvent]:
        """Open the session's push stream. Only one may be open at a time."""
        if self._is_closed:
            raise ChannelClosedError(self.session_id)
        if self._push_stream is not None:
            raise PushStreamConflictError(self.session_id)
        self.touch()
        send, recv = anyio.create_memory_object_stream[SinkEvent](PUSH_STREAM_BUFFER)
        self._push_stream = send
        logger.debug("Push stream opened for session %s", self.session_id)
        return recv

    def release_notification_stream(self) -> None:
        if self._push_stream is None:
            return
        self._push_stream.close()
        self._push_stream = None
        logger.debug("Push stream released for session %s", self.session_id)

    async def send_notification(self, notification: JSONRPCNotification) -> None:
        """Push a server-initiated notification; dropped when no push stream is open."""
        stream = self._push_stream
        if stream is None:
            logger.debug("No push stream for session %s, dropping %s", self.session_id, notification.method)
            return
        try:
            stream.send_nowait(SinkEvent(message=notification))
        except anyio.WouldBlock:
            logger.warning("Push stream for session %s is full, dropping %s", self.session_id, notification.method)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            self._push_stream = None

    # --- shutdown ---

    async def terminate(self) -> None:
        """Explicit termination requested by the client."""
        await self.close("terminated")

    async def close(self, reason: str = "closed") -> None:
        """Release the channel's resources and notify the subscriber.

        Resources are released once; the close event is emitted on every call.
        """
        if not self._is_closed:
            self._is_closed = True
            self.release_notification_stream()
            self.closed.set()
            logger.info("Session %s closed (%s)", self.session_id, reason)
        if self._close_listener is not None:
            self._close_listener(ChannelClosed(session_id=self.session_id, reason=reason))
