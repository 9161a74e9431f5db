"""What a request handler sees of the outside world."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from searchapi_mcp.session import SessionInfo
from searchapi_mcp.types.json_rpc import JSONRPCMessage, JSONRPCNotification, JSONRPCResponse, RequestId

PushNotification = Callable[[JSONRPCNotification], Awaitable[None]]


@runtime_checkable
class ResponseSink(Protocol):
    """Where the output of one request goes.

    Notifications sent before the result turn the HTTP answer into an SSE
    stream; a lone result goes back as plain JSON.
    """

    async def send_intermediate(self, message: JSONRPCMessage) -> None: ...

    async def send_result(self, response: JSONRPCResponse) -> None:
        """Deliver the final response. Nothing may follow it."""
        ...

    async def close(self) -> None:
        """End the exchange without a result, e.g. after a handler crash."""
        ...


async def _drop(notification: JSONRPCNotification) -> None:
    return None


@dataclass
class RequestContext:
    """Per-request handle passed to every handler.

    ``send_notification`` rides on the response to the current request.
    ``push_notification`` goes out on the session's GET stream instead and is
    dropped when the client has none open.
    """

    session: SessionInfo | None
    request_id: RequestId | None
    _sink: ResponseSink
    _push: PushNotification = _drop

    async def send_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        await self._sink.send_intermediate(JSONRPCNotification(method=method, params=params))

    async def push_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        await self._push(JSONRPCNotification(method=method, params=params))
