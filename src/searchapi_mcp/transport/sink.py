"""Response sinks used by SessionChannel."""

from __future__ import annotations

from dataclasses import dataclass

import anyio
from anyio.streams.memory import MemoryObjectSendStream

from searchapi_mcp.types.json_rpc import JSONRPCMessage, JSONRPCResponse


@dataclass
class SinkEvent:
    """One outgoing frame, as handed to the HTTP side."""

    message: JSONRPCMessage
    event_id: str | None = None
    is_final: bool = False


class ChannelSink:
    """Feeds a handler's output into a memory stream read by the HTTP response.

    If the reading side is gone (client disconnected, session closed) further
    output is dropped and ``discarded`` is set so the channel can log it.
    """

    def __init__(self, send_stream: MemoryObjectSendStream[SinkEvent]) -> None:
        self._send = send_stream
        self._done = False
        self.discarded = False

    async def send_intermediate(self, message: JSONRPCMessage) -> None:
        if not self._done:
            await self._put(SinkEvent(message=message))

    async def send_result(self, response: JSONRPCResponse) -> None:
        if self._done:
            return
        await self._put(SinkEvent(message=response, is_final=True))
        await self.close()

    async def close(self) -> None:
        if self._done:
            return
        self._done = True
        # Must complete even while the handler task is being cancelled
        with anyio.CancelScope(shield=True):
            await self._send.aclose()

    async def _put(self, event: SinkEvent) -> None:
        try:
            await self._send.send(event)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            self.discarded = True
            await self.close()


class NullSink:
    """For frames that never get an answer: notifications and client responses."""

    async def send_intermediate(self, message: JSONRPCMessage) -> None:
        pass

    async def send_result(self, response: JSONRPCResponse) -> None:
        pass

    async def close(self) -> None:
        pass
