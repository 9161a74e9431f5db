"""Keeps the session registry in step with channel lifetimes."""

from __future__ import annotations

import logging

import anyio

from searchapi_mcp.transport.channel import ChannelClosed, SessionChannel
from searchapi_mcp.transport.registry import SessionRegistry

logger = logging.getLogger(__name__)

MAX_SWEEP_INTERVAL = 30.0


class LifecycleSupervisor:
    """Removes sessions from the registry when their channels close.

    Every channel is bound exactly once, right after it is created. Close
    events may arrive more than once per channel (termination followed by
    shutdown, say); removal is idempotent so repeats are harmless.
    """

    def __init__(self, registry: SessionRegistry) -> None:
        self._registry = registry

    def bind(self, channel: SessionChannel) -> None:
        channel.subscribe(lambda event: self._on_channel_closed(channel, event))

    def _on_channel_closed(self, channel: SessionChannel, event: ChannelClosed) -> None:
        # A channel that never completed initialize was never registered
        if event.session_id is None:
            return
        # The id may belong to another channel if this one lost a registration conflict
        if self._registry.get(event.session_id) not in (None, channel):
            return
        if self._registry.remove(event.session_id):
            logger.info("Session %s removed (%s)", event.session_id, event.reason)

    async def sweep_idle(self, idle_timeout: float) -> None:
        """Close every channel idle for longer than ``idle_timeout`` seconds. Runs until cancelled."""
        interval = min(idle_timeout / 2, MAX_SWEEP_INTERVAL)
        logger.debug("Idle sweeper started (timeout %.1fs, interval %.1fs)", idle_timeout, interval)
        while True:
            await anyio.sleep(interval)
            for channel in self._registry.channels():
                # An open push stream means the client is still listening
                if channel.has_push_stream:
                    continue
                if channel.idle_seconds() > idle_timeout:
                    await channel.close("idle timeout")

    async def shutdown(self) -> None:
        """Close all live channels and empty the registry. In-flight handlers are not waited for."""
        channels = self._registry.channels()
        if channels:
            logger.info("Closing %d active session(s)", len(channels))
        with anyio.CancelScope(shield=True):
            for channel in channels:
                await channel.close("shutdown")
        self._registry.clear()
