"""Process-wide mapping from session id to the channel serving it."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from searchapi_mcp.exceptions import SessionConflictError

if TYPE_CHECKING:
    from searchapi_mcp.transport.channel import SessionChannel

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Session id -> live channel.

    Only touched from the event loop thread (the gateway's request handling
    and the lifecycle supervisor's close handler), so no lock is taken.
    Nothing is persisted: a restart starts empty and clients must re-initialize.
    """

    def __init__(self) -> None:
        self._channels: dict[str, SessionChannel] = {}

    def put(self, session_id: str, channel: SessionChannel) -> None:
        """Register a channel. At most one live channel may exist per id."""
        if session_id in self._channels:
            raise SessionConflictError(session_id)
        self._channels[session_id] = channel
        logger.debug("Registered session %s (%d active)", session_id, len(self._channels))

    def get(self, session_id: str) -> SessionChannel | None:
        return self._channels.get(session_id)

    def remove(self, session_id: str) -> bool:
        """Drop a session. Removing an unknown id is a no-op, so racing cleanups are safe."""
        channel = self._channels.pop(session_id, None)
        if channel is None:
            return False
        logger.debug("Removed session %s (%d active)", session_id, len(self._channels))
        return True

    def clear(self) -> None:
        self._channels.clear()

    def channels(self) -> list[SessionChannel]:
        """Snapshot of the live channels, safe to iterate while the registry changes."""
        return list(self._channels.values())

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._channels

    def __len__(self) -> int:
        return len(self._channels)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._channels))
