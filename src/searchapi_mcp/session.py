"""Protocol-level session state from the init handshake."""

from __future__ import annotations

from dataclasses import dataclass

from searchapi_mcp.types.protocol import ClientCapabilities, Implementation


@dataclass(frozen=True)
class SessionInfo:
    """Immutable protocol-level session state, created during the init handshake.

    Transport-level session state (session id, push stream, activity clock)
    lives on the channel, not here.
    """

    client_info: Implementation
    client_capabilities: ClientCapabilities
    protocol_version: str
