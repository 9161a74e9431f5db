"""Streamable HTTP transport: per-session channels, the session registry and the gateway."""

from searchapi_mcp.transport.channel import ChannelClosed, SessionChannel
from searchapi_mcp.transport.gateway import MCP_SESSION_ID_HEADER, ProtocolGateway, classify_inbound
from searchapi_mcp.transport.lifecycle import LifecycleSupervisor
from searchapi_mcp.transport.registry import SessionRegistry

__all__ = [
    "MCP_SESSION_ID_HEADER",
    "ChannelClosed",
    "LifecycleSupervisor",
    "ProtocolGateway",
    "SessionChannel",
    "SessionRegistry",
    "classify_inbound",
]
