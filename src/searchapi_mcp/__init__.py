"""MCP server exposing SearchAPI.io Google Shopping search over Streamable HTTP."""

__version__ = "1.0.0"
