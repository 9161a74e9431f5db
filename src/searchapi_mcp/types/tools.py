"""Models for ``tools/list`` and ``tools/call``."""

from typing import Annotated, Any, Literal

from pydantic import Field

from searchapi_mcp.types.protocol import MCPModel, RequestParams, Result, TextContent


class JsonSchema(MCPModel):
    """A tool's input schema. Always an object; extra JSON Schema keywords pass through."""

    type: Literal["object"] = "object"
    properties: dict[str, Any] | None = None
    required: list[str] | None = None


class ToolAnnotations(MCPModel):
    """Behaviour hints shown to clients. Advisory only."""

    read_only_hint: Annotated[bool | None, Field(alias="readOnlyHint")] = None
    destructive_hint: Annotated[bool | None, Field(alias="destructiveHint")] = None
    idempotent_hint: Annotated[bool | None, Field(alias="idempotentHint")] = None
    open_world_hint: Annotated[bool | None, Field(alias="openWorldHint")] = None


class Tool(MCPModel):
    name: str
    title: str | None = None
    description: str | None = None
    input_schema: Annotated[JsonSchema, Field(alias="inputSchema")]
    annotations: ToolAnnotations | None = None


class ListToolsResult(Result):
    tools: list[Tool]


class CallToolRequestParams(RequestParams):
    name: str
    arguments: dict[str, Any] | None = None


class CallToolResult(Result):
    """Outcome of a tool call.

    A tool that ran but failed still produces a result, with ``is_error`` set
    and the failure described in ``content``. Protocol-level problems (unknown
    tool, bad arguments) are JSON-RPC errors instead.
    """

    content: list[TextContent]
    is_error: Annotated[bool, Field(alias="isError")] = False
