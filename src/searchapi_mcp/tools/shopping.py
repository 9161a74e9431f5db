"""The ``google-shopping-search`` tool."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from searchapi_mcp.exceptions import McpError, SearchApiError, ToolError
from searchapi_mcp.searchapi.client import SearchApiClient
from searchapi_mcp.searchapi.formatting import format_full_response, format_shopping_results
from searchapi_mcp.searchapi.params import DEFAULT_NUM_RESULTS
from searchapi_mcp.types.json_rpc import INVALID_PARAMS
from searchapi_mcp.types.protocol import TextContent
from searchapi_mcp.types.tools import CallToolResult, JsonSchema, Tool, ToolAnnotations

logger = logging.getLogger(__name__)

TOOL_NAME = "google-shopping-search"
TOOL_DESCRIPTION = "Search for products on Google Shopping using SearchAPI.io"


class GoogleShoppingSearchArguments(BaseModel):
    """Arguments accepted by the tool, as agents send them (camelCase)."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    query: Annotated[
        str,
        Field(min_length=1, description='Search query for products (e.g., "iPhone 15", "running shoes")'),
    ]
    location: Annotated[
        str | None,
        Field(description='Location for search results (e.g., "United States", "New York")'),
    ] = None
    country: Annotated[
        str | None,
        Field(description='Country code for search results (e.g., "us", "uk", "ca")'),
    ] = None
    language: Annotated[
        str | None,
        Field(description='Language code for search results (e.g., "en", "es", "fr")'),
    ] = None
    max_results: Annotated[
        int,
        Field(alias="maxResults", ge=1, description="Maximum number of results to return (default: 10)"),
    ] = DEFAULT_NUM_RESULTS
    include_metadata: Annotated[
        bool,
        Field(alias="includeMetadata", description="Include search metadata in response (default: false)"),
    ] = False


def _input_schema() -> JsonSchema:
    schema = GoogleShoppingSearchArguments.model_json_schema(by_alias=True)
    schema.pop("title", None)
    schema.pop("description", None)
    return JsonSchema.model_validate(schema)


class ShoppingSearchTool:
    """Validates tool arguments and runs the search.

    One instance is bound to each session; it holds nothing but the shared
    SearchAPI client.
    """

    name = TOOL_NAME

    def __init__(self, client: SearchApiClient) -> None:
        self._client = client

    def definition(self) -> Tool:
        return Tool(
            name=TOOL_NAME,
            title="Google Shopping Search",
            description=TOOL_DESCRIPTION,
            input_schema=_input_schema(),
            annotations=ToolAnnotations(read_only_hint=True, open_world_hint=True),
        )

    def parse_arguments(self, arguments: dict[str, Any] | None) -> GoogleShoppingSearchArguments:
        """Validate raw arguments. Invalid input is a protocol error, not a tool error."""
        try:
            return GoogleShoppingSearchArguments.model_validate(arguments or {})
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'arguments'}: {error['msg']}" for error in e.errors()
            )
            raise McpError.from_code(INVALID_PARAMS, f"Invalid arguments for tool {TOOL_NAME}: {details}") from e

    async def run(self, arguments: GoogleShoppingSearchArguments) -> str:
        """Run the search and render it as text.

        Raises:
            ToolError: the upstream search failed; the message embeds the upstream one.
        """
        logger.info(
            "Processing Google Shopping search request: query=%r location=%r country=%r",
            arguments.query,
            arguments.location,
            arguments.country,
        )
        options = {
            "location": arguments.location,
            "gl": arguments.country,
            "hl": arguments.language,
            "num": arguments.max_results,
        }
        try:
            if arguments.include_metadata:
                response = await self._client.search_products_with_metadata(arguments.query, **options)
                return format_full_response(response)
            results = await self._client.search_products(arguments.query, **options)
        except SearchApiError as e:
            logger.error("Google Shopping search failed for %r: %s", arguments.query, e)
            raise ToolError(f"Google Shopping search failed: {e}") from e

        return format_shopping_results(results[: arguments.max_results])

    async def call(self, arguments: dict[str, Any] | None) -> CallToolResult:
        """Handle a tools/call for this tool. Upstream failures come back as ``isError`` results."""
        parsed = self.parse_arguments(arguments)
        try:
            text = await self.run(parsed)
        except ToolError as e:
            return CallToolResult(content=[TextContent(text=str(e))], is_error=True)
        return CallToolResult(content=[TextContent(text=text)])
