"""Async client for the SearchAPI.io Google Shopping engine."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

import httpx
from pydantic import ValidationError

from searchapi_mcp import __version__
from searchapi_mcp.exceptions import SearchApiConnectionError, SearchApiError, SearchApiStatusError
from searchapi_mcp.searchapi.models import SearchApiResponse, ShoppingResult
from searchapi_mcp.searchapi.params import GoogleShoppingSearchParams, resolve_search_params
from searchapi_mcp.utilities.logging import redact_sensitive_data

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.searchapi.io/api/v1/search"
DEFAULT_TIMEOUT_MS = 30_000
ENGINE = "google_shopping"
USER_AGENT = f"MCP-SearchAPI-Server/{__version__}"


def _upstream_error_detail(response: httpx.Response) -> str:
    """The upstream's own error message when it sent one, else the reason phrase."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return response.reason_phrase


class SearchApiClient:
    """Thin wrapper around SearchAPI.io's search endpoint.

    Args:
        api_key: SearchAPI.io key, sent as the ``api_key`` query parameter.
        base_url: Search endpoint URL.
        timeout_ms: Per-request timeout in milliseconds.
        transport: Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._client = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout_ms / 1000,
            transport=transport,
        )
        logger.info("SearchAPI client initialized for %s", base_url)

    async def __aenter__(self) -> SearchApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def google_shopping_search(self, params: GoogleShoppingSearchParams) -> SearchApiResponse:
        """Run one search and return the parsed upstream response.

        Raises:
            SearchApiStatusError: upstream answered with a non-2xx status.
            SearchApiConnectionError: upstream could not be reached or timed out.
            SearchApiError: any other failure, e.g. an unreadable response body.
        """
        query: dict[str, Any] = {"engine": ENGINE, "api_key": self._api_key, **params.to_query()}
        logger.info("Starting Google Shopping search for %r", params.q)
        logger.debug("SearchAPI request parameters: %s", redact_sensitive_data(query))

        try:
            response = await self._client.get(self._base_url, params=query)
        except httpx.TransportError as e:
            logger.error("Google Shopping search for %r failed: %s", params.q, e)
            raise SearchApiConnectionError() from e
        except httpx.HTTPError as e:
            logger.error("Google Shopping search for %r failed: %s", params.q, e)
            raise SearchApiError(f"SearchAPI request failed: {e}") from e

        if response.is_error:
            error = SearchApiStatusError(response.status_code, _upstream_error_detail(response))
            logger.error("Google Shopping search for %r failed: %s", params.q, error)
            raise error

        try:
            result = SearchApiResponse.model_validate_json(response.content)
        except ValidationError as e:
            logger.error("Google Shopping search for %r returned an unreadable body: %s", params.q, e)
            raise SearchApiError("SearchAPI request failed: Invalid response body") from e

        logger.info(
            "Google Shopping search for %r completed: %d results (status %d)",
            params.q,
            len(result.shopping_results or []),
            response.status_code,
        )
        return result

    async def search_products(self, query: str, **options: Any) -> list[ShoppingResult]:
        """Search with defaults applied and return just the product list."""
        response = await self.google_shopping_search(resolve_search_params(query, **options))
        return response.shopping_results or []

    async def search_products_with_metadata(self, query: str, **options: Any) -> SearchApiResponse:
        """Search with defaults applied and return the full response."""
        return await self.google_shopping_search(resolve_search_params(query, **options))
