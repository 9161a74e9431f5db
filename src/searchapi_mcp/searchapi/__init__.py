"""SearchAPI.io collaborator: HTTP client, response models and formatting."""

from searchapi_mcp.searchapi.client import SearchApiClient
from searchapi_mcp.searchapi.formatting import format_full_response, format_shopping_results
from searchapi_mcp.searchapi.models import InstallmentInfo, SearchApiResponse, ShoppingResult
from searchapi_mcp.searchapi.params import GoogleShoppingSearchParams, resolve_search_params

__all__ = [
    "GoogleShoppingSearchParams",
    "InstallmentInfo",
    "SearchApiClient",
    "SearchApiResponse",
    "ShoppingResult",
    "format_full_response",
    "format_shopping_results",
    "resolve_search_params",
]
