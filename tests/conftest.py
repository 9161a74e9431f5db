from collections.abc import AsyncIterator, Callable
from typing import Any

import anyio
import httpx
import pytest
import sse_starlette
from packaging import version

from searchapi_mcp.searchapi.client import SearchApiClient


@pytest.fixture
def anyio_backend():
    return "asyncio"


SSE_STARLETTE_VERSION = version.parse(sse_starlette.__version__)
NEEDS_RESET = SSE_STARLETTE_VERSION < version.parse("3.0.0")


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """Reset sse-starlette's global AppStatus singleton before each test.

    Before sse-starlette 3.0, AppStatus.should_exit_event is a module-level
    asyncio.Event bound to the first loop that touches it; later tests would
    fail with "bound to a different event loop".
    """
    if not NEEDS_RESET:
        yield
        return

    from sse_starlette.sse import AppStatus

    AppStatus.should_exit_event = anyio.Event()  # type: ignore[attr-defined]
    yield
    AppStatus.should_exit_event = anyio.Event()  # type: ignore[attr-defined]


def make_shopping_result(position: int, **overrides: Any) -> dict[str, Any]:
    result: dict[str, Any] = {
        "position": position,
        "product_id": f"prod-{position}",
        "title": f"Wireless Headphones {position}",
        "product_link": f"https://shop.example/products/{position}",
        "seller": f"Store {position}",
        "offers": str(position + 1),
        "extracted_offers": position + 1,
        "offers_link": f"https://shop.example/offers/{position}",
        "price": f"${position * 10}.99",
        "extracted_price": position * 10 + 0.99,
        "thumbnail": f"https://img.example/{position}.jpg",
    }
    result.update(overrides)
    return result


def make_search_payload(count: int = 5) -> dict[str, Any]:
    return {
        "search_metadata": {
            "id": "search_abc123",
            "status": "Success",
            "created_at": "2026-01-01T00:00:00Z",
            "total_time_taken": 1.42,
        },
        "search_parameters": {
            "engine": "google_shopping",
            "q": "wireless headphones",
            "gl": "us",
            "hl": "en",
            "location": "United States",
        },
        "shopping_results": [make_shopping_result(position) for position in range(1, count + 1)],
    }


@pytest.fixture
def search_payload() -> dict[str, Any]:
    return make_search_payload()


Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def make_search_client(recorded_requests: list[httpx.Request]) -> Callable[[Handler], SearchApiClient]:
    """Build SearchApiClients whose upstream is the given handler; every request is recorded."""

    def factory(handler: Handler) -> SearchApiClient:
        def recording_handler(request: httpx.Request) -> httpx.Response:
            recorded_requests.append(request)
            return handler(request)

        return SearchApiClient(
            "test-api-key",
            base_url="https://searchapi.test/api/v1/search",
            transport=httpx.MockTransport(recording_handler),
        )

    return factory


@pytest.fixture
async def search_client(
    make_search_client: Callable[[Handler], SearchApiClient], search_payload: dict[str, Any]
) -> AsyncIterator[SearchApiClient]:
    """A client whose upstream always answers with ``search_payload``."""
    async with make_search_client(lambda request: httpx.Response(200, json=search_payload)) as client:
        yield client
