"""End-to-end tests: the full Starlette app with a stubbed SearchAPI upstream."""

import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest
from starlette.applications import Starlette

from searchapi_mcp import __version__
from searchapi_mcp.app import create_app
from searchapi_mcp.config import Settings
from searchapi_mcp.searchapi.client import SearchApiClient
from searchapi_mcp.transport.gateway import ProtocolGateway

pytestmark = pytest.mark.anyio

ACCEPT_BOTH = "application/json, text/event-stream"


@pytest.fixture
def app(search_client: SearchApiClient) -> Starlette:
    return create_app(Settings(searchapi_api_key="test-api-key"), search_client=search_client)


@pytest.fixture
async def client(app: Starlette) -> AsyncIterator[httpx.AsyncClient]:
    # httpx's ASGI transport does not drive lifespan events, so enter it by hand
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(
            transport=transport, base_url="http://test", headers={"accept": ACCEPT_BOTH}
        ) as http_client:
            yield http_client


async def _do_init(client: httpx.AsyncClient) -> str:
    resp = await client.post(
        "/mcp",
        json={
            "jsonrpc": "2.0",
            "id": 1,
            "method": "initialize",
            "params": {
                "protocolVersion": "2025-06-18",
                "capabilities": {},
                "clientInfo": {"name": "agent", "version": "1.0"},
            },
        },
    )
    assert resp.status_code == 200
    session_id = resp.headers["mcp-session-id"]
    await client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "method": "notifications/initialized"},
        headers={"mcp-session-id": session_id},
    )
    return session_id


def _rpc(client: httpx.AsyncClient, session_id: str) -> Callable[..., Any]:
    counter = iter(range(100, 1000))

    async def call(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"jsonrpc": "2.0", "id": next(counter), "method": method}
        if params is not None:
            body["params"] = params
        resp = await client.post("/mcp", json=body, headers={"mcp-session-id": session_id})
        assert resp.status_code == 200
        return resp.json()

    return call


async def test_health(client: httpx.AsyncClient) -> None:
    resp = await client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "mcp-searchapi-server"}


async def test_health_ignores_session_state(client: httpx.AsyncClient) -> None:
    await _do_init(client)

    resp = await client.get("/health", headers={"mcp-session-id": "whatever"})

    assert resp.status_code == 200


async def test_initialize_advertises_server_and_capabilities(client: httpx.AsyncClient) -> None:
    resp = await client.post(
        "/mcp",
        json={
            "jsonrpc": "2.0",
            "id": 1,
            "method": "initialize",
            "params": {
                "protocolVersion": "2025-06-18",
                "capabilities": {},
                "clientInfo": {"name": "agent", "version": "1.0"},
            },
        },
    )

    result = resp.json()["result"]
    assert result["protocolVersion"] == "2025-06-18"
    assert result["serverInfo"] == {"name": "mcp-searchapi-server", "version": __version__}
    assert result["capabilities"]["tools"] == {"listChanged": False}
    assert result["capabilities"]["logging"] == {}


async def test_tools_list(client: httpx.AsyncClient) -> None:
    call = _rpc(client, await _do_init(client))

    tools = (await call("tools/list"))["result"]["tools"]

    assert [tool["name"] for tool in tools] == ["google-shopping-search"]
    assert tools[0]["inputSchema"]["required"] == ["query"]


async def test_tools_call_returns_formatted_products(client: httpx.AsyncClient) -> None:
    call = _rpc(client, await _do_init(client))

    result = (await call("tools/call", {"name": "google-shopping-search", "arguments": {"query": "headphones"}}))[
        "result"
    ]

    assert result["isError"] is False
    assert result["content"][0]["type"] == "text"
    assert result["content"][0]["text"].startswith("1. **Wireless Headphones 1**")


async def test_unknown_tool_is_invalid_params(client: httpx.AsyncClient) -> None:
    call = _rpc(client, await _do_init(client))

    response = await call("tools/call", {"name": "bing-search", "arguments": {"query": "x"}})

    assert response["error"]["code"] == -32602


async def test_missing_query_is_invalid_params(client: httpx.AsyncClient) -> None:
    call = _rpc(client, await _do_init(client))

    response = await call("tools/call", {"name": "google-shopping-search", "arguments": {}})

    assert response["error"]["code"] == -32602


async def test_upstream_failure_keeps_the_session_alive(make_search_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_search_client(handler) as search_client:
        app = create_app(Settings(searchapi_api_key="test-api-key"), search_client=search_client)
        gateway: ProtocolGateway = app.state.gateway
        async with app.router.lifespan_context(app):
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(
                transport=transport, base_url="http://test", headers={"accept": ACCEPT_BOTH}
            ) as client:
                session_id = await _do_init(client)
                call = _rpc(client, session_id)

                result = (await call("tools/call", {"name": "google-shopping-search", "arguments": {"query": "x"}}))[
                    "result"
                ]
                assert result["isError"] is True
                assert "SearchAPI request failed" in result["content"][0]["text"]

                assert (await call("ping"))["result"] == {}
                assert session_id in gateway.registry


async def test_log_notifications_follow_client_level(client: httpx.AsyncClient, app: Starlette) -> None:
    session_id = await _do_init(client)
    call = _rpc(client, session_id)
    channel = app.state.gateway.registry.get(session_id)
    stream = channel.open_notification_stream()
    arguments = {"name": "google-shopping-search", "arguments": {"query": "headphones"}}

    # Nothing is pushed until the client opts in
    await call("tools/call", arguments)
    assert stream.statistics().current_buffer_used == 0

    assert (await call("logging/setLevel", {"level": "info"}))["result"] == {}
    await call("tools/call", arguments)

    event = stream.receive_nowait()
    assert event.message.method == "notifications/message"
    assert event.message.params["level"] == "info"
    assert event.message.params["logger"] == "google-shopping-search"
    assert event.message.params["data"]["query"] == "headphones"

    # Raising the threshold silences info entries again
    await call("logging/setLevel", {"level": "error"})
    await call("tools/call", arguments)
    assert stream.statistics().current_buffer_used == 0
    stream.close()


async def test_invalid_log_level_is_rejected(client: httpx.AsyncClient) -> None:
    call = _rpc(client, await _do_init(client))

    response = await call("logging/setLevel", {"level": "verbose"})

    assert response["error"]["code"] == -32602


async def test_tools_call_without_progress_token_answers_with_json(client: httpx.AsyncClient) -> None:
    session_id = await _do_init(client)

    resp = await client.post(
        "/mcp",
        json={
            "jsonrpc": "2.0",
            "id": 20,
            "method": "tools/call",
            "params": {"name": "google-shopping-search", "arguments": {"query": "headphones"}},
        },
        headers={"mcp-session-id": session_id},
    )

    assert resp.headers["content-type"].startswith("application/json")


async def test_progress_token_streams_progress_before_the_result(client: httpx.AsyncClient) -> None:
    session_id = await _do_init(client)

    async with client.stream(
        "POST",
        "/mcp",
        json={
            "jsonrpc": "2.0",
            "id": 21,
            "method": "tools/call",
            "params": {
                "name": "google-shopping-search",
                "arguments": {"query": "headphones"},
                "_meta": {"progressToken": "search-1"},
            },
        },
        headers={"mcp-session-id": session_id},
    ) as resp:
        assert resp.status_code == 200
        assert "text/event-stream" in resp.headers["content-type"]
        events = [json.loads(line[6:]) async for line in resp.aiter_lines() if line.startswith("data: ")]

    progress, finished, response = events
    assert progress["method"] == "notifications/progress"
    assert progress["params"]["progressToken"] == "search-1"
    assert progress["params"]["progress"] == 0
    assert finished["params"]["progress"] == 1
    assert response["id"] == 21
    assert response["result"]["isError"] is False
    assert response["result"]["content"][0]["text"].startswith("1. **Wireless Headphones 1**")
