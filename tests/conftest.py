"""Shared fixtures: an in-memory REST server, a fake Socket.IO client and settings."""
from __future__ import annotations

import os

os.environ.setdefault("READER_API_BASE_URL", "http://reader.test")

from pathlib import Path
from typing import Any, AsyncIterator, Callable, Iterator

import httpx
import pytest
import pytest_asyncio
from socketio.exceptions import BadNamespaceError

from readerstream.clients import ApiClient, SocketChannel, TokenStore
from readerstream.config import Settings


class FakeServer:
    """Routes ``(method, path)`` to canned JSON responses and records every request."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, body: Any = None, *, status: int = 200) -> None:
        self.routes[(method, path)] = (status, body)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "Not found"})
        status, body = route
        if callable(body):
            body = body(request)
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)


class FakeSocketClient:
    """Stands in for ``socketio.AsyncClient``; one handler per event like the real one.

    Mirrors the real ordering: the namespace is registered and ``connect``
    handlers run while ``connected`` is still False, and the flag only flips
    once ``connect()`` returns. ``drop()`` clears it before ``disconnect`` fires.
    """

    def __init__(self, *, connected: bool = True) -> None:
        self.handlers: dict[str, Callable[..., Any]] = {}
        self.emitted: list[tuple[str, Any]] = []
        self.connect_calls: list[tuple[str, dict[str, Any]]] = []
        self.connected = connected
        self.namespaces: dict[str, str] = {"/": "sid-0"} if connected else {}
        self.connect_error: Exception | None = None

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers[event] = handler

    async def connect(self, url: str, **kwargs: Any) -> None:
        self.connect_calls.append((url, kwargs))
        if self.connect_error is not None:
            raise self.connect_error
        await self.reconnect()

    async def reconnect(self) -> None:
        self.namespaces["/"] = f"sid-{len(self.connect_calls)}"
        await self.trigger("connect")
        self.connected = True

    async def drop(self, reason: str = "transport close") -> None:
        self.connected = False
        self.namespaces.clear()
        await self.trigger("disconnect", reason)

    async def disconnect(self) -> None:
        self.connected = False
        self.namespaces.clear()

    async def wait(self) -> None:
        return None

    async def emit(self, event: str, data: Any = None) -> None:
        if "/" not in self.namespaces:
            raise BadNamespaceError("/ is not a connected namespace.")
        self.emitted.append((event, data))

    async def trigger(self, event: str, *args: Any) -> None:
        handler = self.handlers.get(event)
        if handler is not None:
            await handler(*args)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        READER_API_BASE_URL="http://reader.test",
        READER_TOKEN_PATH=tmp_path / "token.json",
        READER_AUTH_TOKEN=None,
        READER_CACHE_STALE_AFTER=30.0,
        READER_TYPING_TIMEOUT=0.05,
    )


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest_asyncio.fixture
async def make_api(settings: Settings, tmp_path: Path) -> AsyncIterator[Callable[..., ApiClient]]:
    clients: list[ApiClient] = []

    def _factory(server: FakeServer, *, token: str | None = "test-token") -> ApiClient:
        store = TokenStore(tmp_path / "token.json", override=token)
        client = ApiClient(settings=settings, token_store=store, transport=httpx.MockTransport(server))
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        await client.aclose()


@pytest.fixture
def socket_client() -> FakeSocketClient:
    return FakeSocketClient()


@pytest.fixture
def channel(settings: Settings, socket_client: FakeSocketClient) -> Iterator[SocketChannel]:
    yield SocketChannel(settings=settings, client=socket_client)
