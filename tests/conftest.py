"""Shared pytest fixtures for stpnut tests.

This module provides common fixtures for:
- Temporary config files
- A recording mock of the pnut.io HTTP API (httpx.MockTransport)
- A fake WebSocket connection for the realtime monitor
- Sample app stream envelopes
"""

from __future__ import annotations

import asyncio
import json
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import pytest
import yaml
from websockets.exceptions import ConnectionClosedOK
from websockets.protocol import State

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable, Generator


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory (cleaned up after test)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def minimal_config() -> dict[str, Any]:
    """Return a minimal valid configuration dictionary."""
    return {
        "version": 1,
        "client": {
            "client_id": "app-id",
            "client_secret": "app-secret",
        },
    }


@pytest.fixture
def write_config(temp_dir: Path) -> Callable[[dict[str, Any], str], Path]:
    """Factory fixture to write config files.

    Returns:
        Function writing a config dict and returning its path
    """

    def _write(config: dict[str, Any], filename: str = "config.yaml") -> Path:
        path = temp_dir / filename
        with path.open("w") as f:
            yaml.safe_dump(config, f)
        return path

    return _write


# ============================================================================
# HTTP Fixtures
# ============================================================================


@dataclass
class MockApi:
    """Route table and request log behind an httpx.MockTransport.

    Routes map (method, path) to a callable returning an httpx.Response;
    route() also accepts a plain JSON body. Unrouted requests answer with
    a pnut-style 404 envelope.
    """

    routes: dict[tuple[str, str], Any] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def route(self, method: str, path: str, response: Any, status_code: int = 200) -> None:
        if callable(response):
            self.routes[(method, path)] = response
        else:
            self.routes[(method, path)] = (
                lambda _request: httpx.Response(status_code, json=response)
            )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/v0")
        responder = self.routes.get((request.method, path))
        if responder is None:
            return httpx.Response(
                404,
                json={"meta": {"code": 404, "error_message": "Not found."}},
            )
        return responder(request)

    def calls(self, method: str | None = None) -> list[httpx.Request]:
        if method is None:
            return list(self.requests)
        return [r for r in self.requests if r.method == method]


@pytest.fixture
def mock_api() -> MockApi:
    """Return an empty mock API."""
    return MockApi()


@pytest.fixture
async def http_client(mock_api: MockApi) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create an httpx client wired to the mock API."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(mock_api.handler)) as client:
        yield client


# ============================================================================
# WebSocket Fixtures
# ============================================================================


_CLOSE = object()


class FakeConnection:
    """In-memory stand-in for a websockets ClientConnection."""

    def __init__(self) -> None:
        self.state = State.OPEN
        self.sent: list[str] = []
        self.close_calls = 0
        self._inbound: asyncio.Queue[Any] = asyncio.Queue()

    def feed(self, frame: str | bytes) -> None:
        """Queue an inbound frame."""
        self._inbound.put_nowait(frame)

    def fail(self, exc: Exception) -> None:
        """Queue an abnormal closure."""
        self._inbound.put_nowait(exc)

    def remote_close(self) -> None:
        """Queue a clean closure initiated by the server."""
        self._inbound.put_nowait(_CLOSE)

    async def send(self, message: str) -> None:
        if self.state is not State.OPEN:
            raise ConnectionClosedOK(None, None)
        self.sent.append(message)

    async def close(self) -> None:
        self.close_calls += 1
        if self.state is State.OPEN:
            self.state = State.CLOSED
            self._inbound.put_nowait(_CLOSE)

    def __aiter__(self) -> FakeConnection:
        return self

    async def __anext__(self) -> Any:
        item = await self._inbound.get()
        if item is _CLOSE:
            self.state = State.CLOSED
            raise StopAsyncIteration
        if isinstance(item, Exception):
            self.state = State.CLOSED
            raise item
        return item


@dataclass
class FakeConnector:
    """Connection factory recording the URLs it was asked to open."""

    connection: FakeConnection
    urls: list[str] = field(default_factory=list)

    async def __call__(self, url: str) -> FakeConnection:
        self.urls.append(url)
        return self.connection


@pytest.fixture
def fake_connection() -> FakeConnection:
    """Return an open fake WebSocket connection."""
    return FakeConnection()


@pytest.fixture
def connector(fake_connection: FakeConnection) -> FakeConnector:
    """Return a connection factory yielding the fake connection."""
    return FakeConnector(fake_connection)


@pytest.fixture
def event_log() -> tuple[list[tuple[str, Any]], Callable[[str, Any], None]]:
    """Return (events, handler) where handler appends to events."""
    events: list[tuple[str, Any]] = []

    def _handler(event: str, payload: Any) -> None:
        events.append((event, payload))

    return events, _handler


# ============================================================================
# App Stream Envelope Fixtures
# ============================================================================


@pytest.fixture
def mention_envelope() -> dict[str, Any]:
    """Return a post event mentioning two users."""
    return {
        "meta": {"type": "post", "id": "1001"},
        "post": {
            "id": "5000",
            "user": {"id": "1", "username": "alice"},
            "content": {
                "text": "@bob @carol lunch?",
                "entities": {
                    "mentions": [
                        {"id": "2", "text": "bob"},
                        {"id": "3", "text": "carol"},
                    ]
                },
            },
        },
    }


@pytest.fixture
def repost_envelope() -> dict[str, Any]:
    """Return a post event that reposts another user's post."""
    return {
        "meta": {"type": "post", "id": "1002"},
        "post": {
            "id": "5001",
            "user": {"id": "1", "username": "alice"},
            "repost_of": {
                "id": "4000",
                "user": {"id": "7", "username": "dave"},
                "content": {"text": "Original thought", "entities": {"mentions": []}},
            },
        },
    }


@pytest.fixture
def bookmark_envelope() -> dict[str, Any]:
    """Return a bookmark event."""
    return {
        "meta": {"type": "bookmark", "id": "1003"},
        "data": {
            "user": {"id": "8", "username": "erin"},
            "post": {
                "id": "4001",
                "user": {"id": "2", "username": "bob"},
                "content": {"text": "Worth saving"},
            },
        },
    }


@pytest.fixture
def follow_envelope() -> dict[str, Any]:
    """Return a follow event."""
    return {
        "meta": {"type": "follow", "id": "1004"},
        "data": {
            "user": {"id": "12", "username": "al", "name": "Al Smith"},
            "followed_user": {"id": "9", "username": "zed"},
        },
    }


@pytest.fixture
def frame(mention_envelope: dict[str, Any]) -> str:
    """Return a mention envelope serialized as a WebSocket frame."""
    return json.dumps(mention_envelope)
