"""Pytest configuration and fixtures for listener_client tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterator
from typing import Any
from unittest.mock import patch

import pytest

from listener_client.errors import ListenerConnectionError
from listener_client.transport.ws_client import (
    ListenerWsMessage,
    ListenerWsMessageType,
)


async def settle(cycles: int = 20) -> None:
    """Let background tasks run until the loop is quiet."""
    for _ in range(cycles):
        await asyncio.sleep(0)


class FakeWsClient:
    """Stand-in for ListenerWsClient driven from the test body."""

    def __init__(self, connect_error: Exception | None = None) -> None:
        self.connect_error = connect_error
        self.connect_calls: list[tuple[str, int, dict[str, Any]]] = []
        self.sent: list[str] = []
        self.closed = False
        self._inbound: asyncio.Queue[ListenerWsMessage | None] = asyncio.Queue()

    async def connect(self, host: str, port: int, **kwargs: Any) -> None:
        self.connect_calls.append((host, port, kwargs))
        if self.connect_error is not None:
            raise self.connect_error

    async def close(self) -> None:
        self.closed = True
        self._inbound.put_nowait(None)

    async def send_text(self, text: str) -> None:
        if self.closed:
            raise ListenerConnectionError("WebSocket closed while sending")
        self.sent.append(text)

    @property
    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(text) for text in self.sent]

    def feed_text(self, text: str) -> None:
        self._inbound.put_nowait(ListenerWsMessage(ListenerWsMessageType.TEXT, text))

    def feed_json(self, payload: dict[str, Any]) -> None:
        self.feed_text(json.dumps(payload))

    def feed_close(self, detail: str | None = None) -> None:
        self._inbound.put_nowait(
            ListenerWsMessage(ListenerWsMessageType.CLOSED, detail)
        )

    def feed_error(self, detail: str | None = None) -> None:
        self._inbound.put_nowait(
            ListenerWsMessage(ListenerWsMessageType.ERROR, detail)
        )

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        while True:
            msg = await self._inbound.get()
            if msg is None:
                return
            yield msg


class FakeWsFactory:
    """Replacement for the ListenerWsClient class that records instances."""

    def __init__(self) -> None:
        self.clients: list[FakeWsClient] = []
        self._errors: list[Exception] = []

    def fail_next(self, error: Exception) -> None:
        """Make the next created client fail to connect."""
        self._errors.append(error)

    def __call__(self) -> FakeWsClient:
        error = self._errors.pop(0) if self._errors else None
        client = FakeWsClient(connect_error=error)
        self.clients.append(client)
        return client

    @property
    def last(self) -> FakeWsClient:
        return self.clients[-1]


@pytest.fixture
def ws_factory() -> Iterator[FakeWsFactory]:
    """Patch the session's socket client with recording fakes."""
    factory = FakeWsFactory()
    with patch("listener_client.transport.session.ListenerWsClient", factory):
        yield factory
