"""Tests for ListenerWsClient and connect_websocket."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK, InvalidURI
from websockets.frames import Close

from listener_client.errors import (
    ListenerConnectionError,
    ListenerHandshakeError,
    ListenerNotConnectedError,
    ListenerTimeout,
)
from listener_client.transport.ws import build_url, connect_websocket
from listener_client.transport.ws_client import (
    ListenerWsClient,
    ListenerWsMessage,
    ListenerWsMessageType,
)


class AsyncIteratorMock:
    """Helper class to create a proper async iterator mock."""

    def __init__(self, items: list, *, raise_on_iter: Exception | None = None):
        self._items = items
        self._index = 0
        self._raise_on_iter = raise_on_iter
        self.close = AsyncMock()
        self.send = AsyncMock()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._index >= len(self._items):
            if self._raise_on_iter is not None:
                raise self._raise_on_iter
            raise StopAsyncIteration
        item = self._items[self._index]
        self._index += 1
        return item


async def _connected_client(mock_ws) -> ListenerWsClient:
    with patch(
        "listener_client.transport.ws_client.connect_websocket",
        return_value=mock_ws,
    ):
        client = ListenerWsClient()
        await client.connect("192.168.1.20", 12001)
    return client


class TestConnectWebsocket:
    """Tests for connect_websocket error translation."""

    def test_build_url(self):
        """Test the endpoint URL shape."""
        assert build_url("10.0.0.5", 12001) == "ws://10.0.0.5:12001/ws"

    @pytest.mark.asyncio
    async def test_connect_passes_options(self):
        """Test URL and options are forwarded to websockets."""
        with patch(
            "listener_client.transport.ws.connect", new=AsyncMock()
        ) as mock_connect:
            await connect_websocket("10.0.0.5", 12001, ping_interval=None, timeout=3.0)

        args, kwargs = mock_connect.call_args
        assert args == ("ws://10.0.0.5:12001/ws",)
        assert kwargs["open_timeout"] == 3.0
        assert kwargs["ping_interval"] is None

    @pytest.mark.asyncio
    async def test_timeout_translated(self):
        """Test TimeoutError becomes ListenerTimeout."""
        with patch(
            "listener_client.transport.ws.connect",
            new=AsyncMock(side_effect=TimeoutError()),
        ):
            with pytest.raises(ListenerTimeout, match="timed out"):
                await connect_websocket("10.0.0.5", 12001)

    @pytest.mark.asyncio
    async def test_refused_translated(self):
        """Test OSError becomes ListenerConnectionError."""
        with patch(
            "listener_client.transport.ws.connect",
            new=AsyncMock(side_effect=ConnectionRefusedError("refused")),
        ):
            with pytest.raises(ListenerConnectionError, match="refused"):
                await connect_websocket("10.0.0.5", 12001)

    @pytest.mark.asyncio
    async def test_invalid_uri_translated(self):
        """Test InvalidURI becomes ListenerHandshakeError."""
        with patch(
            "listener_client.transport.ws.connect",
            new=AsyncMock(side_effect=InvalidURI("ws://bad", "bad host")),
        ):
            with pytest.raises(ListenerHandshakeError):
                await connect_websocket("bad host", 12001)


class TestListenerWsClientConnect:
    """Tests for ListenerWsClient.connect()."""

    @pytest.mark.asyncio
    async def test_connect_success(self):
        """Test defaults are forwarded to connect_websocket."""
        mock_ws = AsyncMock()

        with patch(
            "listener_client.transport.ws_client.connect_websocket",
            return_value=mock_ws,
        ) as mock_connect:
            client = ListenerWsClient()
            await client.connect("192.168.1.20", 12001)

            mock_connect.assert_called_once_with(
                "192.168.1.20",
                12001,
                path="/ws",
                ping_interval=20,
                timeout=15.0,
            )
            assert client._ws is mock_ws

    @pytest.mark.asyncio
    async def test_connect_propagates_errors(self):
        """Test that connection errors are propagated."""
        with patch(
            "listener_client.transport.ws_client.connect_websocket",
            side_effect=ListenerConnectionError("Connection failed"),
        ):
            client = ListenerWsClient()
            with pytest.raises(ListenerConnectionError, match="Connection failed"):
                await client.connect("192.168.1.20", 12001)

    @pytest.mark.asyncio
    async def test_close_not_connected(self):
        """Test closing when not connected (no error)."""
        client = ListenerWsClient()
        await client.close()


class TestListenerWsClientSend:
    """Tests for ListenerWsClient.send_text()."""

    @pytest.mark.asyncio
    async def test_send_text(self):
        """Test text is sent verbatim."""
        mock_ws = AsyncMock()
        client = await _connected_client(mock_ws)

        await client.send_text('{"type":"keyPress","key":"a"}')

        mock_ws.send.assert_called_once_with('{"type":"keyPress","key":"a"}')

    @pytest.mark.asyncio
    async def test_send_not_connected(self):
        """Test send raises when not connected."""
        client = ListenerWsClient()
        with pytest.raises(ListenerNotConnectedError, match="not connected"):
            await client.send_text("{}")

    @pytest.mark.asyncio
    async def test_send_on_closed_socket(self):
        """Test ConnectionClosed during send becomes ListenerConnectionError."""
        mock_ws = AsyncMock()
        mock_ws.send.side_effect = ConnectionClosedError(None, None)
        client = await _connected_client(mock_ws)

        with pytest.raises(ListenerConnectionError, match="closed while sending"):
            await client.send_text("{}")


class TestListenerWsClientIteration:
    """Tests for ListenerWsClient async iteration."""

    def test_iter_not_connected(self):
        """Test iteration raises when not connected."""
        client = ListenerWsClient()
        with pytest.raises(ListenerNotConnectedError, match="not connected"):
            client.__aiter__()

    @pytest.mark.asyncio
    async def test_graceful_close(self):
        """Test text frames followed by CLOSED on clean completion."""
        client = await _connected_client(AsyncIteratorMock(["one", "two"]))

        messages = [msg async for msg in client]

        assert messages == [
            ListenerWsMessage(ListenerWsMessageType.TEXT, "one"),
            ListenerWsMessage(ListenerWsMessageType.TEXT, "two"),
            ListenerWsMessage(ListenerWsMessageType.CLOSED),
        ]

    @pytest.mark.asyncio
    async def test_close_ok_is_closed(self):
        """Test a normal close frame maps to CLOSED with its code."""
        mock_ws = AsyncIteratorMock(
            [], raise_on_iter=ConnectionClosedOK(Close(1000, "bye"), None)
        )
        client = await _connected_client(mock_ws)

        messages = [msg async for msg in client]

        assert len(messages) == 1
        assert messages[0].type is ListenerWsMessageType.CLOSED
        assert messages[0].data == "code 1000: bye"

    @pytest.mark.asyncio
    async def test_abnormal_close_is_error(self):
        """Test an abnormal close maps to ERROR."""
        mock_ws = AsyncIteratorMock(
            ["hello"], raise_on_iter=ConnectionClosedError(Close(1011, ""), None)
        )
        client = await _connected_client(mock_ws)

        messages = [msg async for msg in client]

        assert messages[0].type is ListenerWsMessageType.TEXT
        assert messages[1] == ListenerWsMessage(
            ListenerWsMessageType.ERROR, "code 1011"
        )

    @pytest.mark.asyncio
    async def test_abnormal_close_without_frame(self):
        """Test a dropped TCP connection is described."""
        mock_ws = AsyncIteratorMock([], raise_on_iter=ConnectionClosedError(None, None))
        client = await _connected_client(mock_ws)

        messages = [msg async for msg in client]

        assert messages[0].type is ListenerWsMessageType.ERROR
        assert messages[0].data == "connection closed without close frame"

    @pytest.mark.asyncio
    async def test_unexpected_error(self):
        """Test iteration turns unexpected errors into ERROR."""
        mock_ws = AsyncIteratorMock([], raise_on_iter=RuntimeError("Unexpected"))
        client = await _connected_client(mock_ws)

        messages = [msg async for msg in client]

        assert len(messages) == 1
        assert messages[0].type is ListenerWsMessageType.ERROR

    @pytest.mark.asyncio
    async def test_skips_binary_frames(self):
        """Test binary frames are dropped."""
        client = await _connected_client(
            AsyncIteratorMock(["text1", b"\x00\x01", "text2"])
        )

        messages = [msg async for msg in client]

        texts = [m.data for m in messages if m.type is ListenerWsMessageType.TEXT]
        assert texts == ["text1", "text2"]


class TestListenerWsMessage:
    """Tests for ListenerWsMessage dataclass."""

    def test_message_is_frozen(self):
        """Test that messages are immutable."""
        msg = ListenerWsMessage(type=ListenerWsMessageType.TEXT, data="test")
        with pytest.raises(AttributeError):
            msg.data = "modified"  # type: ignore[misc]
