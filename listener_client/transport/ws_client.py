"""WebSocket client wrapper for the listener."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedError,
    ConnectionClosedOK,
)

from ..errors import ListenerConnectionError, ListenerNotConnectedError
from .ws import WS_PATH, connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class ListenerWsMessageType(Enum):
    """Normalized WebSocket frame types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class ListenerWsMessage:
    """Normalized WebSocket frame.

    ``data`` holds the text for TEXT frames and a human-readable
    description for CLOSED and ERROR frames.
    """

    type: ListenerWsMessageType
    data: str | None = None


class ListenerWsClient:
    """Wrapper around a websockets client connection."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    async def connect(
        self,
        host: str,
        port: int,
        *,
        path: str = WS_PATH,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the listener websocket."""
        self._ws = await connect_websocket(
            host,
            port,
            path=path,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    async def send_text(self, text: str) -> None:
        """Send one text frame."""
        if self._ws is None:
            raise ListenerNotConnectedError("WebSocket is not connected")
        try:
            await self._ws.send(text)
        except ConnectionClosed as err:
            raise ListenerConnectionError("WebSocket closed while sending") from err

    def __aiter__(self) -> AsyncIterator[ListenerWsMessage]:
        if self._ws is None:
            raise ListenerNotConnectedError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[ListenerWsMessage]:
        if self._ws is None:
            raise ListenerNotConnectedError("WebSocket is not connected")

        try:
            async for frame in self._ws:
                normalized = self._normalize_message(frame)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosedOK as err:
            yield ListenerWsMessage(ListenerWsMessageType.CLOSED, self._describe(err))
        except ConnectionClosedError as err:
            yield ListenerWsMessage(ListenerWsMessageType.ERROR, self._describe(err))
        except Exception as err:
            yield ListenerWsMessage(ListenerWsMessageType.ERROR, repr(err))
        else:
            # Iteration ends cleanly when the peer closes with a normal code.
            yield ListenerWsMessage(ListenerWsMessageType.CLOSED)

    @staticmethod
    def _describe(err: ConnectionClosedOK | ConnectionClosedError) -> str:
        frame = err.rcvd or err.sent
        if frame is None:
            return "connection closed without close frame"
        if frame.reason:
            return f"code {frame.code}: {frame.reason}"
        return f"code {frame.code}"

    @staticmethod
    def _normalize_message(frame: Any) -> ListenerWsMessage | None:
        """Normalize a received frame; binary frames are ignored."""
        if isinstance(frame, (bytes, bytearray, memoryview)):
            return None
        if isinstance(frame, str):
            return ListenerWsMessage(ListenerWsMessageType.TEXT, frame)
        return ListenerWsMessage(ListenerWsMessageType.TEXT, str(frame))

