"""WebSocket connection setup for the listener transport."""

from __future__ import annotations

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import (
    InvalidHandshake,
    InvalidStatus,
    InvalidURI,
    WebSocketException,
)

from ..errors import (
    ListenerConnectionError,
    ListenerHandshakeError,
    ListenerTimeout,
)


WS_PATH = "/ws"


def build_url(host: str, port: int, path: str = WS_PATH) -> str:
    """Return the listener endpoint URL."""
    return f"ws://{host}:{port}{path}"


async def connect_websocket(
    host: str,
    port: int,
    *,
    path: str = WS_PATH,
    ping_interval: int | None = 20,
    timeout: float = 15.0,
) -> ClientConnection:
    """Open a WebSocket to the listener.

    Transport failures are translated into the client error hierarchy so
    callers only handle ``ListenerClientError`` subclasses.

    Args:
        host: Target host
        port: Target port
        path: WebSocket path (default: /ws)
        ping_interval: Interval for keepalive ping frames, None to disable
        timeout: Opening handshake timeout in seconds
    """
    url = build_url(host, port, path)
    try:
        return await connect(
            url,
            open_timeout=timeout,
            ping_interval=ping_interval,
            close_timeout=5,
            max_size=None,
        )
    except TimeoutError as err:
        raise ListenerTimeout(f"Connection to {url} timed out") from err
    except InvalidStatus as err:
        raise ListenerHandshakeError(
            f"{url} rejected the upgrade with HTTP {err.response.status_code}"
        ) from err
    except (InvalidHandshake, InvalidURI) as err:
        raise ListenerHandshakeError(f"WebSocket handshake with {url} failed") from err
    except (OSError, WebSocketException) as err:
        raise ListenerConnectionError(f"Connection to {url} failed: {err}") from err
