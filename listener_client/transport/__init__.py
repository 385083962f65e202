"""Transport layer for the listener client.

This package contains all IO, wire protocol, and socket handling.

Components:
- ws: WebSocket connection setup
- ws_client: WebSocket frame iteration
- session: one socket's lifetime as an ordered event stream
- protocol: frame encoding, decoding and handshake builders
"""

from .protocol import (
    build_auth,
    build_subscribe,
    build_subscribe_sys_info,
    build_unsubscribe,
    decode_message,
    encode_command,
)
from .session import (
    ConnectionSession,
    SessionEvent,
    SessionEventType,
    SessionState,
    TerminationReason,
)
from .ws import connect_websocket
from .ws_client import ListenerWsClient, ListenerWsMessage, ListenerWsMessageType

__all__ = [
    "ConnectionSession",
    "ListenerWsClient",
    "ListenerWsMessage",
    "ListenerWsMessageType",
    "SessionEvent",
    "SessionEventType",
    "SessionState",
    "TerminationReason",
    "build_auth",
    "build_subscribe",
    "build_subscribe_sys_info",
    "build_unsubscribe",
    "connect_websocket",
    "decode_message",
    "encode_command",
]
