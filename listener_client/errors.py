"""Client error types for listener server interactions."""

from __future__ import annotations


class ListenerClientError(Exception):
    """Base error for listener client failures."""


class ListenerTimeout(ListenerClientError):
    """Timeout while communicating with the listener."""


class ListenerConnectionError(ListenerClientError):
    """Network connection to the listener failed."""


class ListenerHandshakeError(ListenerClientError):
    """WebSocket handshake failed."""


class ListenerNotConnectedError(ListenerClientError):
    """Send attempted on a session that is not open."""


class ListenerDecodeError(ListenerClientError):
    """Inbound frame could not be decoded as a JSON object."""


class ListenerConfigError(ListenerClientError, ValueError):
    """Connection or reconnect configuration is invalid."""
