"""Persistent WebSocket client for a remote-control listener server."""

__version__ = "0.1.0"

from . import commands
from .auth import HandshakeResult, compute_digest, interpret
from .config import ListenerConfig, ReconnectPolicy, load_config
from .controller import ListenerController
from .errors import (
    ListenerClientError,
    ListenerConfigError,
    ListenerConnectionError,
    ListenerDecodeError,
    ListenerHandshakeError,
    ListenerNotConnectedError,
    ListenerTimeout,
)
from .reconnect import BackoffState, ReconnectScheduler, compute_delay
from .status import AuthOutcome, ConnectionStatus
from .transport import ConnectionSession, encode_command

__all__ = [
    "AuthOutcome",
    "BackoffState",
    "ConnectionSession",
    "ConnectionStatus",
    "HandshakeResult",
    "ListenerClientError",
    "ListenerConfig",
    "ListenerConfigError",
    "ListenerConnectionError",
    "ListenerController",
    "ListenerDecodeError",
    "ListenerHandshakeError",
    "ListenerNotConnectedError",
    "ListenerTimeout",
    "ReconnectPolicy",
    "ReconnectScheduler",
    "__version__",
    "commands",
    "compute_delay",
    "compute_digest",
    "encode_command",
    "interpret",
    "load_config",
]
