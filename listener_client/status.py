"""Connection status surface reported to the host application."""

from __future__ import annotations

from enum import Enum


class ConnectionStatus(Enum):
    """Externally visible connection status."""

    PENDING_AUTH = "pending_auth"
    OK = "ok"
    BAD_CONFIG = "bad_config"
    TRANSPORT_ERROR = "transport_error"
    DISCONNECTED = "disconnected"


class AuthOutcome(Enum):
    """Result of the challenge-response handshake."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"
