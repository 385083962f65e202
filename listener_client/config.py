"""Connection and reconnect configuration.

Both records are immutable. A host that changes settings builds a new
``ListenerConfig`` and hands it to ``ListenerController.config_updated``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ListenerConfigError
from .transport.ws import build_url

DEFAULT_PORT = 12001


@dataclass(frozen=True)
class ListenerConfig:
    """Connection target and shared secret.

    Attributes:
        host: Listener hostname or IP.
        port: Listener TCP port (1-65535).
        secret: Shared secret mixed into the auth digest.
    """

    host: str
    port: int = DEFAULT_PORT
    secret: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.host, str) or not self.host.strip():
            raise ListenerConfigError("host is required")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ListenerConfigError(
                f"port must be an integer, got {type(self.port).__name__}"
            )
        if not 1 <= self.port <= 65535:
            raise ListenerConfigError(f"port out of range: {self.port}")
        if not isinstance(self.secret, str):
            raise ListenerConfigError("secret must be a string")

    @property
    def url(self) -> str:
        """WebSocket URL for this target."""
        return build_url(self.host, self.port)

    @property
    def label(self) -> str:
        """Short identifier used as a log prefix."""
        return f"{self.host}:{self.port}"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ListenerConfig:
        """Build a config from a plain mapping.

        ``password`` is accepted as an alias of ``secret``.
        """
        secret = data.get("secret", data.get("password", ""))
        port = data.get("port", DEFAULT_PORT)
        if isinstance(port, str) and port.isdigit():
            port = int(port)
        return cls(
            host=data.get("host", ""),
            port=port,
            secret="" if secret is None else secret,
        )


@dataclass(frozen=True)
class ReconnectPolicy:
    """Backoff constants for the reconnect scheduler.

    Attributes:
        increment_ms: Delay added per consecutive failed attempt.
        max_delay_ms: Ceiling for one failure run.
        absolute_max_delay_ms: Second clamp applied after ``max_delay_ms``.
    """

    increment_ms: int = 500
    max_delay_ms: int = 10000
    absolute_max_delay_ms: int = 15000

    def __post_init__(self) -> None:
        for name in ("increment_ms", "max_delay_ms", "absolute_max_delay_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ListenerConfigError(f"{name} must be an integer")
            if value <= 0:
                raise ListenerConfigError(f"{name} must be positive, got {value}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ReconnectPolicy:
        """Build a policy from a mapping, keeping defaults for missing keys."""
        defaults = cls()
        return cls(
            increment_ms=data.get("increment_ms", defaults.increment_ms),
            max_delay_ms=data.get("max_delay_ms", defaults.max_delay_ms),
            absolute_max_delay_ms=data.get(
                "absolute_max_delay_ms", defaults.absolute_max_delay_ms
            ),
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file with error handling."""
    if not path.exists():
        raise ListenerConfigError(f"File not found: {path}")
    with path.open() as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ListenerConfigError(f"Expected a mapping at top level of {path}")
    return data


def load_config(path: Path | str) -> tuple[ListenerConfig, ReconnectPolicy]:
    """Load connection config and reconnect policy from a YAML file.

    Example::

        host: 192.168.1.20
        port: 12001
        password: hunter2
        reconnect:
          increment_ms: 500
          max_delay_ms: 10000

    Raises:
        ListenerConfigError: If the file is missing or holds invalid values.
    """
    data = _load_yaml(Path(path))
    reconnect = data.get("reconnect") or {}
    if not isinstance(reconnect, dict):
        raise ListenerConfigError("reconnect section must be a mapping")
    return ListenerConfig.from_mapping(data), ReconnectPolicy.from_mapping(reconnect)
