"""Wire helpers for listener frames.

Every frame is a JSON object carrying a ``type`` discriminator. Outbound
frames are encoded compactly, matching what the listener server expects
from its other clients.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from ..errors import ListenerDecodeError

MSG_AUTH_CHALLENGE = "authChallenge"
MSG_AUTH_RESPONSE = "authResponse"
MSG_AUTH = "auth"
MSG_SUBSCRIBE_SYS_INFO = "subscribeSysInfo"
MSG_SUBSCRIBE = "subscribe"
MSG_UNSUBSCRIBE = "unsubscribe"


def encode_command(payload: Mapping[str, Any]) -> str:
    """Serialize an outbound command to its wire text.

    Raises:
        ValueError: If the payload has no string ``type`` field.
    """
    msg_type = payload.get("type")
    if not isinstance(msg_type, str) or not msg_type:
        raise ValueError("Command payload requires a non-empty 'type' field")
    return json.dumps(dict(payload), separators=(",", ":"))


def decode_message(raw: str) -> dict[str, Any]:
    """Decode an inbound text frame into a dict.

    Raises:
        ListenerDecodeError: If the text is not a JSON object.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as err:
        raise ListenerDecodeError("Invalid JSON received") from err
    if not isinstance(data, dict):
        raise ListenerDecodeError(
            f"Expected JSON object, got {type(data).__name__}"
        )
    return data


def build_auth(*, password: str) -> dict[str, Any]:
    """Construct the handshake reply carrying the hex digest."""
    return {"type": MSG_AUTH, "password": password}


def build_subscribe_sys_info() -> dict[str, Any]:
    """Construct the system-info subscription sent after authentication."""
    return {"type": MSG_SUBSCRIBE_SYS_INFO}


def build_subscribe(*, name: str) -> dict[str, Any]:
    """Construct a topic subscription (e.g. ``mousePosition``, ``sysInfo``)."""
    if not name:
        raise ValueError("name is required for subscribe frames")
    return {"type": MSG_SUBSCRIBE, "name": name}


def build_unsubscribe(*, name: str) -> dict[str, Any]:
    """Construct a topic unsubscription."""
    if not name:
        raise ValueError("name is required for unsubscribe frames")
    return {"type": MSG_UNSUBSCRIBE, "name": name}
