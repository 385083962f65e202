"""Challenge-response handshake for the listener.

The server opens with ``authChallenge`` carrying a one-time salt; the
client answers with the hex MD5 of ``salt + secret``; the server replies
with ``authResponse``. MD5 is what the listener protocol uses and is not
negotiable from the client side.

``interpret`` holds no state between messages, so it can be driven with
plain dicts in tests.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .status import AuthOutcome
from .transport.protocol import MSG_AUTH_CHALLENGE, MSG_AUTH_RESPONSE, build_auth

AUTHENTICATED_STATUS = "authenticated"


def compute_digest(salt: str, secret: str) -> str:
    """Return the lowercase hex MD5 of ``salt + secret``."""
    data = (salt + secret).encode("utf-8")
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


@dataclass(frozen=True)
class HandshakeResult:
    """What the controller must do in response to a handshake message.

    Attributes:
        reply: Frame to send back immediately, if any.
        outcome: Authentication outcome, if the message settled it.
        detail: Server-provided status text for a rejection.
    """

    reply: dict[str, Any] | None = None
    outcome: AuthOutcome | None = None
    detail: str | None = None


def interpret(message: Mapping[str, Any], secret: str) -> HandshakeResult | None:
    """Interpret one inbound message.

    Returns:
        A HandshakeResult for ``authChallenge`` and ``authResponse``, None
        for any other message type.

    Raises:
        ValueError: If an ``authChallenge`` has no string salt.
    """
    msg_type = message.get("type")

    if msg_type == MSG_AUTH_CHALLENGE:
        salt = message.get("salt")
        if not isinstance(salt, str):
            raise ValueError("authChallenge requires a string salt")
        return HandshakeResult(reply=build_auth(password=compute_digest(salt, secret)))

    if msg_type == MSG_AUTH_RESPONSE:
        status = message.get("status")
        if status == AUTHENTICATED_STATUS:
            return HandshakeResult(outcome=AuthOutcome.AUTHENTICATED)
        return HandshakeResult(
            outcome=AuthOutcome.REJECTED,
            detail="no status" if status is None else str(status),
        )

    return None
