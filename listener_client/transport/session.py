"""Single-socket session for the listener.

A ``ConnectionSession`` owns exactly one WebSocket for its whole life.
Raw transport activity is turned into three events delivered in order
through one queue:

- READY once the socket is open
- MESSAGE for every inbound text frame
- TERMINATED exactly once when the socket fails or is closed remotely

A local ``close()`` records the termination but delivers nothing.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..errors import (
    ListenerClientError,
    ListenerDecodeError,
    ListenerNotConnectedError,
)
from .protocol import decode_message
from .ws import WS_PATH
from .ws_client import ListenerWsClient, ListenerWsMessageType

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_LOGGER = logging.getLogger(__name__)

CLOSE_TIMEOUT = 2.0


class SessionState(Enum):
    """Lifecycle of one session."""

    CONNECTING = "connecting"
    OPEN = "open"
    TERMINATED = "terminated"


class SessionEventType(Enum):
    """Events a session delivers to its consumer."""

    READY = "ready"
    MESSAGE = "message"
    TERMINATED = "terminated"


class TerminationReason(Enum):
    """Why a session ended."""

    CONNECT_FAILED = "connect_failed"
    ERROR = "error"
    REMOTE_CLOSE = "remote_close"
    LOCAL_CLOSE = "local_close"


@dataclass(frozen=True)
class SessionEvent:
    """One event from a session's ordered stream.

    ``data`` is the raw frame text for MESSAGE events and a description of
    the cause for TERMINATED events.
    """

    type: SessionEventType
    data: str | None = None
    reason: TerminationReason | None = None

    def json(self) -> dict[str, Any]:
        """Decode a MESSAGE payload.

        Raises:
            ListenerDecodeError: If this is not a MESSAGE event or the text
                is not a JSON object.
        """
        if self.type is not SessionEventType.MESSAGE or self.data is None:
            raise ListenerDecodeError("Only MESSAGE events carry a payload")
        return decode_message(self.data)


class ConnectionSession:
    """Owns one listener socket and its event stream.

    Usage:
        session = ConnectionSession.open("192.168.1.20", 12001)
        async for event in session.events():
            ...
        session.close()
        await session.wait_closed()
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        path: str = WS_PATH,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
    ) -> None:
        self.host = host
        self.port = port
        self._path = path
        self._ping_interval = ping_interval
        self._timeout = timeout
        self._label = f"{host}:{port}"

        self._state = SessionState.CONNECTING
        self._closed = False
        self._termination: TerminationReason | None = None
        self._termination_detail: str | None = None

        # None is the wake-up marker pushed by close()
        self._events: asyncio.Queue[SessionEvent | None] = asyncio.Queue()
        self._outbox: asyncio.Queue[str] = asyncio.Queue()

        self._run_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None

    @classmethod
    def open(
        cls,
        host: str,
        port: int,
        *,
        path: str = WS_PATH,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
    ) -> ConnectionSession:
        """Create a session and start connecting in the background.

        Must be called from inside a running event loop. Returns at once;
        the outcome arrives as READY or TERMINATED on ``events()``.
        """
        session = cls(
            host, port, path=path, ping_interval=ping_interval, timeout=timeout
        )
        session._run_task = asyncio.get_running_loop().create_task(
            session._run(), name=f"listener-session[{session._label}]"
        )
        return session

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        """True while the socket is open and accepts sends."""
        return self._state is SessionState.OPEN and not self._closed

    @property
    def closed(self) -> bool:
        """True once ``close()`` has been called."""
        return self._closed

    @property
    def done(self) -> bool:
        """True once the background task has finished all teardown."""
        return self._run_task is None or self._run_task.done()

    @property
    def termination_reason(self) -> TerminationReason | None:
        return self._termination

    @property
    def termination_detail(self) -> str | None:
        return self._termination_detail

    def send(self, payload: str) -> None:
        """Queue one text frame for transmission.

        Raises:
            ListenerNotConnectedError: If the socket is not open.
        """
        if not self.is_open:
            raise ListenerNotConnectedError("Socket not connected")
        self._outbox.put_nowait(payload)

    def close(self) -> None:
        """Close the session.

        Idempotent. No event is delivered after this returns.
        """
        if self._closed:
            return
        self._closed = True
        was_live = self._termination is None
        self._terminate(TerminationReason.LOCAL_CLOSE, "Closed locally")
        self._events.put_nowait(None)
        if was_live and self._run_task is not None and not self._run_task.done():
            _LOGGER.debug("[%s] Closing socket", self._label)
            self._run_task.cancel()

    async def wait_closed(self) -> None:
        """Wait until the socket has been torn down."""
        if self._run_task is not None:
            await asyncio.wait([self._run_task])

    async def events(self) -> AsyncIterator[SessionEvent]:
        """Yield session events in order until termination or close."""
        while not self._closed:
            event = await self._events.get()
            if event is None or self._closed:
                return
            yield event
            if event.type is SessionEventType.TERMINATED:
                return

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _emit(self, event: SessionEvent) -> None:
        if not self._closed:
            self._events.put_nowait(event)

    def _terminate(self, reason: TerminationReason, detail: str | None) -> None:
        """Record termination once; deliver it unless closed locally."""
        if self._termination is not None:
            return
        self._termination = reason
        self._termination_detail = detail
        self._state = SessionState.TERMINATED
        if reason is not TerminationReason.LOCAL_CLOSE:
            self._emit(
                SessionEvent(SessionEventType.TERMINATED, data=detail, reason=reason)
            )

    async def _run(self) -> None:
        ws = ListenerWsClient()
        try:
            await ws.connect(
                self.host,
                self.port,
                path=self._path,
                ping_interval=self._ping_interval,
                timeout=self._timeout,
            )
        except ListenerClientError as err:
            _LOGGER.warning("[%s] Connection failed: %s", self._label, err)
            self._terminate(TerminationReason.CONNECT_FAILED, str(err))
            return

        if self._closed:
            await self._close_socket(ws)
            return

        reason = TerminationReason.REMOTE_CLOSE
        detail = "Socket closed"
        try:
            self._state = SessionState.OPEN
            _LOGGER.debug("[%s] Socket connected", self._label)
            self._emit(SessionEvent(SessionEventType.READY))
            self._writer_task = asyncio.create_task(self._write_loop(ws))

            async for msg in ws:
                # The writer may have ended the session already
                if self._termination is not None:
                    break
                if msg.type is ListenerWsMessageType.TEXT:
                    self._emit(SessionEvent(SessionEventType.MESSAGE, data=msg.data))
                elif msg.type is ListenerWsMessageType.CLOSED:
                    if msg.data:
                        detail = f"Socket closed ({msg.data})"
                    break
                else:
                    reason = TerminationReason.ERROR
                    detail = (
                        f"Socket error ({msg.data})" if msg.data else "Socket error"
                    )
                    break
        finally:
            if self._writer_task is not None:
                self._writer_task.cancel()
            self._terminate(reason, detail)
            await self._close_socket(ws)

    async def _write_loop(self, ws: ListenerWsClient) -> None:
        """Drain the outbox; a failed send ends the session."""
        while True:
            payload = await self._outbox.get()
            try:
                await ws.send_text(payload)
            except ListenerClientError as err:
                _LOGGER.warning("[%s] Send failed: %s", self._label, err)
                self._terminate(TerminationReason.ERROR, f"Send failed ({err})")
                # Unblocks the reader so the run task can finish teardown
                await self._close_socket(ws)
                return

    async def _close_socket(self, ws: ListenerWsClient) -> None:
        try:
            await asyncio.wait_for(ws.close(), timeout=CLOSE_TIMEOUT)
        except TimeoutError:
            _LOGGER.warning("[%s] WebSocket close timed out", self._label)
