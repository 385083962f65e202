"""Lifecycle controller for one listener connection.

This module provides the API a host application uses to talk to a
listener server. It handles:
- Opening the socket and answering the auth challenge
- Reporting connection status
- Reconnecting with bounded backoff after unexpected termination
- Forced resync on config change and clean shutdown

All state lives on one event loop. Socket events arrive through the
session's ordered queue and the reconnect timer fires on the same loop,
so no locks are needed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from .auth import interpret
from .config import ListenerConfig, ReconnectPolicy
from .errors import ListenerDecodeError, ListenerNotConnectedError
from .reconnect import ReconnectScheduler
from .status import AuthOutcome, ConnectionStatus
from .transport.protocol import build_subscribe_sys_info, encode_command
from .transport.session import (
    ConnectionSession,
    SessionEvent,
    SessionEventType,
    TerminationReason,
)

_LOGGER = logging.getLogger(__name__)

StatusCallback = Callable[[ConnectionStatus, str | None], None]
MessageCallback = Callable[[dict[str, Any]], None]


class ListenerController:
    """Owns the connection config, the live session and the backoff state.

    Usage:
        controller = ListenerController(ListenerConfig("192.168.1.20", 12001, "pw"))
        controller.on_status_changed(my_status_handler)
        await controller.start()
        controller.send_command(commands.key_press("a"))
        await controller.config_updated(new_config)
        await controller.shutdown()
    """

    def __init__(
        self,
        config: ListenerConfig,
        *,
        policy: ReconnectPolicy | None = None,
        ping_interval: int | None = 20,
        connect_timeout: float = 15.0,
    ) -> None:
        """Initialize controller.

        Args:
            config: Connection target and secret
            policy: Reconnect backoff constants
            ping_interval: Keepalive ping interval (seconds), None to disable
            connect_timeout: Opening handshake timeout (seconds)
        """
        self._config = config
        self._scheduler = ReconnectScheduler(policy)
        self._ping_interval = ping_interval
        self._connect_timeout = connect_timeout

        # Connection state
        self._session: ConnectionSession | None = None
        self._retired: set[ConnectionSession] = set()
        self._tasks: set[asyncio.Task[None]] = set()
        self._shutdown_requested = False

        # Status
        self._status = ConnectionStatus.DISCONNECTED
        self._status_detail: str | None = None
        self._auth_outcome = AuthOutcome.UNAUTHENTICATED

        # Callbacks
        self._status_callback: StatusCallback | None = None
        self._message_callback: MessageCallback | None = None

    # -------------------------------------------------------------------------
    # Public API: Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Open a session against the current config."""
        _LOGGER.info("[%s] Starting", self._config.label)
        self._shutdown_requested = False
        self._scheduler.cancel()
        self._scheduler.reset()
        self._auth_outcome = AuthOutcome.UNAUTHENTICATED
        self._set_status(ConnectionStatus.PENDING_AUTH)
        self._connect()

    async def config_updated(self, config: ListenerConfig) -> None:
        """Replace the config and reconnect immediately."""
        _LOGGER.info(
            "[%s] Config updated, reconnecting to %s", self._config.label, config.label
        )
        self._scheduler.cancel()
        self._scheduler.reset()
        self._config = config
        self._install_session(None)
        await self._wait_retired()

        if self._shutdown_requested:
            _LOGGER.debug("[%s] Not reconnecting: shut down", config.label)
            return

        self._auth_outcome = AuthOutcome.UNAUTHENTICATED
        self._set_status(ConnectionStatus.PENDING_AUTH)
        self._connect()

    async def restart(self) -> None:
        """Reconnect with the current config and a fresh retry budget."""
        await self.config_updated(self._config)

    async def shutdown(self) -> None:
        """Close the session and stop reconnecting."""
        _LOGGER.info("[%s] Shutting down", self._config.label)
        self._shutdown_requested = True
        self._scheduler.cancel()
        self._install_session(None)
        await self._wait_retired()

        current = asyncio.current_task()
        pending = [task for task in self._tasks if task is not current]
        if pending:
            await asyncio.wait(pending)

        self._auth_outcome = AuthOutcome.UNAUTHENTICATED
        self._set_status(ConnectionStatus.DISCONNECTED)

    # -------------------------------------------------------------------------
    # Public API: Commands
    # -------------------------------------------------------------------------

    def send_command(self, payload: Mapping[str, Any]) -> bool:
        """Send a control command on the live session.

        The command is dropped with a warning when no socket is open.

        Returns:
            True if the command was queued for transmission.

        Raises:
            ValueError: If the payload has no ``type`` field.
        """
        text = encode_command(payload)
        session = self._session
        if session is None:
            _LOGGER.warning(
                "[%s] Socket not connected, dropping %s",
                self._config.label,
                payload.get("type"),
            )
            return False
        return self._send(session, text)

    # -------------------------------------------------------------------------
    # Public API: Callbacks and state
    # -------------------------------------------------------------------------

    def on_status_changed(self, callback: StatusCallback) -> None:
        """Register callback receiving ``(status, detail)`` on every change."""
        self._status_callback = callback

    def on_message(self, callback: MessageCallback) -> None:
        """Register callback for inbound messages outside the handshake."""
        self._message_callback = callback

    @property
    def config(self) -> ListenerConfig:
        return self._config

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def status_detail(self) -> str | None:
        return self._status_detail

    @property
    def auth_outcome(self) -> AuthOutcome:
        return self._auth_outcome

    @property
    def is_authenticated(self) -> bool:
        return self._auth_outcome is AuthOutcome.AUTHENTICATED

    @property
    def is_connected(self) -> bool:
        """True while a session socket is open."""
        return self._session is not None and self._session.is_open

    @property
    def reconnect_attempts(self) -> int:
        return self._scheduler.attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._scheduler.pending

    # -------------------------------------------------------------------------
    # Internal: Session ownership
    # -------------------------------------------------------------------------

    def _install_session(self, session: ConnectionSession | None) -> None:
        """Replace the live session, closing the previous one first."""
        previous = self._session
        if previous is not None and previous is not session:
            previous.close()
            self._retired = {s for s in self._retired if not s.done}
            self._retired.add(previous)
        self._session = session

    async def _wait_retired(self) -> None:
        while self._retired:
            await self._retired.pop().wait_closed()

    def _connect(self) -> None:
        if self._shutdown_requested:
            _LOGGER.debug("[%s] Connection aborted: shut down", self._config.label)
            return

        self._scheduler.cancel()
        config = self._config
        _LOGGER.debug("[%s] Connecting to %s", config.label, config.url)
        session = ConnectionSession.open(
            config.host,
            config.port,
            ping_interval=self._ping_interval,
            timeout=self._connect_timeout,
        )
        self._install_session(session)

        task = asyncio.get_running_loop().create_task(self._dispatch(session, config))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _send(self, session: ConnectionSession, text: str) -> bool:
        try:
            session.send(text)
        except ListenerNotConnectedError as err:
            _LOGGER.warning("[%s] %s, command dropped", self._config.label, err)
            return False
        return True

    # -------------------------------------------------------------------------
    # Internal: Reconnect
    # -------------------------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        if self._shutdown_requested:
            return
        delay_ms = self._scheduler.schedule(self._reconnect)
        _LOGGER.debug(
            "[%s] Scheduling reconnect attempt %d in %dms",
            self._config.label,
            self._scheduler.attempts,
            delay_ms,
        )

    def _reconnect(self) -> None:
        _LOGGER.debug(
            "[%s] Attempting to reconnect (attempt %d)",
            self._config.label,
            self._scheduler.attempts,
        )
        self._connect()

    # -------------------------------------------------------------------------
    # Internal: Event dispatch
    # -------------------------------------------------------------------------

    async def _dispatch(
        self, session: ConnectionSession, config: ListenerConfig
    ) -> None:
        """Consume one session's events until it terminates or is closed."""
        try:
            async for event in session.events():
                if event.type is SessionEventType.READY:
                    self._handle_ready(config)
                elif event.type is SessionEventType.MESSAGE:
                    self._handle_message(session, event, config)
                elif event.type is SessionEventType.TERMINATED:
                    self._handle_terminated(session, event, config)
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected dispatch error: %s", config.label, err)
            if session is self._session:
                self._install_session(None)
                self._set_status(ConnectionStatus.TRANSPORT_ERROR, str(err))
                self._schedule_reconnect()

    def _handle_ready(self, config: ListenerConfig) -> None:
        _LOGGER.info("[%s] Socket connected", config.label)
        self._scheduler.reset()

    def _handle_message(
        self, session: ConnectionSession, event: SessionEvent, config: ListenerConfig
    ) -> None:
        try:
            message = event.json()
        except ListenerDecodeError as err:
            _LOGGER.warning("[%s] %s", config.label, err)
            return

        try:
            result = interpret(message, config.secret)
        except ValueError as err:
            _LOGGER.warning("[%s] Invalid message: %s", config.label, err)
            return

        if result is None:
            _LOGGER.debug("[%s] Received message: %s", config.label, event.data)
            self._notify_message(message)
            return

        if result.reply is not None:
            self._send(session, encode_command(result.reply))

        if result.outcome is AuthOutcome.AUTHENTICATED:
            _LOGGER.info("[%s] Authentication successful", config.label)
            self._auth_outcome = AuthOutcome.AUTHENTICATED
            self._set_status(ConnectionStatus.OK)
            self._send(session, encode_command(build_subscribe_sys_info()))
        elif result.outcome is AuthOutcome.REJECTED:
            _LOGGER.error("[%s] Authentication failed: %s", config.label, result.detail)
            self._auth_outcome = AuthOutcome.REJECTED
            self._set_status(
                ConnectionStatus.BAD_CONFIG, f"Authentication failed: {result.detail}"
            )

    def _handle_terminated(
        self, session: ConnectionSession, event: SessionEvent, config: ListenerConfig
    ) -> None:
        if session is not self._session:
            return

        self._install_session(None)
        self._auth_outcome = AuthOutcome.UNAUTHENTICATED

        if event.reason is TerminationReason.REMOTE_CLOSE:
            _LOGGER.info("[%s] %s", config.label, event.data)
            self._set_status(ConnectionStatus.DISCONNECTED, event.data)
        else:
            _LOGGER.error("[%s] Socket error: %s", config.label, event.data)
            self._set_status(ConnectionStatus.TRANSPORT_ERROR, event.data)

        self._schedule_reconnect()

    # -------------------------------------------------------------------------
    # Internal: Notifications
    # -------------------------------------------------------------------------

    def _set_status(self, status: ConnectionStatus, detail: str | None = None) -> None:
        """Update status and notify callback on change."""
        if status is self._status and detail == self._status_detail:
            return
        _LOGGER.debug(
            "[%s] Status: %s → %s",
            self._config.label,
            self._status.value,
            status.value,
        )
        self._status = status
        self._status_detail = detail
        if self._status_callback:
            try:
                self._status_callback(status, detail)
            except Exception as err:
                _LOGGER.exception(
                    "[%s] Status callback error: %s", self._config.label, err
                )

    def _notify_message(self, message: dict[str, Any]) -> None:
        if self._message_callback:
            try:
                self._message_callback(message)
            except Exception as err:
                _LOGGER.exception(
                    "[%s] Message callback error: %s", self._config.label, err
                )
