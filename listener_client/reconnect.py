"""Reconnect backoff with a single pending timer.

The delay grows linearly with consecutive failures and is clamped twice:
first by the per-run ceiling, then by the absolute ceiling. With the
default policy the second clamp never binds, but both stay so that a
policy with a tighter absolute ceiling is still honored.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from .config import ReconnectPolicy

_LOGGER = logging.getLogger(__name__)


@dataclass
class BackoffState:
    """Retry budget for the current failure run."""

    attempts: int = 0
    current_delay_ms: int = 0


def compute_delay(attempts: int, policy: ReconnectPolicy) -> int:
    """Return the wait in milliseconds before reconnect attempt ``attempts``."""
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")
    delay = min(attempts * policy.increment_ms, policy.max_delay_ms)
    return min(delay, policy.absolute_max_delay_ms)


class ReconnectScheduler:
    """Schedules reconnect attempts on the running event loop.

    At most one timer is pending at any time: scheduling replaces and
    cancels the previous timer.
    """

    def __init__(self, policy: ReconnectPolicy | None = None) -> None:
        self._policy = policy or ReconnectPolicy()
        self._state = BackoffState(0, self._policy.increment_ms)
        self._timer: asyncio.TimerHandle | None = None
        self._pending_delay_ms: int | None = None

    @property
    def policy(self) -> ReconnectPolicy:
        return self._policy

    @property
    def attempts(self) -> int:
        return self._state.attempts

    @property
    def current_delay_ms(self) -> int:
        return self._state.current_delay_ms

    @property
    def pending(self) -> bool:
        """True while a reconnect timer is waiting to fire."""
        return self._timer is not None

    @property
    def pending_delay_ms(self) -> int | None:
        """Delay of the pending timer, None when nothing is pending."""
        return self._pending_delay_ms if self._timer is not None else None

    def next_delay_ms(self) -> int:
        """Count one more attempt and return its delay."""
        self._state.attempts += 1
        self._state.current_delay_ms = compute_delay(self._state.attempts, self._policy)
        return self._state.current_delay_ms

    def schedule(self, callback: Callable[[], None]) -> int:
        """Schedule ``callback`` after the next backoff delay.

        Any previously pending timer is cancelled first.

        Returns:
            The delay in milliseconds.
        """
        delay_ms = self.next_delay_ms()
        loop = asyncio.get_running_loop()
        self._set_timer(loop.call_later(delay_ms / 1000, self._fire, callback))
        self._pending_delay_ms = delay_ms
        return delay_ms

    def cancel(self) -> bool:
        """Cancel the pending timer.

        Returns:
            True if a timer was pending.
        """
        if self._timer is not None:
            _LOGGER.debug("Reconnect timer cancelled")
        return self._set_timer(None)

    def reset(self) -> None:
        """Start the retry budget over."""
        self._state = BackoffState(0, self._policy.increment_ms)

    def _set_timer(self, timer: asyncio.TimerHandle | None) -> bool:
        previous = self._timer
        if previous is not None and previous is not timer:
            previous.cancel()
        self._timer = timer
        if timer is None:
            self._pending_delay_ms = None
        return previous is not None

    def _fire(self, callback: Callable[[], None]) -> None:
        self._timer = None
        self._pending_delay_ms = None
        callback()
