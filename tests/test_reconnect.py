"""Tests for reconnect backoff and the single pending timer."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from listener_client.config import ReconnectPolicy
from listener_client.reconnect import ReconnectScheduler, compute_delay


class TestComputeDelay:
    """Tests for compute_delay()."""

    @pytest.mark.parametrize(
        ("attempts", "expected"),
        [(1, 500), (2, 1000), (3, 1500), (19, 9500), (20, 10000), (40, 10000)],
    )
    def test_default_policy(self, attempts, expected):
        """Test the linear ramp and per-run ceiling."""
        assert compute_delay(attempts, ReconnectPolicy()) == expected

    def test_absolute_ceiling_applies_second(self):
        """Test a tighter absolute ceiling still clamps."""
        policy = ReconnectPolicy(
            increment_ms=1000, max_delay_ms=20000, absolute_max_delay_ms=15000
        )
        assert compute_delay(18, policy) == 15000
        assert compute_delay(10, policy) == 10000

    def test_attempts_must_be_positive(self):
        """Test attempt numbering starts at 1."""
        with pytest.raises(ValueError):
            compute_delay(0, ReconnectPolicy())


class TestBackoffState:
    """Tests for ReconnectScheduler attempt accounting."""

    def test_initial_state(self):
        """Test the budget starts at zero attempts and the base delay."""
        scheduler = ReconnectScheduler()
        assert scheduler.attempts == 0
        assert scheduler.current_delay_ms == 500
        assert not scheduler.pending

    def test_delays_non_decreasing(self):
        """Test delays never shrink within a failure run."""
        scheduler = ReconnectScheduler()
        delays = [scheduler.next_delay_ms() for _ in range(40)]

        assert delays == sorted(delays)
        assert delays[0] == 500
        assert delays[-1] == 10000
        assert scheduler.attempts == 40

    def test_reset(self):
        """Test reset restores the initial budget."""
        scheduler = ReconnectScheduler()
        for _ in range(5):
            scheduler.next_delay_ms()

        scheduler.reset()

        assert scheduler.attempts == 0
        assert scheduler.current_delay_ms == 500
        assert scheduler.next_delay_ms() == 500


class TestScheduling:
    """Tests for timer scheduling and cancellation."""

    @pytest.mark.asyncio
    async def test_schedule_fires_once(self):
        """Test the callback runs after the delay and clears the timer."""
        scheduler = ReconnectScheduler(ReconnectPolicy(increment_ms=10))
        callback = MagicMock()

        delay = scheduler.schedule(callback)

        assert delay == 10
        assert scheduler.pending
        assert scheduler.pending_delay_ms == 10
        await asyncio.sleep(0.05)
        callback.assert_called_once_with()
        assert not scheduler.pending
        assert scheduler.pending_delay_ms is None

    @pytest.mark.asyncio
    async def test_schedule_replaces_pending(self):
        """Test a new schedule cancels the previous timer."""
        scheduler = ReconnectScheduler(ReconnectPolicy(increment_ms=10))
        first = MagicMock()
        second = MagicMock()

        scheduler.schedule(first)
        scheduler.schedule(second)
        await asyncio.sleep(0.1)

        first.assert_not_called()
        second.assert_called_once_with()
        assert scheduler.attempts == 2

    @pytest.mark.asyncio
    async def test_cancel(self):
        """Test cancel stops a pending timer."""
        scheduler = ReconnectScheduler(ReconnectPolicy(increment_ms=10))
        callback = MagicMock()
        scheduler.schedule(callback)

        assert scheduler.cancel() is True
        await asyncio.sleep(0.05)

        callback.assert_not_called()
        assert not scheduler.pending
        assert scheduler.cancel() is False
