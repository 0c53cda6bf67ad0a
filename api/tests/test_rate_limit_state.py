"""
Tests for the dashboard rate limit state.

Covers: Idle → Backoff, countdown ticks, expiry back to Idle with a single
automatic retry, forced reset on success, timer teardown.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.services.retell.rate_limit_state import DashboardRateLimitState

# ===========================================================================
# TestTransitions
# ===========================================================================


@pytest.mark.unit
class TestTransitions:
    """State machine without the background timer."""

    def test_initial_state_is_idle(self) -> None:
        state = DashboardRateLimitState(countdown=False)
        snap = state.snapshot()
        assert snap.is_rate_limited is False
        assert snap.retry_after == 0
        assert snap.retry_count == 0

    def test_enter_backoff(self) -> None:
        state = DashboardRateLimitState(countdown=False)
        state.enter_backoff(7)
        assert state.is_rate_limited is True
        assert state.retry_after == 7
        assert state.retry_count == 1

    def test_second_429_extends_and_counts(self) -> None:
        state = DashboardRateLimitState(countdown=False)
        state.enter_backoff(5)
        state.tick()
        state.enter_backoff(11)
        assert state.retry_after == 11
        assert state.retry_count == 2

    def test_count_survives_expiry_within_episode(self) -> None:
        state = DashboardRateLimitState(countdown=False)
        state.enter_backoff(1)
        state.tick()
        assert state.is_rate_limited is False

        state.enter_backoff(2)
        assert state.retry_count == 2
        state.reset()
        assert state.retry_count == 0

    def test_tick_decrements(self) -> None:
        state = DashboardRateLimitState(countdown=False)
        state.enter_backoff(3)
        state.tick()
        assert state.retry_after == 2
        assert state.is_rate_limited is True

    def test_tick_when_idle_is_noop(self) -> None:
        state = DashboardRateLimitState(countdown=False)
        state.tick()
        assert state.retry_after == 0
        assert state.is_rate_limited is False

    def test_reset_forces_idle(self) -> None:
        state = DashboardRateLimitState(countdown=False)
        state.enter_backoff(30)
        state.enter_backoff(30)
        state.reset()
        assert state.snapshot().model_dump() == {
            "is_rate_limited": False,
            "retry_after": 0,
            "retry_count": 0,
        }


# ===========================================================================
# TestExpiry
# ===========================================================================


@pytest.mark.unit
class TestExpiry:
    """Countdown reaching zero."""

    @pytest.mark.asyncio
    async def test_expiry_returns_to_idle_and_retries_once(self) -> None:
        on_expire = AsyncMock()
        state = DashboardRateLimitState(on_expire=on_expire, countdown=False)
        state.enter_backoff(2)

        state.tick()
        on_expire.assert_not_called()
        state.tick()
        assert state.is_rate_limited is False
        # Count only clears on success
        assert state.retry_count == 1

        await asyncio.sleep(0)
        on_expire.assert_awaited_once()

        # Further ticks while idle don't fire again
        state.tick()
        await asyncio.sleep(0)
        on_expire.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_expiry_callback_failure_is_logged(self) -> None:
        on_expire = AsyncMock(side_effect=RuntimeError("boom"))
        state = DashboardRateLimitState(on_expire=on_expire, countdown=False)
        state.enter_backoff(1)
        state.tick()
        await asyncio.sleep(0)
        on_expire.assert_awaited_once()
        assert state.is_rate_limited is False

    @pytest.mark.asyncio
    async def test_timer_counts_down(self) -> None:
        on_expire = AsyncMock()
        state = DashboardRateLimitState(on_expire=on_expire, tick_seconds=0.01)
        state.enter_backoff(3)

        for _ in range(100):
            if not state.is_rate_limited and on_expire.await_count:
                break
            await asyncio.sleep(0.01)

        assert state.is_rate_limited is False
        assert state.retry_after == 0
        on_expire.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reset_stops_timer(self) -> None:
        on_expire = AsyncMock()
        state = DashboardRateLimitState(on_expire=on_expire, tick_seconds=0.01)
        state.enter_backoff(2)
        state.reset()

        await asyncio.sleep(0.05)
        on_expire.assert_not_called()
        assert state.is_rate_limited is False

    @pytest.mark.asyncio
    async def test_close_stops_timer(self) -> None:
        on_expire = AsyncMock()
        state = DashboardRateLimitState(on_expire=on_expire, tick_seconds=0.01)
        state.enter_backoff(2)
        state.close()

        await asyncio.sleep(0.05)
        on_expire.assert_not_called()
        # Backoff is frozen, not cleared
        assert state.is_rate_limited is True
        assert state.retry_after == 2
