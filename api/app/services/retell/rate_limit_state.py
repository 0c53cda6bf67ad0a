"""
Dashboard Rate Limit State — Shared backoff bookkeeping for calling-API fetches.

Two states: Idle (is_rate_limited=False) and Backoff(retry_after, retry_count).
The executor writes it on every 429 and every success; fetchers check it
before starting a fetch chain; the UI reads it for the countdown.

A one-second countdown task runs while in Backoff. When it reaches zero the
state returns to Idle and the expiry callback (re-run of the pending
dashboard fetches) is scheduled once. retry_count keeps climbing across
countdowns and only returns to 0 in reset().
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from app.models.dashboard import RateLimitSnapshot

logger = logging.getLogger(__name__)

ExpiryCallback = Callable[[], Awaitable[None]]


class DashboardRateLimitState:
    """Backoff status for one dashboard view."""

    def __init__(
        self,
        on_expire: ExpiryCallback | None = None,
        tick_seconds: float = 1.0,
        countdown: bool = True,
    ) -> None:
        self.is_rate_limited = False
        self.retry_after = 0
        self.retry_count = 0
        self._on_expire = on_expire
        self._tick_seconds = tick_seconds
        self._countdown_enabled = countdown
        self._countdown_task: asyncio.Task[None] | None = None
        self._expiry_task: asyncio.Task[None] | None = None

    # -------------------------------------------------------------------------
    # Writers
    # -------------------------------------------------------------------------

    def enter_backoff(self, wait_seconds: int) -> None:
        """Record a 429: Idle → Backoff, or extend the current Backoff."""
        self.is_rate_limited = True
        self.retry_after = max(0, int(wait_seconds))
        self.retry_count += 1
        logger.warning(
            "Calling API rate limited: retry in %ds (retry #%d)",
            self.retry_after,
            self.retry_count,
        )
        self._ensure_countdown()

    def reset(self) -> None:
        """Force Idle after a successful fetch."""
        if self.is_rate_limited:
            logger.info("Calling API rate limit cleared after %d retries", self.retry_count)
        self.is_rate_limited = False
        self.retry_after = 0
        self.retry_count = 0
        self._cancel_countdown()

    def tick(self) -> None:
        """One countdown step. Reaching zero returns to Idle and fires expiry."""
        if not self.is_rate_limited:
            return
        self.retry_after = max(0, self.retry_after - 1)
        if self.retry_after > 0:
            return

        # retry_count survives expiry: the episode only ends on success
        self.is_rate_limited = False
        logger.info("Rate limit countdown finished")
        if self._on_expire is not None:
            self._expiry_task = asyncio.get_running_loop().create_task(
                self._run_expiry(self._on_expire)
            )

    # -------------------------------------------------------------------------
    # Readers
    # -------------------------------------------------------------------------

    def snapshot(self) -> RateLimitSnapshot:
        return RateLimitSnapshot(
            is_rate_limited=self.is_rate_limited,
            retry_after=self.retry_after,
            retry_count=self.retry_count,
        )

    # -------------------------------------------------------------------------
    # Timer
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Stop the countdown (view torn down)."""
        self._cancel_countdown()
        if self._expiry_task is not None and not self._expiry_task.done():
            self._expiry_task.cancel()
        self._expiry_task = None

    def _ensure_countdown(self) -> None:
        if not self._countdown_enabled:
            return
        if self._countdown_task is not None and not self._countdown_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; countdown not started")
            return
        self._countdown_task = loop.create_task(self._run_countdown())

    def _cancel_countdown(self) -> None:
        task = self._countdown_task
        self._countdown_task = None
        if task is not None and not task.done():
            task.cancel()

    async def _run_countdown(self) -> None:
        while self.is_rate_limited:
            await asyncio.sleep(self._tick_seconds)
            self.tick()

    async def _run_expiry(self, callback: ExpiryCallback) -> None:
        try:
            await callback()
        except Exception:
            logger.exception("Automatic retry after rate limit countdown failed")
