"""
Rate-Limited Request Executor — One logical HTTP request against the calling API.

429 responses are retried with exponential backoff plus jitter, honouring
Retry-After. Transport failures are retried with plain exponential backoff.
Other error statuses are returned to the caller untouched.

Never raises for rate limiting or transport failures: exhaustion is
signalled by returning None.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable

import httpx

from app.config import settings
from app.services.retell.rate_limit_state import DashboardRateLimitState

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def parse_retry_after(value: str | None, default: int) -> int:
    """Seconds suggested by a Retry-After header, or the default."""
    if value is None:
        return default
    try:
        seconds = int(value.strip())
    except ValueError:
        # HTTP-date form is not sent by the calling API
        return default
    return seconds if seconds >= 0 else default


def compute_backoff(
    base_wait: int,
    attempt: int,
    jitter: float,
    max_wait: int | None = None,
) -> int:
    """Whole seconds to wait before retry: min(base * 2^attempt, max) + jitter, floored."""
    cap = settings.retell_max_backoff_seconds if max_wait is None else max_wait
    return int(min(base_wait * 2**attempt, cap) + jitter)


class RateLimitedRequestExecutor:
    """Executes calling-API requests with bounded retry."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        state: DashboardRateLimitState,
        sleep: Sleep = asyncio.sleep,
        jitter: Callable[[], float] | None = None,
    ) -> None:
        self._client = client
        self._state = state
        self._sleep = sleep
        self._jitter = jitter or (
            lambda: random.uniform(0, settings.retell_jitter_seconds)
        )

    @property
    def state(self) -> DashboardRateLimitState:
        return self._state

    async def execute(
        self,
        method: str,
        url: str,
        *,
        max_retries: int | None = None,
        **kwargs: Any,
    ) -> httpx.Response | None:
        """Send the request; return the response or None once retries are exhausted."""
        retries = settings.retell_max_retries if max_retries is None else max_retries
        rate_limited = False

        for attempt in range(retries + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.RequestError as e:
                if attempt >= retries:
                    logger.error(
                        "Calling API transport failure, giving up after %d attempts: %s",
                        attempt + 1,
                        e,
                    )
                    return None
                backoff = 2**attempt
                logger.warning(
                    "Calling API transport failure (attempt %d), retrying in %ds: %s",
                    attempt + 1,
                    backoff,
                    e,
                )
                await self._sleep(backoff)
                continue

            if response.status_code == 429:
                rate_limited = True
                base_wait = parse_retry_after(
                    response.headers.get("Retry-After"),
                    settings.retell_default_retry_after,
                )
                wait = compute_backoff(base_wait, attempt, self._jitter())
                self._state.enter_backoff(wait)
                if attempt >= retries:
                    logger.error(
                        "Calling API still rate limited after %d attempts, giving up: %s",
                        attempt + 1,
                        url,
                    )
                    return None
                await self._sleep(wait)
                continue

            if response.is_success or rate_limited:
                self._state.reset()
            if not response.is_success:
                logger.error(
                    "Calling API error %d for %s %s", response.status_code, method, url
                )
            return response

        return None
