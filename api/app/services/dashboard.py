"""
Dashboard Sessions — One live dashboard per clinic.

A session owns everything the calling-API widgets share: the HTTP client
bound to the clinic's API key, the rate-limit state, and the last-known-good
stats. Refreshes are triggered by the first overview request, by a manual
refresh, or automatically when a backoff countdown runs out.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable
from uuid import UUID

import httpx

from app.config import settings
from app.models.calls import CallRecord
from app.models.clinic import RetellConfig
from app.models.dashboard import CallStatsCard, DashboardOverview
from app.services.retell.executor import RateLimitedRequestExecutor, Sleep
from app.services.retell.fetcher import PagedCallFetcher
from app.services.retell.rate_limit_state import DashboardRateLimitState
from app.services.retell.stats import StatsAggregator

logger = logging.getLogger(__name__)


def _retell_http_client(api_key: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
        timeout=settings.retell_request_timeout,
    )


class DashboardSession:
    """Calling-API widgets for one clinic."""

    def __init__(
        self,
        config: RetellConfig,
        http_client: httpx.AsyncClient | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        tz: tzinfo | None = None,
        now: Callable[[], datetime] | None = None,
        tick_seconds: float = 1.0,
        countdown: bool = True,
    ) -> None:
        self.config = config
        self._owns_client = http_client is None
        self._http = http_client or _retell_http_client(config.retell_api)
        self.rate_limit = DashboardRateLimitState(
            on_expire=self._on_countdown_expired,
            tick_seconds=tick_seconds,
            countdown=countdown,
        )
        self.executor = RateLimitedRequestExecutor(self._http, self.rate_limit, sleep=sleep)
        self.fetcher = PagedCallFetcher(self.executor)
        self.aggregator = StatsAggregator(
            self.fetcher,
            config.inbound_agent_id,
            config.outbound_agent_id,
            tz=tz,
            now=now,
        )
        self.recent_calls: list[CallRecord] = []
        self.last_refreshed_at: datetime | None = None
        self._in_flight = 0

    @property
    def clinic_id(self) -> UUID:
        return self.config.client_id

    @property
    def has_loaded(self) -> bool:
        return self.last_refreshed_at is not None

    @property
    def is_refreshing(self) -> bool:
        return self._in_flight > 0

    async def refresh(self) -> DashboardOverview:
        """Re-fetch every calling-API widget; failed widgets keep their old values."""
        self._in_flight += 1
        try:
            recent = await self.fetcher.fetch_recent_calls(self.config.inbound_agent_id)
            if recent is not None:
                self.recent_calls = recent
            stats = await self.aggregator.compute_call_stats()
            weekly = await self.aggregator.compute_weekly_series()
            if recent is not None or stats is not None or weekly is not None:
                self.last_refreshed_at = datetime.now(timezone.utc)
            else:
                logger.warning("Dashboard refresh for clinic %s updated nothing", self.clinic_id)
        finally:
            self._in_flight -= 1
        return self.overview()

    def overview(self) -> DashboardOverview:
        return DashboardOverview(
            call_stats=CallStatsCard(
                stats=self.aggregator.stats,
                change_label=self.aggregator.change_label(),
            ),
            weekly_calls=self.aggregator.weekly_series or [],
            recent_calls=self.recent_calls,
            rate_limit=self.rate_limit.snapshot(),
            last_refreshed_at=self.last_refreshed_at,
        )

    async def _on_countdown_expired(self) -> None:
        if self.is_refreshing:
            logger.debug("Countdown expired during a refresh; not re-running")
            return
        logger.info("Retrying dashboard fetches for clinic %s", self.clinic_id)
        await self.refresh()

    async def aclose(self) -> None:
        self.rate_limit.close()
        if self._owns_client:
            await self._http.aclose()


class DashboardRegistry:
    """Live dashboard sessions keyed by clinic id."""

    def __init__(self) -> None:
        self._sessions: dict[UUID, DashboardSession] = {}

    def get(self, clinic_id: UUID) -> DashboardSession | None:
        return self._sessions.get(clinic_id)

    async def get_or_create(self, config: RetellConfig) -> DashboardSession:
        """Session for the clinic; rebuilt when its calling-API config changed."""
        session = self._sessions.get(config.client_id)
        if session is not None and session.config == config:
            return session
        if session is not None:
            logger.info("Calling API config changed for clinic %s", config.client_id)
            await session.aclose()
        session = DashboardSession(config)
        self._sessions[config.client_id] = session
        return session

    async def close_all(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.aclose()


# Singleton
_registry: DashboardRegistry | None = None


def get_dashboard_registry() -> DashboardRegistry:
    """Get or create the singleton registry."""
    global _registry
    if _registry is None:
        _registry = DashboardRegistry()
    return _registry


def reset_dashboard_registry() -> None:
    """Reset the singleton (for testing)."""
    global _registry
    _registry = None
