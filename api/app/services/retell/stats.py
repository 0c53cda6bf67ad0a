"""
Stats Aggregator — Period-over-period call counts and the 7-day call chart.

Built from several PagedCallFetcher calls. If any slice is unavailable the
update is skipped and the last-known-good values stay in place; partial
data never overwrites what the dashboard already shows.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable
from zoneinfo import ZoneInfo

from app.config import settings
from app.models.calls import (
    AggregatedStats,
    CallDirection,
    CallRecord,
    FetchPeriod,
    WeeklyPoint,
)
from app.services.retell.fetcher import PagedCallFetcher

logger = logging.getLogger(__name__)

_DAY_MS = 24 * 60 * 60 * 1000
STATS_PERIOD_DAYS = 30
WEEKLY_DAYS = 7
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# PURE HELPERS
# =============================================================================


def format_percentage_change(current: int, previous: int) -> str:
    """Label for the change indicator under a KPI card."""
    if previous == 0:
        return "+100%" if current > 0 else "0%"
    change = math.floor((current - previous) * 100 / previous + 0.5)
    if change == 0:
        return "No change"
    return f"+{change}%" if change > 0 else f"{change}%"


def to_epoch_ms(dt: datetime) -> int:
    """Exact epoch milliseconds for an aware datetime."""
    return (dt - _EPOCH) // timedelta(milliseconds=1)


def _end_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=23, minute=59, second=59, microsecond=999000)


def day_label(day: date) -> str:
    """Month-day bucket label, e.g. "Oct 5"."""
    return f"{day:%b} {day.day}"


def stats_periods(now: datetime, days: int = STATS_PERIOD_DAYS) -> tuple[FetchPeriod, FetchPeriod]:
    """(current, previous): equal-length, contiguous, non-overlapping windows."""
    current_end = to_epoch_ms(_end_of_day(now))
    current_start = current_end - days * _DAY_MS + 1
    previous_end = current_start - 1
    previous_start = previous_end - days * _DAY_MS + 1
    return (
        FetchPeriod(current_start, current_end),
        FetchPeriod(previous_start, previous_end),
    )


def weekly_window(now: datetime, days: int = WEEKLY_DAYS) -> tuple[list[date], FetchPeriod]:
    """The trailing calendar days (oldest first) and the window covering them."""
    today = now.date()
    window_days = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    start = datetime.combine(window_days[0], time.min, tzinfo=now.tzinfo)
    return window_days, FetchPeriod(to_epoch_ms(start), to_epoch_ms(_end_of_day(now)))


def bucket_calls_by_day(
    calls: list[CallRecord],
    window_days: list[date],
    tz: tzinfo,
) -> list[WeeklyPoint]:
    """Count calls per seeded day; calls outside the seeded days are dropped."""
    buckets: dict[str, int] = {day_label(day): 0 for day in window_days}
    for call in calls:
        if call.start_timestamp is None:
            continue
        label = day_label(datetime.fromtimestamp(call.start_timestamp / 1000, tz).date())
        if label in buckets:
            buckets[label] += 1
    return [WeeklyPoint(date=label, calls=count) for label, count in buckets.items()]


# =============================================================================
# AGGREGATOR
# =============================================================================


class StatsAggregator:
    """Holds the last-known-good call stats and weekly series for a dashboard."""

    def __init__(
        self,
        fetcher: PagedCallFetcher,
        inbound_agent_id: str | None,
        outbound_agent_id: str | None,
        tz: tzinfo | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._agents: dict[str, str | None] = {
            "inbound": inbound_agent_id,
            "outbound": outbound_agent_id,
        }
        self._tz = tz or ZoneInfo(settings.dashboard_timezone)
        self._now = now or (lambda: datetime.now(self._tz))
        self.stats: AggregatedStats | None = None
        self.weekly_series: list[WeeklyPoint] | None = None

    async def _fetch_slice(
        self, direction: CallDirection, period: FetchPeriod
    ) -> list[CallRecord] | None:
        agent_id = self._agents[direction]
        if not agent_id:
            # No agent for this direction: contributes zero calls
            return []
        return await self._fetcher.fetch_all_calls(
            agent_id, direction, period.start_ts, period.end_ts
        )

    async def compute_call_stats(self) -> AggregatedStats | None:
        """Last 30 days vs the 30 before. None means skipped; stored stats unchanged."""
        current, previous = stats_periods(self._now())

        counts: dict[tuple[str, CallDirection], int] = {}
        for label, period in (("current", current), ("previous", previous)):
            for direction in ("inbound", "outbound"):
                calls = await self._fetch_slice(direction, period)
                if calls is None:
                    logger.warning(
                        "Call stats update skipped: %s %s calls unavailable",
                        label,
                        direction,
                    )
                    return None
                counts[(label, direction)] = len(calls)

        stats = AggregatedStats(
            current=counts[("current", "inbound")] + counts[("current", "outbound")],
            previous=counts[("previous", "inbound")] + counts[("previous", "outbound")],
        )
        self.stats = stats
        logger.info("Call stats updated: current=%d previous=%d", stats.current, stats.previous)
        return stats

    async def compute_weekly_series(self) -> list[WeeklyPoint] | None:
        """Calls per day over the trailing week. None means skipped."""
        now = self._now()
        window_days, period = weekly_window(now)

        inbound, outbound = await asyncio.gather(
            self._fetch_slice("inbound", period),
            self._fetch_slice("outbound", period),
        )
        if inbound is None or outbound is None:
            logger.warning("Weekly call series skipped: a direction is unavailable")
            return None

        series = bucket_calls_by_day(inbound + outbound, window_days, now.tzinfo or self._tz)
        self.weekly_series = series
        return series

    def change_label(self) -> str | None:
        if self.stats is None:
            return None
        return format_percentage_change(self.stats.current, self.stats.previous)
