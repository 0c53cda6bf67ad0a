"""
Dashboard Models — Pydantic response models for the overview widgets.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.calls import AggregatedStats, CallRecord, WeeklyPoint

# =============================================================================
# RATE LIMIT (COUNTDOWN)
# =============================================================================


class RateLimitSnapshot(BaseModel):
    """Backoff status shown as a countdown next to the call widgets."""

    is_rate_limited: bool
    retry_after: int  # seconds left
    retry_count: int


# =============================================================================
# OVERVIEW (KPI CARDS + CHART)
# =============================================================================


class CallStatsCard(BaseModel):
    """Total calls card: 30-day count against the previous 30 days."""

    stats: AggregatedStats | None = None  # None until the first successful fetch
    change_label: str | None = None


class DashboardOverview(BaseModel):
    """Everything the dashboard landing page renders."""

    call_stats: CallStatsCard
    weekly_calls: list[WeeklyPoint] = Field(default_factory=list)
    recent_calls: list[CallRecord] = Field(default_factory=list)
    rate_limit: RateLimitSnapshot
    last_refreshed_at: datetime | None = None


class MessageStats(BaseModel):
    """Messages-taken card; independent of the calling API."""

    stats: AggregatedStats
    change_label: str
