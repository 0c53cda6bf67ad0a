"""
Calls Router — Call history screen.

Endpoints:
  GET /calls   — One page of calls (direction, page size, cursor, date range)
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query

from app.config import settings
from app.models.calls import CallDirection, CallsPage
from app.routers.dashboard import get_dashboard_session
from app.services.dashboard import DashboardSession
from app.services.retell.stats import to_epoch_ms

logger = logging.getLogger(__name__)

router = APIRouter()


def _day_bound_ms(day: date, end: bool) -> int:
    """Start (00:00:00.000) or end (23:59:59.999) of a local day, in epoch ms."""
    tz = ZoneInfo(settings.dashboard_timezone)
    moment = datetime.combine(day, time.max if end else time.min, tzinfo=tz)
    if end:
        moment = moment.replace(microsecond=999000)
    return to_epoch_ms(moment)


@router.get("")
async def list_calls(
    session: DashboardSession = Depends(get_dashboard_session),
    direction: CallDirection = Query(default="inbound"),
    page_size: int = Query(default=10, ge=1, le=1000),
    pagination_key: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
) -> CallsPage:
    """List calls newest first; pass next_pagination_key back for the next page."""
    agent_id = session.config.agent_for(direction)
    if not agent_id:
        raise HTTPException(status_code=404, detail=f"No {direction} agent configured")

    start_ts = _day_bound_ms(start_date, end=False) if start_date else None
    end_ts = _day_bound_ms(end_date, end=True) if end_date else None
    if start_ts is not None and end_ts is not None and start_ts > end_ts:
        raise HTTPException(status_code=422, detail="start_date is after end_date")

    page = await session.fetcher.list_calls_page(
        agent_id,
        direction,
        page_size,
        pagination_key=pagination_key,
        start_ts=start_ts,
        end_ts=end_ts,
    )
    if page is None:
        state = session.rate_limit
        headers = {"Retry-After": str(state.retry_after)} if state.is_rate_limited else None
        raise HTTPException(
            status_code=503, detail="Call history temporarily unavailable", headers=headers
        )
    return page
