"""
Messages Router — Messages taken by the AI receptionist.

Endpoints:
  GET /messages         — Messages, newest first
  GET /messages/stats   — Last 30 days vs the 30 before

Reads Supabase only, so it keeps working while the calling API is backing off.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from app.models.calls import AggregatedStats
from app.models.clinic import ClinicProfile, MessageTaken
from app.models.dashboard import MessageStats
from app.services.auth import get_current_clinic
from app.services.retell.stats import STATS_PERIOD_DAYS, format_percentage_change
from app.services.supabase import count_rows, get_supabase_client

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_messages(
    clinic: ClinicProfile = Depends(get_current_clinic),
    limit: int | None = Query(default=None, ge=1, le=500),
) -> list[MessageTaken]:
    """Messages for the clinic, newest first."""
    sb = await get_supabase_client()

    try:
        query = (
            sb.table("messages_taken")
            .select("*")
            .eq("client_id", str(clinic.id))
            .order("date_time", desc=True)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await query.execute()
    except Exception:
        logger.exception("Messages: failed to list messages")
        raise HTTPException(status_code=500, detail="Failed to fetch messages")

    return [MessageTaken(**row) for row in result.data or []]


@router.get("/stats")
async def message_stats(
    clinic: ClinicProfile = Depends(get_current_clinic),
) -> MessageStats:
    """Messages in the last 30 days against the previous 30."""
    sb = await get_supabase_client()
    now = datetime.now(timezone.utc)
    current_start = now - timedelta(days=STATS_PERIOD_DAYS)
    previous_start = current_start - timedelta(days=STATS_PERIOD_DAYS)

    try:
        current = await count_rows(
            sb.table("messages_taken")
            .select("id", count="exact")
            .eq("client_id", str(clinic.id))
            .gte("date_time", current_start.isoformat())
            .lte("date_time", now.isoformat())
        )
        previous = await count_rows(
            sb.table("messages_taken")
            .select("id", count="exact")
            .eq("client_id", str(clinic.id))
            .gte("date_time", previous_start.isoformat())
            .lt("date_time", current_start.isoformat())
        )
    except Exception:
        logger.exception("Messages: failed to count messages")
        raise HTTPException(status_code=500, detail="Failed to fetch message stats")

    return MessageStats(
        stats=AggregatedStats(current=current, previous=previous),
        change_label=format_percentage_change(current, previous),
    )
