"""
Appointments Router — Calendar/CRM appointments.

Endpoints:
  GET /appointments            — Appointments, newest first, paged
  GET /appointments/calendars  — Configured calendars with service names
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query

from app.config import settings
from app.models.clinic import AppointmentCalendar, ClinicConfig, ClinicProfile, PaginatedResponse
from app.services import ghl
from app.services.auth import get_current_clinic
from app.services.clinic import get_clinic_config

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_LOOKBACK_DAYS = 365


async def _require_clinic_config(
    clinic: ClinicProfile = Depends(get_current_clinic),
) -> ClinicConfig:
    try:
        config = await get_clinic_config(clinic.id)
    except Exception:
        logger.exception("Appointments: failed to fetch clinic config")
        raise HTTPException(status_code=500, detail="Failed to load clinic configuration")
    if config is None:
        raise HTTPException(status_code=404, detail="Calendar not configured")
    return config


@router.get("")
async def list_appointments(
    config: ClinicConfig = Depends(_require_clinic_config),
    calendar_id: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    limit: int = Query(default=10, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> PaginatedResponse:
    """Appointments in a date range (default: the past year up to now)."""
    tz = ZoneInfo(settings.dashboard_timezone)
    now = datetime.now(tz)
    if start_date:
        start = datetime.combine(start_date, time.min, tzinfo=tz)
    else:
        lookback = now.date() - timedelta(days=DEFAULT_LOOKBACK_DAYS)
        start = datetime.combine(lookback, time.min, tzinfo=tz)
    if end_date:
        end = datetime.combine(end_date, time.max, tzinfo=tz)
    else:
        end = now
    if start > end:
        raise HTTPException(status_code=422, detail="start_date is after end_date")

    if calendar_id and calendar_id not in config.calendar_ids:
        raise HTTPException(status_code=404, detail="Unknown calendar")

    appointments = await ghl.list_appointments(config, start, end, calendar_id=calendar_id)
    return PaginatedResponse(
        items=appointments[offset : offset + limit],
        total=len(appointments),
        limit=limit,
        offset=offset,
    )


@router.get("/calendars")
async def list_calendars(
    config: ClinicConfig = Depends(_require_clinic_config),
) -> list[AppointmentCalendar]:
    """Calendars the clinic books into, named after their services."""
    return await ghl.list_calendars(config)
