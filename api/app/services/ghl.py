"""
Calendar/CRM Integration — Appointments and services from GoHighLevel.

Plain request/response: no pagination and no rate-limit handling. A calendar
that fails is logged and skipped so the others still show.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx
from pydantic import ValidationError

from app.config import settings
from app.models.clinic import Appointment, AppointmentCalendar, ClinicConfig
from app.services.retell.stats import to_epoch_ms

logger = logging.getLogger(__name__)


def _headers(api_key: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def _title_case(name: str) -> str:
    """Capitalise the first letter of every word, leaving the rest untouched."""
    return " ".join(word[:1].upper() + word[1:] for word in name.split(" "))


async def list_calendars(config: ClinicConfig) -> list[AppointmentCalendar]:
    """Configured calendar ids that match a service, named after the service."""
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(
                f"{settings.ghl_base_url}/calendars/services",
                headers=_headers(config.ghl_api),
                timeout=settings.ghl_request_timeout,
            )
    except httpx.RequestError as e:
        logger.error("Calendar services request failed: %s", e)
        return []
    if not resp.is_success:
        logger.error("Calendar services API error: %d", resp.status_code)
        return []

    try:
        payload = resp.json()
        services: dict[str, dict[str, Any]] = {
            service["id"]: service for service in payload.get("services") or []
        }
    except (ValueError, AttributeError, KeyError, TypeError) as e:
        logger.error("Malformed calendar services response: %s", e)
        return []

    calendars: list[AppointmentCalendar] = []
    for calendar_id in config.calendar_ids:
        service = services.get(calendar_id)
        if service is None:
            continue
        calendars.append(
            AppointmentCalendar(
                id=calendar_id,
                name=_title_case(service.get("name") or ""),
                description=service.get("description") or f"Service {calendar_id}",
            )
        )
    return calendars


async def _fetch_calendar_appointments(
    client: httpx.AsyncClient,
    config: ClinicConfig,
    calendar_id: str,
    start: datetime,
    end: datetime,
) -> list[Appointment] | None:
    params = {
        "startDate": str(to_epoch_ms(start)),
        "endDate": str(to_epoch_ms(end)),
        "includeAll": "true",
        "locationId": config.location_id,
        "calendarId": calendar_id,
    }
    resp = await client.get(
        f"{settings.ghl_base_url}/appointments/",
        params=params,
        headers=_headers(config.ghl_api),
        timeout=settings.ghl_request_timeout,
    )
    if not resp.is_success:
        logger.error(
            "Appointments API error for calendar %s: %d %s",
            calendar_id,
            resp.status_code,
            resp.text,
        )
        return None

    try:
        return [Appointment.model_validate(a) for a in resp.json().get("appointments") or []]
    except (ValueError, ValidationError, AttributeError, TypeError) as e:
        logger.error("Malformed appointments for calendar %s: %s", calendar_id, e)
        return None


async def list_appointments(
    config: ClinicConfig,
    start: datetime,
    end: datetime,
    calendar_id: str | None = None,
) -> list[Appointment]:
    """Appointments across the clinic's calendars (or one), newest first."""
    calendar_ids = [calendar_id] if calendar_id else config.calendar_ids
    appointments: list[Appointment] = []

    async with httpx.AsyncClient() as client:
        for cid in calendar_ids:
            try:
                found = await _fetch_calendar_appointments(client, config, cid, start, end)
            except httpx.RequestError as e:
                logger.error("Appointments request failed for calendar %s: %s", cid, e)
                continue
            if found:
                appointments.extend(found)

    appointments.sort(key=lambda a: a.start_time, reverse=True)
    return appointments
