"""
Dashboard Router — Overview widgets backed by the calling API.

Endpoints:
  GET  /dashboard/overview     — KPI card, weekly chart, recent calls (loads on first call)
  POST /dashboard/refresh      — Manual refresh (429 while backing off)
  GET  /dashboard/rate-limit   — Countdown state
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.models.clinic import ClinicProfile
from app.models.dashboard import DashboardOverview, RateLimitSnapshot
from app.services.auth import get_current_clinic
from app.services.clinic import get_retell_config
from app.services.dashboard import DashboardSession, get_dashboard_registry

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# SESSION DEPENDENCY
# =============================================================================


async def get_dashboard_session(
    clinic: ClinicProfile = Depends(get_current_clinic),
) -> DashboardSession:
    """Live dashboard session for the logged-in clinic."""
    try:
        config = await get_retell_config(clinic.id)
    except Exception:
        logger.exception("Dashboard: failed to fetch retell config")
        raise HTTPException(status_code=500, detail="Failed to load calling configuration")

    if config is None:
        raise HTTPException(status_code=404, detail="Calling API not configured")

    return await get_dashboard_registry().get_or_create(config)


# =============================================================================
# ENDPOINTS
# =============================================================================


@router.get("/overview")
async def overview(
    session: DashboardSession = Depends(get_dashboard_session),
) -> DashboardOverview:
    """Current widget values; the first request for a clinic loads them."""
    if not session.has_loaded and not session.rate_limit.is_rate_limited:
        return await session.refresh()
    return session.overview()


@router.post("/refresh")
async def refresh(
    session: DashboardSession = Depends(get_dashboard_session),
) -> DashboardOverview:
    """Re-fetch the calling-API widgets. Disabled while backing off."""
    state = session.rate_limit
    if state.is_rate_limited:
        raise HTTPException(
            status_code=429,
            detail=f"Rate limited, retrying automatically in {state.retry_after}s",
            headers={"Retry-After": str(state.retry_after)},
        )
    return await session.refresh()


@router.get("/rate-limit")
async def rate_limit(
    session: DashboardSession = Depends(get_dashboard_session),
) -> RateLimitSnapshot:
    """Backoff countdown for the call widgets."""
    return session.rate_limit.snapshot()
