"""
Auth Router — Clinic login.

Endpoints:
  POST /auth/login   — Email/password login, returns a session token
  GET  /auth/me      — Profile of the logged-in clinic
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.config import settings
from app.models.clinic import ClinicProfile, LoginRequest, LoginResponse
from app.services.auth import authenticate, create_session_token, get_current_clinic

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login")
async def login(body: LoginRequest) -> LoginResponse:
    """Exchange clinic credentials for a session token."""
    try:
        clinic = await authenticate(body.email, body.password)
    except Exception:
        logger.exception("Login: database error")
        raise HTTPException(status_code=500, detail="Login failed")

    if clinic is None:
        logger.info("Login rejected for %s", body.email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    return LoginResponse(
        access_token=create_session_token(clinic),
        expires_in=settings.session_ttl_seconds,
        clinic=clinic,
    )


@router.get("/me")
async def me(clinic: ClinicProfile = Depends(get_current_clinic)) -> ClinicProfile:
    """Get the logged-in clinic's profile."""
    return clinic
