"""
Clinic Auth — Login lookup and session tokens for the dashboard.

Login compares the submitted password against client_login as stored
(plaintext, a known weakness of the existing schema). A successful login
returns an HS256 session token; dashboard endpoints accept it as a Bearer
token via the get_current_clinic dependency.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import jwt
from fastapi import HTTPException, Request

from app.config import settings
from app.models.clinic import ClinicProfile
from app.services.supabase import get_first_or_none, get_supabase_client

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"
_AUDIENCE = "clinic-dashboard"


async def authenticate(email: str, password: str) -> ClinicProfile | None:
    """Look up a clinic login; None when the credentials don't match."""
    sb = await get_supabase_client()
    row = await get_first_or_none(
        sb.table("client_login")
        .select("*")
        .eq("email", email)
        .eq("password", password)
    )
    if row is None:
        return None
    return ClinicProfile(**row)


def create_session_token(clinic: ClinicProfile, now: float | None = None) -> str:
    """Signed session token carrying the clinic id."""
    issued = int(now if now is not None else time.time())
    payload: dict[str, Any] = {
        "sub": str(clinic.id),
        "name": clinic.name,
        "aud": _AUDIENCE,
        "iat": issued,
        "exp": issued + settings.session_ttl_seconds,
    }
    return jwt.encode(payload, settings.session_secret, algorithm=_ALGORITHM)


async def get_current_clinic(request: Request) -> ClinicProfile:
    """FastAPI dependency: verify the session token and load the clinic.

    Raises 401 on missing/invalid/expired token or unknown clinic.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing authorization token")

    token = auth_header[7:]

    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[_ALGORITHM],
            audience=_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Session expired")
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid session token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid token")

    clinic_id = payload.get("sub")
    if not clinic_id:
        raise HTTPException(status_code=401, detail="Invalid token: no subject")

    try:
        sb = await get_supabase_client()
        row = await get_first_or_none(
            sb.table("client_login").select("*").eq("id", clinic_id)
        )
    except Exception:
        logger.exception("Auth: database error during clinic lookup")
        raise HTTPException(status_code=500, detail="Internal error")

    if row is None:
        raise HTTPException(status_code=401, detail="Clinic not found")

    return ClinicProfile(**row)
