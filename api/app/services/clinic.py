"""
Clinic Config Lookups — Per-clinic integration settings from Supabase.
"""

from __future__ import annotations

import logging
from uuid import UUID

from app.models.clinic import ClinicConfig, RetellConfig
from app.services.supabase import get_first_or_none, get_supabase_client

logger = logging.getLogger(__name__)


async def get_retell_config(client_id: UUID) -> RetellConfig | None:
    """Calling API key and agent ids for a clinic, or None if not set up."""
    sb = await get_supabase_client()
    row = await get_first_or_none(
        sb.table("retell_config").select("*").eq("client_id", str(client_id))
    )
    if row is None:
        logger.warning("No retell_config for clinic %s", client_id)
        return None
    return RetellConfig(**row)


async def get_clinic_config(client_id: UUID) -> ClinicConfig | None:
    """Calendar/CRM credentials for a clinic, or None if not set up."""
    sb = await get_supabase_client()
    row = await get_first_or_none(
        sb.table("clinic_config").select("*").eq("client_id", str(client_id))
    )
    if row is None:
        logger.warning("No clinic_config for clinic %s", client_id)
        return None
    return ClinicConfig(**row)
