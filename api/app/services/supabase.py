"""
Supabase Service — Relational backend for logins, configs, messages and tickets.
"""

import logging
from typing import Any

from supabase import AsyncClient, acreate_client

from app.config import settings

logger = logging.getLogger(__name__)

_client: AsyncClient | None = None


async def get_supabase_client() -> AsyncClient:
    """Get or create the async Supabase client."""
    global _client
    if _client is None:
        try:
            _client = await acreate_client(
                settings.supabase_url, settings.supabase_service_key
            )
        except Exception as e:
            logger.error("Failed to create Supabase client: %s", e)
            raise
    return _client


async def close_supabase() -> None:
    """Drop the cached client (app shutdown)."""
    global _client
    _client = None


async def get_first_or_none(query: Any) -> dict[str, Any] | None:
    """Execute query and return the first row, or None when nothing matched."""
    result = await query.limit(1).execute()
    rows: list[dict[str, Any]] = result.data or []
    return rows[0] if rows else None


async def count_rows(query: Any) -> int:
    """Execute a select(..., count="exact") query and return the row count."""
    result = await query.execute()
    if result.count is not None:
        return int(result.count)
    return len(result.data or [])
