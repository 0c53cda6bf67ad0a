"""
Support Ticket Notifications — Webhook POST when a clinic opens a ticket.

Best effort: a failed notification is logged and never fails ticket creation.
"""

from __future__ import annotations

import logging

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

_WEBHOOK_TIMEOUT = 10.0


async def notify_ticket_created(clinic: str, title: str, description: str) -> bool:
    """POST the new ticket to the configured webhook. Returns True if delivered."""
    webhook_url = settings.ticket_webhook_url
    if not webhook_url:
        return False

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                webhook_url,
                json={"clinic": clinic, "title": title, "description": description},
                timeout=_WEBHOOK_TIMEOUT,
            )
            resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("Support ticket webhook failed: %s", e)
        return False

    logger.info("Support ticket webhook delivered for %s", clinic)
    return True
