"""
Support Tickets Router.

Endpoints:
  GET  /support-tickets   — Tickets, newest first (optional status filter)
  POST /support-tickets   — Open a ticket and notify support
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from app.models.clinic import ClinicProfile, SupportTicket, SupportTicketCreate, TicketStatus
from app.services.auth import get_current_clinic
from app.services.supabase import get_supabase_client
from app.services.tickets import notify_ticket_created

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_tickets(
    clinic: ClinicProfile = Depends(get_current_clinic),
    status: TicketStatus | None = Query(default=None),
) -> list[SupportTicket]:
    """Tickets for the clinic."""
    sb = await get_supabase_client()

    try:
        query = sb.table("support_ticket").select("*").eq("client_id", str(clinic.id))
        if status:
            query = query.eq("status", status)
        result = await query.order("created_at", desc=True).execute()
    except Exception:
        logger.exception("Tickets: failed to list tickets")
        raise HTTPException(status_code=500, detail="Failed to fetch support tickets")

    return [SupportTicket(**row) for row in result.data or []]


@router.post("", status_code=201)
async def create_ticket(
    body: SupportTicketCreate,
    clinic: ClinicProfile = Depends(get_current_clinic),
) -> SupportTicket:
    """Open a ticket. The webhook notification is best effort."""
    sb = await get_supabase_client()

    try:
        result = await (
            sb.table("support_ticket")
            .insert(
                {
                    "client_id": str(clinic.id),
                    "title": body.title,
                    "description": body.description,
                    "status": "Opened",
                }
            )
            .execute()
        )
    except Exception:
        logger.exception("Tickets: failed to create ticket")
        raise HTTPException(status_code=500, detail="Failed to create support ticket")

    if not result.data:
        raise HTTPException(status_code=500, detail="Failed to create support ticket")

    await notify_ticket_created(clinic.name or clinic.email, body.title, body.description)
    return SupportTicket(**result.data[0])
