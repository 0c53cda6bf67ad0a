"""
Clinic Models — Rows from the relational backend and the calendar/CRM API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

TicketStatus = Literal["Opened", "In Progress", "Closed"]

# =============================================================================
# AUTH
# =============================================================================


class LoginRequest(BaseModel):
    """Credentials posted by the login form."""

    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1)


class ClinicProfile(BaseModel):
    """Clinic user from client_login (password never exposed)."""

    id: UUID
    name: str
    email: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LoginResponse(BaseModel):
    """Session token plus the profile the front-end keeps in memory."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    clinic: ClinicProfile


# =============================================================================
# CONFIG ROWS
# =============================================================================


class RetellConfig(BaseModel):
    """Row from retell_config: calling API key and agents per direction."""

    client_id: UUID
    retell_api: str
    inbound_agent_id: str | None = None
    outbound_agent_id: str | None = None

    def agent_for(self, direction: str) -> str | None:
        if direction == "inbound":
            return self.inbound_agent_id
        return self.outbound_agent_id


class ClinicConfig(BaseModel):
    """Row from clinic_config: calendar/CRM credentials."""

    client_id: UUID
    ghl_api: str
    location_id: str
    calendar_ids: list[str] = Field(default_factory=list)


# =============================================================================
# MESSAGES
# =============================================================================


class MessageTaken(BaseModel):
    """Message left with the AI receptionist."""

    id: UUID
    client_id: UUID
    message_content: str
    caller_name: str | None = None
    caller_phone: str | None = None
    date_time: datetime
    created_at: datetime | None = None


# =============================================================================
# SUPPORT TICKETS
# =============================================================================


class SupportTicket(BaseModel):
    """Row from support_ticket."""

    id: UUID
    client_id: UUID
    title: str
    description: str
    status: TicketStatus = "Opened"
    created_at: datetime
    updated_at: datetime | None = None


class SupportTicketCreate(BaseModel):
    """New ticket form."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)


# =============================================================================
# APPOINTMENTS (calendar/CRM)
# =============================================================================


class Appointment(BaseModel):
    """Appointment as returned by the calendar/CRM API."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    calendar_id: str | None = Field(default=None, alias="calendarId")
    start_time: datetime = Field(alias="startTime")
    end_time: datetime | None = Field(default=None, alias="endTime")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    status: str | None = Field(default=None, alias="appoinmentStatus")
    contact: dict[str, Any] = Field(default_factory=dict)

    @field_validator("contact", mode="before")
    @classmethod
    def _contact_or_empty(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def patient_name(self) -> str:
        email = self.contact.get("email") or "Unknown"
        name = email.split("@")[0]
        return name[:1].upper() + name[1:]


class AppointmentCalendar(BaseModel):
    """Configured calendar id resolved to its service name."""

    id: str
    name: str
    description: str


# =============================================================================
# PAGINATION
# =============================================================================


class PaginatedResponse(BaseModel):
    """Wrapper for paginated list responses."""

    items: list[Any]
    total: int
    limit: int
    offset: int
