"""
Tests for the calendar/CRM and support webhook integrations.

Covers: service-name title casing, calendar/service matching, a failing
calendar skipped while others still show, newest-first ordering, webhook
delivery (success, failure, not configured).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import httpx
import pytest

from app.models.clinic import ClinicConfig
from app.services import ghl as ghl_mod
from app.services import tickets as tickets_mod

_CONFIG = ClinicConfig(
    client_id=uuid4(),
    ghl_api="ghl-key",
    location_id="loc-1",
    calendar_ids=["cal-a", "cal-b"],
)
_START = datetime(2026, 1, 1, tzinfo=timezone.utc)
_END = datetime(2026, 3, 31, tzinfo=timezone.utc)


def _response(status: int, payload: Any) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.is_success = 200 <= status < 300
    resp.json.return_value = payload
    resp.text = str(payload)
    return resp


def _patched_client(mock_client: AsyncMock):
    patcher = patch("app.services.ghl.httpx.AsyncClient")
    MockClient = patcher.start()
    MockClient.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    MockClient.return_value.__aexit__ = AsyncMock(return_value=False)
    return patcher


# ===========================================================================
# TestTitleCase
# ===========================================================================


@pytest.mark.unit
class TestTitleCase:
    """Service names shown as calendar names."""

    def test_lowercase_words(self) -> None:
        assert ghl_mod._title_case("teeth whitening") == "Teeth Whitening"

    def test_rest_of_word_untouched(self) -> None:
        assert ghl_mod._title_case("new patient eXam") == "New Patient EXam"

    def test_empty(self) -> None:
        assert ghl_mod._title_case("") == ""


# ===========================================================================
# TestListCalendars
# ===========================================================================


@pytest.mark.unit
class TestListCalendars:
    """Configured calendar ids resolved against services."""

    @pytest.mark.asyncio
    async def test_only_configured_calendars_returned(self) -> None:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(
            return_value=_response(
                200,
                {
                    "services": [
                        {"id": "cal-a", "name": "cleaning", "description": "45 min"},
                        {"id": "cal-x", "name": "other clinic"},
                    ]
                },
            )
        )
        patcher = _patched_client(mock_client)
        try:
            calendars = await ghl_mod.list_calendars(_CONFIG)
        finally:
            patcher.stop()

        assert [(c.id, c.name, c.description) for c in calendars] == [
            ("cal-a", "Cleaning", "45 min"),
        ]
        assert mock_client.get.call_args[1]["headers"]["Authorization"] == "Bearer ghl-key"

    @pytest.mark.asyncio
    async def test_api_error_returns_empty(self) -> None:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=_response(401, {}))
        patcher = _patched_client(mock_client)
        try:
            calendars = await ghl_mod.list_calendars(_CONFIG)
        finally:
            patcher.stop()

        assert calendars == []

    @pytest.mark.asyncio
    async def test_timeout_returns_empty(self) -> None:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))
        patcher = _patched_client(mock_client)
        try:
            calendars = await ghl_mod.list_calendars(_CONFIG)
        finally:
            patcher.stop()

        assert calendars == []

    @pytest.mark.asyncio
    async def test_non_object_body_returns_empty(self) -> None:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=_response(200, ["not", "an", "object"]))
        patcher = _patched_client(mock_client)
        try:
            calendars = await ghl_mod.list_calendars(_CONFIG)
        finally:
            patcher.stop()

        assert calendars == []


# ===========================================================================
# TestListAppointments
# ===========================================================================


@pytest.mark.unit
class TestListAppointments:
    """Appointments across calendars."""

    @pytest.mark.asyncio
    async def test_failed_calendar_skipped_and_sorted_newest_first(self) -> None:
        responses = {
            "cal-a": _response(
                200,
                {
                    "appointments": [
                        {"id": "a1", "startTime": "2026-02-01T09:00:00Z"},
                        {"id": "a2", "startTime": "2026-03-01T09:00:00Z"},
                    ]
                },
            ),
            "cal-b": _response(500, {"message": "down"}),
        }

        async def fake_get(url: str, params: dict[str, str], **kwargs: Any) -> MagicMock:
            return responses[params["calendarId"]]

        mock_client = AsyncMock()
        mock_client.get = AsyncMock(side_effect=fake_get)
        patcher = _patched_client(mock_client)
        try:
            appointments = await ghl_mod.list_appointments(_CONFIG, _START, _END)
        finally:
            patcher.stop()

        assert [a.id for a in appointments] == ["a2", "a1"]
        assert mock_client.get.await_count == 2

    @pytest.mark.asyncio
    async def test_single_calendar_and_epoch_window(self) -> None:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=_response(200, {"appointments": []}))
        patcher = _patched_client(mock_client)
        try:
            await ghl_mod.list_appointments(_CONFIG, _START, _END, calendar_id="cal-b")
        finally:
            patcher.stop()

        params = mock_client.get.call_args[1]["params"]
        assert params["calendarId"] == "cal-b"
        assert params["locationId"] == "loc-1"
        assert params["startDate"] == str(int(_START.timestamp()) * 1000)
        assert params["endDate"] == str(int(_END.timestamp()) * 1000)

    @pytest.mark.asyncio
    async def test_transport_error_skips_calendar(self) -> None:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        patcher = _patched_client(mock_client)
        try:
            appointments = await ghl_mod.list_appointments(_CONFIG, _START, _END)
        finally:
            patcher.stop()

        assert appointments == []

    def test_patient_name_from_contact_email(self) -> None:
        appt = ghl_mod.Appointment(
            id="a1",
            startTime="2026-02-01T09:00:00Z",
            contact={"email": "jordan.lee@example.com"},
        )
        assert appt.patient_name == "Jordan.lee"


# ===========================================================================
# TestTicketWebhook
# ===========================================================================


@pytest.mark.unit
class TestTicketWebhook:
    """Support ticket notification."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock()

        with (
            patch.object(tickets_mod.settings, "ticket_webhook_url", "https://hooks.example/t"),
            patch("app.services.tickets.httpx.AsyncClient") as MockClient,
        ):
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(return_value=mock_response)
            MockClient.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            MockClient.return_value.__aexit__ = AsyncMock(return_value=False)

            delivered = await tickets_mod.notify_ticket_created(
                "Harbour Dental", "Phones down", "No calls since 9am"
            )

        assert delivered is True
        payload = mock_client.post.call_args[1]["json"]
        assert payload == {
            "clinic": "Harbour Dental",
            "title": "Phones down",
            "description": "No calls since 9am",
        }

    @pytest.mark.asyncio
    async def test_timeout_returns_false(self) -> None:
        with (
            patch.object(tickets_mod.settings, "ticket_webhook_url", "https://hooks.example/t"),
            patch("app.services.tickets.httpx.AsyncClient") as MockClient,
        ):
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(side_effect=httpx.TimeoutException("timeout"))
            MockClient.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            MockClient.return_value.__aexit__ = AsyncMock(return_value=False)

            delivered = await tickets_mod.notify_ticket_created("c", "t", "d")

        assert delivered is False

    @pytest.mark.asyncio
    async def test_not_configured_skips(self) -> None:
        with (
            patch.object(tickets_mod.settings, "ticket_webhook_url", None),
            patch("app.services.tickets.httpx.AsyncClient") as MockClient,
        ):
            delivered = await tickets_mod.notify_ticket_created("c", "t", "d")

        assert delivered is False
        MockClient.assert_not_called()
