"""
Paged Call Fetcher — Complete call lists from the calling API.

Follows cursor pagination (pagination_key = last call_id of the previous
page) until a short page comes back. Any page failure discards the whole
fetch: None means "unavailable right now", never "zero calls".
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from app.config import settings
from app.models.calls import CallDirection, CallRecord, CallsPage, FetchPeriod
from app.services.retell.executor import RateLimitedRequestExecutor

logger = logging.getLogger(__name__)

LIST_CALLS_PATH = "/v2/list-calls"


def build_list_calls_body(
    agent_id: str,
    direction: CallDirection,
    limit: int,
    start_ts: int | None = None,
    end_ts: int | None = None,
    pagination_key: str | None = None,
) -> dict[str, Any]:
    """Request body for POST /v2/list-calls."""
    filter_criteria: dict[str, Any] = {
        "agent_id": [agent_id],
        "call_type": ["phone_call"],
        "direction": [direction],
    }
    if start_ts is not None or end_ts is not None:
        threshold: dict[str, int] = {}
        if start_ts is not None:
            threshold["lower_threshold"] = start_ts
        if end_ts is not None:
            threshold["upper_threshold"] = end_ts
        filter_criteria["start_timestamp"] = threshold

    body: dict[str, Any] = {
        "sort_order": "descending",
        "limit": limit,
        "filter_criteria": filter_criteria,
    }
    if pagination_key:
        body["pagination_key"] = pagination_key
    return body


def _parse_calls(response: httpx.Response) -> list[CallRecord] | None:
    """Decode a list-calls response body; None if it is not a list of calls."""
    try:
        payload = response.json()
    except ValueError:
        logger.error("Calling API returned a non-JSON body")
        return None
    if payload is None:
        return []
    if not isinstance(payload, list):
        logger.error("Calling API returned %s instead of a list", type(payload).__name__)
        return None
    try:
        return [CallRecord.model_validate(item) for item in payload]
    except ValidationError as e:
        logger.error("Calling API returned malformed call records: %s", e)
        return None


class PagedCallFetcher:
    """Reads call records through the rate-limited executor."""

    def __init__(
        self,
        executor: RateLimitedRequestExecutor,
        base_url: str | None = None,
        page_limit: int | None = None,
    ) -> None:
        self._executor = executor
        self._url = (base_url or settings.retell_base_url).rstrip("/") + LIST_CALLS_PATH
        self._page_limit = page_limit or settings.retell_page_limit

    @property
    def is_gated(self) -> bool:
        """True while backing off: new fetch chains must not start."""
        return self._executor.state.is_rate_limited

    async def _request_page(self, body: dict[str, Any]) -> list[CallRecord] | None:
        response = await self._executor.execute("POST", self._url, json=body)
        if response is None or not response.is_success:
            return None
        return _parse_calls(response)

    async def fetch_all_calls(
        self,
        agent_id: str | None,
        direction: CallDirection,
        start_ts: int,
        end_ts: int,
    ) -> list[CallRecord] | None:
        """Every call for one agent/direction/window, or None if unavailable."""
        if not agent_id:
            logger.debug("No %s agent configured; skipping fetch", direction)
            return None
        period = FetchPeriod(start_ts, end_ts)
        if self.is_gated:
            logger.info("Skipping %s call fetch while rate limited", direction)
            return None

        calls: list[CallRecord] = []
        seen: set[str] = set()
        pagination_key: str | None = None
        pages = 0

        while True:
            body = build_list_calls_body(
                agent_id,
                direction,
                self._page_limit,
                period.start_ts,
                period.end_ts,
                pagination_key,
            )
            page = await self._request_page(body)
            if page is None:
                logger.warning(
                    "Fetch of %s calls for agent %s aborted on page %d",
                    direction,
                    agent_id,
                    pages + 1,
                )
                return None
            pages += 1

            for call in page:
                if call.call_id in seen:
                    continue
                seen.add(call.call_id)
                calls.append(call)

            if len(page) < self._page_limit:
                break
            pagination_key = page[-1].call_id
            logger.debug(
                "Page %d full (%d calls); continuing after %s",
                pages,
                len(page),
                pagination_key,
            )

        logger.debug(
            "Fetched %d %s calls for agent %s in %d pages",
            len(calls),
            direction,
            agent_id,
            pages,
        )
        return calls

    async def fetch_recent_calls(
        self,
        agent_id: str | None,
        direction: CallDirection = "inbound",
        limit: int = 3,
    ) -> list[CallRecord] | None:
        """Most recent calls for the overview widget."""
        if not agent_id:
            logger.debug("No %s agent configured; no recent calls", direction)
            return None
        if self.is_gated:
            return None
        return await self._request_page(build_list_calls_body(agent_id, direction, limit))

    async def list_calls_page(
        self,
        agent_id: str | None,
        direction: CallDirection,
        page_size: int,
        pagination_key: str | None = None,
        start_ts: int | None = None,
        end_ts: int | None = None,
    ) -> CallsPage | None:
        """A single page of call history; has_next when the page came back full."""
        if not agent_id or self.is_gated:
            return None
        if start_ts is not None and end_ts is not None:
            FetchPeriod(start_ts, end_ts)

        page = await self._request_page(
            build_list_calls_body(
                agent_id, direction, page_size, start_ts, end_ts, pagination_key
            )
        )
        if page is None:
            return None

        has_next = len(page) == page_size
        return CallsPage(
            calls=page,
            page_size=page_size,
            has_next=has_next,
            next_pagination_key=page[-1].call_id if has_next and page else None,
        )
