"""
Call Models — Records returned by the calling API and the aggregates built from them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

CallDirection = Literal["inbound", "outbound"]

# =============================================================================
# CALL RECORDS
# =============================================================================


class CallRecord(BaseModel):
    """A single call event from the calling API (read-only).

    Only call_id is required. Display fields are lenient so that one odd
    record can't fail a whole page.
    """

    model_config = ConfigDict(extra="allow")

    call_id: str
    agent_id: str | None = None
    direction: CallDirection | None = None
    call_status: str | None = None
    start_timestamp: int | None = None  # epoch ms
    end_timestamp: int | None = None
    duration_ms: int | None = None

    # Display-only fields
    from_number: str | None = None
    to_number: str | None = None
    recording_url: str | None = None
    collected_dynamic_variables: dict[str, Any] = Field(default_factory=dict)

    @field_validator("collected_dynamic_variables", mode="before")
    @classmethod
    def _variables_or_empty(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def caller_name(self) -> str:
        first = self.collected_dynamic_variables.get("firstName")
        last = self.collected_dynamic_variables.get("lastName")
        if first and last:
            return f"{first} {last}"
        return "Unknown Caller"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def phone_number(self) -> str:
        if self.direction == "inbound":
            return self.from_number or "Unknown"
        return self.to_number or "Unknown"


@dataclass(frozen=True)
class FetchPeriod:
    """Closed window [start_ts, end_ts] in epoch milliseconds."""

    start_ts: int
    end_ts: int

    def __post_init__(self) -> None:
        if self.start_ts > self.end_ts:
            raise ValueError(
                f"FetchPeriod start {self.start_ts} is after end {self.end_ts}"
            )


class CallsPage(BaseModel):
    """One page of the call history screen."""

    calls: list[CallRecord]
    page_size: int
    has_next: bool
    next_pagination_key: str | None = None


# =============================================================================
# AGGREGATES
# =============================================================================


class AggregatedStats(BaseModel):
    """Call counts for two equal-length adjacent periods."""

    current: int
    previous: int


class WeeklyPoint(BaseModel):
    """Single calendar day in the 7-day chart."""

    date: str  # "Oct 5"
    calls: int
