"""Response models for the JSON endpoints."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Service health and configuration reload status.

    Attributes:
        status: Always "healthy" while the service answers.
        calendar_count: Number of configured calendars.
        loaded_at: When the live configuration was compiled.
        config_path: File the configuration is read from.
        reload_count: Successful reloads since startup.
        failed_reload_count: Rejected reloads since startup.
        last_error: Why the most recent reload was rejected, if it was.
    """

    status: Literal["healthy"] = "healthy"
    calendar_count: int
    loaded_at: datetime
    config_path: Optional[str] = None
    reload_count: int = 0
    failed_reload_count: int = 0
    last_error: Optional[str] = None


class CalendarSummary(BaseModel):
    """One configured virtual calendar.

    Attributes:
        id: Calendar id, as used in ``/ical/{id}``.
        sources: Source identifiers in configured order.
        step_count: Number of calendar-level steps.
    """

    id: str
    sources: list[str]
    step_count: int = Field(ge=0)


class CalendarListResponse(BaseModel):
    """All configured virtual calendars.

    Attributes:
        calendars: Calendars sorted by id.
        count: Total number of calendars.
    """

    calendars: list[CalendarSummary]
    count: int
