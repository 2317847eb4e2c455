"""Configured calendar listing endpoint."""

from fastapi import APIRouter

from api.dependencies import ConfigStoreDep
from api.models import CalendarListResponse, CalendarSummary

router = APIRouter(
    prefix="/calendars",
    tags=["calendars"],
)


@router.get("", response_model=CalendarListResponse)
async def list_calendars(store: ConfigStoreDep):
    """List the virtual calendars of the live configuration.

    Args:
        store: The ConfigStore instance (injected by FastAPI).

    Returns:
        Calendar ids with their source identifiers, sorted by id.
    """
    snapshot = store.snapshot()
    calendars = [
        CalendarSummary(
            id=calendar_id,
            sources=[source.identifier for source in snapshot.calendars[calendar_id].sources],
            step_count=len(snapshot.calendars[calendar_id].steps),
        )
        for calendar_id in snapshot.calendar_ids
    ]
    return CalendarListResponse(calendars=calendars, count=len(calendars))
