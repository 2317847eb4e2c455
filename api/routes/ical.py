"""Merged calendar feed endpoint.

Each request reads one configuration snapshot and resolves the calendar
against it. Sources that fail are left out of the feed and logged; the
request still succeeds with whatever could be fetched.
"""

import logging

from fastapi import APIRouter, Response

from api.dependencies import ConfigStoreDep, FetcherDep
from client.codec import CONTENT_TYPE, serialize_events
from models.merge import MergeEngine

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/ical",
    tags=["ical"],
)


@router.get(
    "/{calendar_id}",
    response_class=Response,
    responses={
        200: {"content": {"text/calendar": {}}, "description": "Merged iCalendar feed"},
        404: {"description": "Calendar not configured"},
    },
)
async def get_calendar(calendar_id: str, store: ConfigStoreDep, fetcher: FetcherDep):
    """Serve the merged feed of one virtual calendar.

    Args:
        calendar_id: Id of the virtual calendar.
        store: The ConfigStore instance (injected by FastAPI).
        fetcher: The CalendarFetcher instance (injected by FastAPI).

    Returns:
        The serialized calendar with a ``text/calendar`` content type.

    Raises:
        CalendarNotFoundError: If the id is not configured (handled as 404).
    """
    engine = MergeEngine(store.snapshot(), fetcher)
    result = await engine.merge_calendar(calendar_id)

    if result.is_partial:
        logger.info(
            f"Serving partial calendar '{calendar_id}': "
            f"{len(result.errors)} source(s) failed"
        )

    return Response(
        content=serialize_events(result.events, name=calendar_id),
        media_type=CONTENT_TYPE,
    )
