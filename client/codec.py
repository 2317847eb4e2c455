"""iCalendar decoding and encoding.

Parsing yields fresh Event wrappers on every call, so events of concurrent
resolutions never share component objects.
"""

import logging
from typing import Iterable, Optional

from icalendar import Calendar

from client.exceptions import ParseError
from models.event import Event

logger = logging.getLogger(__name__)

PRODID = "-//ical-merge//ical-merge//EN"
CONTENT_TYPE = "text/calendar; charset=utf-8"


def parse_events(raw: bytes) -> list[Event]:
    """Decode a feed body into its events.

    Concatenated VCALENDAR documents are accepted; their events are returned
    in document order. Components other than VEVENT are ignored.

    Args:
        raw: Feed body as downloaded.

    Returns:
        The events of the feed.

    Raises:
        ParseError: If the body is not an iCalendar document.
    """
    try:
        calendars = Calendar.from_ical(raw, multiple=True)
    except Exception as e:
        raise ParseError(f"Failed to parse iCal: {e}") from e

    calendars = [cal for cal in calendars if cal.name == "VCALENDAR"]
    if not calendars:
        raise ParseError("Failed to parse iCal: no VCALENDAR component found")

    events = [
        Event(component)
        for cal in calendars
        for component in cal.subcomponents
        if component.name == "VEVENT"
    ]
    logger.debug(f"Parsed {len(events)} event(s)")
    return events


def serialize_events(events: Iterable[Event], name: Optional[str] = None) -> bytes:
    """Encode events as one VCALENDAR document.

    Args:
        events: Events in output order.
        name: Optional display name, emitted as X-WR-CALNAME.

    Returns:
        The serialized document.
    """
    calendar = Calendar()
    calendar.add("prodid", PRODID)
    calendar.add("version", "2.0")
    if name:
        calendar.add("x-wr-calname", name)
    for event in events:
        calendar.add_component(event.component)
    return calendar.to_ical()
