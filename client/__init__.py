"""Remote calendar feed access.

This package downloads iCalendar feeds over HTTP and converts between feed
bytes and Event objects.

Example:
    Fetching and decoding one feed::

        from client import CalendarFetcher, parse_events

        async with CalendarFetcher(timeout=30.0) as fetcher:
            body = await fetcher.fetch("webcal://example.com/team.ics")
            events = parse_events(body)

Exports:
    CalendarFetcher: Asynchronous feed downloader.
    normalize_url: webcal/webcals to http/https rewriting.
    parse_events: Feed bytes to events.
    serialize_events: Events to one VCALENDAR document.
    Exception classes: SourceFetchError and its subclasses.
"""

from client.codec import CONTENT_TYPE, parse_events, serialize_events
from client.exceptions import (
    FetchConnectionError,
    FetchError,
    FetchStatusError,
    FetchTimeoutError,
    ParseError,
    SourceFetchError,
)
from client.fetcher import CalendarFetcher, normalize_url

__all__ = [
    "CONTENT_TYPE",
    "CalendarFetcher",
    "FetchConnectionError",
    "FetchError",
    "FetchStatusError",
    "FetchTimeoutError",
    "ParseError",
    "SourceFetchError",
    "normalize_url",
    "parse_events",
    "serialize_events",
]
