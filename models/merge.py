"""Merge engine: concurrent resolution, calendar steps and deduplication."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from models.event import Event
from models.exceptions import CalendarNotFoundError
from models.resolver import SourceError, resolve_source
from models.steps import process_events
from models.validation import ConfigSnapshot

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    """Anything that can download a feed body."""

    async def fetch(self, url: str, timeout: float | None = None) -> bytes: ...


@dataclass
class MergeResult:
    """Outcome of merging one calendar.

    Attributes:
        events: Processed, deduplicated events in source order.
        errors: Soft errors of failed sources, in source order.
    """

    events: list[Event] = field(default_factory=list)
    errors: list[SourceError] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.errors)


def deduplicate_events(events: Iterable[Event]) -> list[Event]:
    """Drop events whose uid was already seen; first occurrence wins.

    Events without a uid are always kept in their relative position.
    """
    seen: set[str] = set()
    unique = []
    for event in events:
        uid = event.uid
        if uid is not None:
            if uid in seen:
                continue
            seen.add(uid)
        unique.append(event)
    return unique


class MergeEngine:
    """Resolves virtual calendars against one configuration snapshot.

    An engine is built per request. It reads a single snapshot for the whole
    resolution, including nested calendar references, so a reload in the
    middle of a request never mixes two configurations.

    Args:
        snapshot: The compiled configuration to resolve against.
        fetcher: Feed downloader shared across requests.
    """

    def __init__(self, snapshot: ConfigSnapshot, fetcher: Fetcher):
        self.snapshot = snapshot
        self.fetcher = fetcher

    async def merge_calendar(
        self, calendar_id: str, visited: frozenset[str] = frozenset()
    ) -> MergeResult:
        """Resolve all sources of a calendar and merge their events.

        Args:
            calendar_id: Id of the calendar to merge.
            visited: Calendar ids already on the resolution path. Empty for
                a top-level request.

        Returns:
            The merged events and the soft errors of failed sources.

        Raises:
            CalendarNotFoundError: If the id is not configured.
        """
        calendar = self.snapshot.get_calendar(calendar_id)
        if calendar is None:
            raise CalendarNotFoundError(calendar_id, self.snapshot.calendar_ids)

        path = visited | {calendar_id}
        results = await asyncio.gather(
            *(resolve_source(source, self, path) for source in calendar.sources)
        )

        events: list[Event] = []
        errors: list[SourceError] = []
        for result in results:
            events.extend(result.events)
            errors.extend(result.errors)

        events = deduplicate_events(process_events(events, calendar.steps))

        if not visited:
            for error in errors:
                logger.warning(
                    f"Calendar '{calendar_id}': source {error.source} failed: {error.message}"
                )
            logger.debug(
                f"Merged calendar '{calendar_id}': {len(events)} event(s), "
                f"{len(errors)} error(s)"
            )

        return MergeResult(events=events, errors=errors)
