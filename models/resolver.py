"""Resolution of a single calendar source into events.

A URL source is fetched, parsed and run through its steps. A calendar source
is merged recursively through the engine and its steps are applied to the
merged result. Failures of either kind become SourceError entries; nothing
raised by a source ever reaches the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from client.codec import parse_events
from client.exceptions import SourceFetchError
from models.event import Event
from models.exceptions import CalendarNotFoundError
from models.steps import process_events
from models.validation import CompiledSource

if TYPE_CHECKING:
    from models.merge import MergeEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceError:
    """A soft failure of one source.

    Attributes:
        source: The source identifier (URL or ``calendar:<id>``).
        message: What went wrong.
    """

    source: str
    message: str

    def __str__(self) -> str:
        return f"{self.source}: {self.message}"


@dataclass
class SourceResult:
    """Events produced by one source plus any errors met on the way."""

    events: list[Event] = field(default_factory=list)
    errors: list[SourceError] = field(default_factory=list)


async def resolve_source(
    source: CompiledSource, engine: "MergeEngine", visited: frozenset[str]
) -> SourceResult:
    """Resolve one source to its processed events.

    Args:
        source: The compiled source.
        engine: Engine of the current request; supplies the snapshot, the
            fetcher and the recursion entry point.
        visited: Calendar ids on the current resolution path, including the
            calendar owning this source.

    Returns:
        The source's events after its steps, and its errors. Errors from
        nested calendars are carried upward.
    """
    if source.calendar is not None:
        return await _resolve_calendar(source, engine, visited)
    return await _resolve_url(source, engine)


async def _resolve_url(source: CompiledSource, engine: "MergeEngine") -> SourceResult:
    try:
        body = await engine.fetcher.fetch(source.url, timeout=engine.snapshot.fetch_timeout)
        events = parse_events(body)
    except SourceFetchError as e:
        logger.debug(f"Source {source.identifier} failed: {e}")
        return SourceResult(errors=[SourceError(source.identifier, str(e))])

    return SourceResult(events=process_events(events, source.steps))


async def _resolve_calendar(
    source: CompiledSource, engine: "MergeEngine", visited: frozenset[str]
) -> SourceResult:
    reference = source.calendar
    if reference in visited:
        path = ", ".join(sorted(visited))
        return SourceResult(
            errors=[
                SourceError(
                    source.identifier,
                    f"Circular reference to calendar '{reference}' (visited: {path})",
                )
            ]
        )

    try:
        merged = await engine.merge_calendar(reference, visited)
    except CalendarNotFoundError as e:
        return SourceResult(errors=[SourceError(source.identifier, str(e))])

    return SourceResult(
        events=process_events(merged.events, source.steps),
        errors=list(merged.errors),
    )
