"""Configuration validation and compilation.

Turns a schema-valid ``Configuration`` into an immutable ``ConfigSnapshot``:
calendar references are checked for dangling ids and cycles, and every step
is compiled. Either the whole document compiles or nothing does.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from models.config import CalendarSource, ConfigFormat, Configuration, UrlSource
from models.exceptions import CycleError, UnknownCalendarReferenceError
from models.steps import CompiledStep, compile_steps

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigSource:
    """Where a configuration document was read from."""

    path: Path
    format: ConfigFormat


@dataclass(frozen=True)
class CompiledSource:
    """One source with its steps compiled."""

    definition: Union[UrlSource, CalendarSource]
    steps: tuple[CompiledStep, ...]

    @property
    def identifier(self) -> str:
        return self.definition.identifier

    @property
    def url(self) -> Optional[str]:
        return self.definition.url if isinstance(self.definition, UrlSource) else None

    @property
    def calendar(self) -> Optional[str]:
        if isinstance(self.definition, CalendarSource):
            return self.definition.calendar
        return None


@dataclass(frozen=True)
class CompiledCalendar:
    """One virtual calendar with compiled sources and calendar-level steps."""

    calendar_id: str
    sources: tuple[CompiledSource, ...]
    steps: tuple[CompiledStep, ...]


@dataclass(frozen=True)
class ConfigSnapshot:
    """A validated, compiled configuration. Never mutated after creation.

    Attributes:
        configuration: The declarative document it was compiled from.
        calendars: Compiled calendars keyed by id.
        loaded_at: When compilation finished.
        source: File the document came from, if any.
    """

    configuration: Configuration
    calendars: dict[str, CompiledCalendar]
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: Optional[ConfigSource] = None

    @property
    def calendar_ids(self) -> list[str]:
        return sorted(self.calendars)

    @property
    def fetch_timeout(self) -> float:
        return self.configuration.server.fetch_timeout

    def get_calendar(self, calendar_id: str) -> Optional[CompiledCalendar]:
        return self.calendars.get(calendar_id)


def _reference_graph(configuration: Configuration) -> dict[str, list[str]]:
    graph: dict[str, list[str]] = {}
    for calendar_id, calendar in configuration.calendars.items():
        edges = []
        for index, source in enumerate(calendar.sources):
            if not isinstance(source, CalendarSource):
                continue
            if source.calendar not in configuration.calendars:
                raise UnknownCalendarReferenceError(calendar_id, index, source.calendar)
            edges.append(source.calendar)
        graph[calendar_id] = edges
    return graph


def validate_references(configuration: Configuration) -> None:
    """Check that calendar references resolve and form no cycle.

    Args:
        configuration: Schema-valid configuration.

    Raises:
        UnknownCalendarReferenceError: If a source references a missing id.
            Checked for every source before any cycle search.
        CycleError: If following references from any calendar leads back to a
            calendar already on the current path.
    """
    graph = _reference_graph(configuration)
    explored: set[str] = set()

    # Iterative DFS; reference chains may be longer than the recursion limit.
    for root in sorted(graph):
        if root in explored:
            continue
        path = [root]
        on_path = {root}
        pending = [iter(graph[root])]
        while pending:
            target = next(pending[-1], None)
            if target is None:
                pending.pop()
                done = path.pop()
                on_path.discard(done)
                explored.add(done)
                continue
            if target in on_path:
                raise CycleError(path[path.index(target):] + [target])
            if target not in explored:
                path.append(target)
                on_path.add(target)
                pending.append(iter(graph[target]))



def compile_configuration(
    configuration: Configuration, source: Optional[ConfigSource] = None
) -> ConfigSnapshot:
    """Validate references and compile every step of a configuration.

    Args:
        configuration: Schema-valid configuration.
        source: File the document was read from, recorded on the snapshot.

    Returns:
        The compiled snapshot.

    Raises:
        ConfigError: If references are invalid or any step fails to compile.
    """
    validate_references(configuration)

    calendars = {}
    for calendar_id, calendar in configuration.calendars.items():
        sources = tuple(
            CompiledSource(
                definition=source_config,
                steps=compile_steps(
                    source_config.steps,
                    f"Calendar '{calendar_id}' source {index}",
                ),
            )
            for index, source_config in enumerate(calendar.sources)
        )
        calendars[calendar_id] = CompiledCalendar(
            calendar_id=calendar_id,
            sources=sources,
            steps=compile_steps(calendar.steps, f"Calendar '{calendar_id}'"),
        )

    logger.debug(f"Compiled {len(calendars)} calendar(s)")
    return ConfigSnapshot(configuration=configuration, calendars=calendars, source=source)
