"""Core fixtures."""

from tests.fixtures.core.configs import (
    calendar_source,
    create_config_document,
    create_snapshot,
    url_source,
    write_config,
)
from tests.fixtures.core.events import create_event, create_ics, create_vevent
from tests.fixtures.core.fetchers import FakeFetcher

__all__ = [
    "FakeFetcher",
    "calendar_source",
    "create_config_document",
    "create_event",
    "create_ics",
    "create_snapshot",
    "create_vevent",
    "url_source",
    "write_config",
]
