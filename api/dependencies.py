"""Dependency injection providers for the FastAPI application.

This module defines dependencies that can be injected into route handlers,
providing access to the shared ConfigStore and CalendarFetcher. Both are
created once at startup by the lifespan handler in main.py.
"""

import logging
from pathlib import Path
from typing import Annotated

from fastapi import Depends

from client.fetcher import CalendarFetcher
from models.config import ConfigFormat
from models.store import ConfigStore
from models.watcher import ConfigWatcher

logger = logging.getLogger(__name__)


# Global state, set up by initialize_services() when the app starts
_config_store: ConfigStore | None = None
_fetcher: CalendarFetcher | None = None
_watcher: ConfigWatcher | None = None


def get_config_store() -> ConfigStore:
    """Get the shared ConfigStore instance.

    Returns:
        The shared ConfigStore instance.

    Raises:
        RuntimeError: If the store hasn't been initialized yet.

    Example:
        @router.get("/some-endpoint")
        async def my_handler(store: ConfigStoreDep):
            snapshot = store.snapshot()
            return {"calendars": snapshot.calendar_ids}
    """
    if _config_store is None:
        raise RuntimeError(
            "ConfigStore not initialized. Call initialize_services() first."
        )
    return _config_store


def get_fetcher() -> CalendarFetcher:
    """Get the shared CalendarFetcher instance.

    Raises:
        RuntimeError: If the fetcher hasn't been initialized yet.
    """
    if _fetcher is None:
        raise RuntimeError(
            "CalendarFetcher not initialized. Call initialize_services() first."
        )
    return _fetcher


def initialize_services(
    config_path: str | Path,
    poll_interval: float = 2.0,
    format: ConfigFormat | None = None,
    watch: bool = True,
) -> ConfigStore:
    """Load the configuration and create the shared services.

    Args:
        config_path: Configuration file to load and watch.
        poll_interval: Seconds between config file polls.
        format: Document syntax; detected from the extension when omitted.
        watch: Whether to start the file watcher.

    Returns:
        The newly created ConfigStore.

    Raises:
        ConfigError: If the initial configuration is invalid. The service
            must not start without one.
    """
    global _config_store, _fetcher, _watcher

    _config_store = ConfigStore.from_path(config_path, format=format)
    _fetcher = CalendarFetcher(timeout=_config_store.snapshot().fetch_timeout)

    if watch:
        _watcher = ConfigWatcher(_config_store, poll_interval=poll_interval)
        _watcher.start()

    return _config_store


async def shutdown_services() -> None:
    """Stop the watcher and close the HTTP client."""
    global _config_store, _fetcher, _watcher

    if _watcher is not None:
        _watcher.stop()
    if _fetcher is not None:
        await _fetcher.aclose()

    _config_store = None
    _fetcher = None
    _watcher = None


# Type aliases for dependency injection
ConfigStoreDep = Annotated[ConfigStore, Depends(get_config_store)]
FetcherDep = Annotated[CalendarFetcher, Depends(get_fetcher)]
