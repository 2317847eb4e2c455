"""Main entry point for the ical-merge FastAPI application.

This module creates and configures the FastAPI app that serves merged virtual
calendars. Runtime settings come from the environment (see
models/settings.py); the configuration document is loaded at startup and
reloaded whenever the file changes.

To run the development server:
    ICAL_MERGE_CONFIG=config.json uvicorn main:app --reload

Or through the CLI:
    ical-merge serve --config config.json
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.dependencies import ConfigStoreDep, initialize_services, shutdown_services
from api.exceptions import calendar_not_found_handler, generic_exception_handler
from api.models import HealthResponse
from api.routes import calendars as calendars_routes
from api.routes import ical as ical_routes
from models.exceptions import CalendarNotFoundError
from models.settings import RuntimeSettings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events.

    Loads the configuration before the first request is served and fails
    startup if it is invalid. Stops the watcher and closes the HTTP client
    on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to FastAPI to handle requests.
    """
    settings = RuntimeSettings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info(f"Starting ical-merge with configuration {settings.config}")
    store = initialize_services(
        settings.config,
        poll_interval=settings.poll_interval,
        format=settings.config_format,
    )
    logger.info(f"Serving calendars: {', '.join(store.snapshot().calendar_ids)}")

    yield

    logger.info("Shutting down ical-merge")
    await shutdown_services()


app = FastAPI(
    title="ical-merge",
    description="Merges, filters and rewrites iCalendar feeds into virtual calendars",
    version="0.1.0",
    lifespan=lifespan,
)

# Order matters: specific exceptions before general ones
app.add_exception_handler(CalendarNotFoundError, calendar_not_found_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(ical_routes.router)
app.include_router(calendars_routes.router)


@app.get("/health", response_model=HealthResponse)
async def health_check(store: ConfigStoreDep):
    """Health check endpoint for monitoring.

    Returns:
        Calendar count and the configuration reload counters.
    """
    status = store.status()
    return HealthResponse(
        calendar_count=len(status.calendar_ids),
        loaded_at=status.loaded_at,
        config_path=status.source_path,
        reload_count=status.reload_count,
        failed_reload_count=status.failed_reload_count,
        last_error=status.last_error,
    )
