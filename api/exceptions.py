"""Exception handlers for the ical-merge FastAPI application.

This module converts Python exceptions into consistent JSON error responses.
Soft source failures never get here; they are part of the merge result.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from models.exceptions import CalendarNotFoundError

logger = logging.getLogger(__name__)


async def calendar_not_found_handler(request: Request, exc: CalendarNotFoundError):
    """Handle CalendarNotFoundError exceptions.

    Returns a 404 with the requested id and the ids that are configured.

    Args:
        request: The incoming request that triggered the error.
        exc: The CalendarNotFoundError exception.

    Returns:
        JSONResponse with 404 status and helpful details.
    """
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "Calendar Not Found",
            "detail": f"The calendar '{exc.calendar_id}' does not exist",
            "requested_calendar": exc.calendar_id,
            "available_calendars": exc.available_calendars,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Handle any unhandled exceptions.

    Logs the full exception and returns a generic body, so stack traces are
    never exposed to clients.

    Args:
        request: The incoming request that triggered the error.
        exc: The exception that was raised.

    Returns:
        JSONResponse with generic error message.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "detail": "An unexpected error occurred",
            "type": type(exc).__name__,
        },
    )
