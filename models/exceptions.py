"""Domain exceptions for configuration loading and calendar resolution.

Exception Hierarchy:
    ConfigError - any problem with a configuration document
    ├── UnknownCalendarReferenceError - calendar source points at a missing id
    └── CycleError - calendar references form a cycle
    CalendarNotFoundError - a request asked for an id that isn't configured

Configuration errors are fatal to one load or reload attempt only. The
resolution errors of individual sources are never raised; they are carried
as data in MergeResult.errors.
"""


class ConfigError(Exception):
    """Raised when a configuration document cannot be loaded or validated.

    Args:
        message: Human-readable error description.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnknownCalendarReferenceError(ConfigError):
    """Raised when a calendar source references a calendar id that doesn't exist.

    Args:
        calendar_id: The calendar owning the offending source.
        source_index: Position of the source within that calendar.
        reference: The missing calendar id.
    """

    def __init__(self, calendar_id: str, source_index: int, reference: str):
        self.calendar_id = calendar_id
        self.source_index = source_index
        self.reference = reference
        super().__init__(
            f"Calendar '{calendar_id}' source {source_index} references "
            f"unknown calendar '{reference}'"
        )


class CycleError(ConfigError):
    """Raised when calendar references form a cycle.

    Args:
        path: Calendar ids along the cycle. The first and last entries are the
            same id, so a self-reference is reported as ``[id, id]``.
    """

    def __init__(self, path: list[str]):
        self.path = list(path)
        super().__init__(
            "Circular calendar reference detected: " + " -> ".join(self.path)
        )


class CalendarNotFoundError(Exception):
    """Raised when a requested calendar id is not configured.

    Args:
        calendar_id: The id that was requested.
        available_calendars: Ids that are configured.
    """

    def __init__(self, calendar_id: str, available_calendars: list[str] | None = None):
        self.calendar_id = calendar_id
        self.available_calendars = sorted(available_calendars or [])
        super().__init__(f"Calendar '{calendar_id}' not found")
