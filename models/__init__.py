"""ical-merge domain models package.

This package contains the event wrapper, the configuration schema, the step
pipeline, configuration validation and compilation, the hot-reloadable
configuration store and its file watcher. The merge engine and source
resolver live in ``models.merge`` and ``models.resolver``; they depend on
the ``client`` package and are imported from there directly.
"""

from models.config import CalendarConfig, Configuration, ServerConfig
from models.event import Event
from models.exceptions import (
    CalendarNotFoundError,
    ConfigError,
    CycleError,
    UnknownCalendarReferenceError,
)
from models.steps import StepOutcome, apply_steps, process_events
from models.store import ConfigStore, ReloadResult, StoreStatus
from models.validation import ConfigSnapshot, compile_configuration, validate_references
from models.watcher import ConfigWatcher

__all__ = [
    "CalendarConfig",
    "CalendarNotFoundError",
    "ConfigError",
    "ConfigSnapshot",
    "ConfigStore",
    "ConfigWatcher",
    "Configuration",
    "CycleError",
    "Event",
    "ReloadResult",
    "ServerConfig",
    "StepOutcome",
    "StoreStatus",
    "UnknownCalendarReferenceError",
    "apply_steps",
    "compile_configuration",
    "process_events",
    "validate_references",
]
