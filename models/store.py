"""Hot-reloadable configuration store.

The store holds exactly one ``ConfigSnapshot``. Readers take the current
reference and work with it for as long as they like; a reload builds a
complete new snapshot outside the lock and swaps the reference under it.
A document that fails to parse, validate or compile leaves the live
snapshot untouched.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from models.config import ConfigFormat, detect_format, parse_configuration
from models.exceptions import ConfigError
from models.validation import ConfigSnapshot, ConfigSource, compile_configuration

logger = logging.getLogger(__name__)


def build_snapshot(
    raw: bytes, format: ConfigFormat, source: Optional[ConfigSource] = None
) -> ConfigSnapshot:
    """Parse, validate and compile a configuration document.

    Raises:
        ConfigError: If any stage fails.
    """
    return compile_configuration(parse_configuration(raw, format), source=source)


def read_document(path: Path) -> bytes:
    """Read a configuration file, wrapping I/O failures in ConfigError."""
    try:
        return path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e


@dataclass(frozen=True)
class ReloadResult:
    """Outcome of one reload attempt.

    Attributes:
        success: Whether the candidate replaced the live snapshot.
        snapshot: The live snapshot after the attempt.
        error: Why the candidate was rejected, if it was.
    """

    success: bool
    snapshot: ConfigSnapshot
    error: Optional[str] = None


@dataclass(frozen=True)
class StoreStatus:
    """Point-in-time view of the store for health reporting."""

    calendar_ids: list[str]
    loaded_at: datetime
    source_path: Optional[str]
    reload_count: int
    failed_reload_count: int
    last_error: Optional[str]
    last_reload_at: Optional[datetime]


class ConfigStore:
    """Holds the live configuration snapshot.

    Args:
        snapshot: The initial, already validated snapshot.
        source: File that reloads read from, if any.
    """

    def __init__(self, snapshot: ConfigSnapshot, source: Optional[ConfigSource] = None):
        self._snapshot = snapshot
        self._source = source or snapshot.source
        self._lock = threading.Lock()

        self._reload_count = 0
        self._failed_reload_count = 0
        self._last_error: Optional[str] = None
        self._last_reload_at: Optional[datetime] = None

    @classmethod
    def from_path(cls, path: str | Path, format: Optional[ConfigFormat] = None) -> "ConfigStore":
        """Load the initial configuration from a file.

        Args:
            path: Configuration file.
            format: Document syntax; detected from the extension when omitted.

        Returns:
            A store serving the loaded configuration.

        Raises:
            ConfigError: If the file can't be read or the document is invalid.
        """
        path = Path(path)
        source = ConfigSource(path=path, format=format or detect_format(path))
        snapshot = build_snapshot(read_document(path), source.format, source)
        logger.info(
            f"Loaded configuration from {path} with {len(snapshot.calendars)} calendar(s)"
        )
        return cls(snapshot, source)

    @classmethod
    def from_document(cls, raw: bytes, format: ConfigFormat = "json") -> "ConfigStore":
        """Build a store from an in-memory document.

        Raises:
            ConfigError: If the document is invalid.
        """
        return cls(build_snapshot(raw, format))

    @property
    def source(self) -> Optional[ConfigSource]:
        return self._source

    def snapshot(self) -> ConfigSnapshot:
        """Return the current snapshot. Never blocks on a reload in progress."""
        return self._snapshot

    def try_reload(self, raw: bytes, format: ConfigFormat) -> ReloadResult:
        """Validate a candidate document and swap it in if it is valid.

        Configuration errors are reported in the result, not raised.

        Args:
            raw: Candidate document contents.
            format: Document syntax.

        Returns:
            Whether the candidate was applied, and the live snapshot.
        """
        try:
            candidate = build_snapshot(raw, format, self._source)
        except ConfigError as e:
            with self._lock:
                self._failed_reload_count += 1
                self._last_error = e.message
                self._last_reload_at = datetime.now(timezone.utc)
                current = self._snapshot
            logger.warning(f"Configuration reload rejected, keeping previous config: {e.message}")
            return ReloadResult(success=False, snapshot=current, error=e.message)

        with self._lock:
            self._snapshot = candidate
            self._reload_count += 1
            self._last_error = None
            self._last_reload_at = datetime.now(timezone.utc)

        logger.info(
            f"Configuration reloaded with {len(candidate.calendars)} calendar(s): "
            f"{', '.join(candidate.calendar_ids)}"
        )
        return ReloadResult(success=True, snapshot=candidate)

    def reload_from_source(self) -> ReloadResult:
        """Re-read the configuration file and try to apply it."""
        if self._source is None:
            error = "No configuration file to reload from"
            logger.warning(error)
            return ReloadResult(success=False, snapshot=self._snapshot, error=error)

        try:
            raw = read_document(self._source.path)
        except ConfigError as e:
            with self._lock:
                self._failed_reload_count += 1
                self._last_error = e.message
            logger.warning(f"Configuration reload failed: {e.message}")
            return ReloadResult(success=False, snapshot=self._snapshot, error=e.message)

        return self.try_reload(raw, self._source.format)

    def status(self) -> StoreStatus:
        with self._lock:
            snapshot = self._snapshot
            return StoreStatus(
                calendar_ids=snapshot.calendar_ids,
                loaded_at=snapshot.loaded_at,
                source_path=str(self._source.path) if self._source else None,
                reload_count=self._reload_count,
                failed_reload_count=self._failed_reload_count,
                last_error=self._last_error,
                last_reload_at=self._last_reload_at,
            )
