"""Background polling of the configuration file.

Polling compares file contents rather than modification times, so edits
through bind mounts or editors that replace the file are still noticed.
"""

import hashlib
import logging
import threading
from typing import Optional

from models.store import ConfigStore, ReloadResult

logger = logging.getLogger(__name__)


class ConfigWatcher:
    """Thread that reloads the store whenever the config file changes.

    Responsibilities:
    - Thread management (create, start, stop)
    - Reading the file and hashing its contents every interval
    - Calling ConfigStore.reload_from_source() on a content change
    - Error isolation (a failed poll is logged, the thread keeps running)

    Attributes:
        store: Store to reload; must have a file source.
        poll_interval: Seconds between polls.
        is_running: Whether the polling thread is active.
    """

    def __init__(self, store: ConfigStore, poll_interval: float = 2.0) -> None:
        """Initialize the watcher.

        Args:
            store: Store to reload.
            poll_interval: Seconds between polls (default 2s).

        Raises:
            ValueError: If the store was not loaded from a file.
        """
        if store.source is None:
            raise ValueError("ConfigWatcher needs a store loaded from a file")

        self.store = store
        self.poll_interval = poll_interval

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._last_digest = self._read_digest()
        self.is_running = False

    @property
    def path(self):
        return self.store.source.path

    def _read_digest(self) -> Optional[str]:
        try:
            return hashlib.sha256(self.path.read_bytes()).hexdigest()
        except OSError as e:
            logger.warning(f"Cannot read configuration file {self.path}: {e}")
            return None

    def check_once(self) -> Optional[ReloadResult]:
        """Poll the file once and reload if its contents changed.

        Returns:
            The reload result, or None when nothing changed or the file is
            unreadable (it is retried on the next poll).
        """
        digest = self._read_digest()
        if digest is None:
            return None
        if digest == self._last_digest:
            logger.debug(f"No change in {self.path}")
            return None

        logger.info(f"Configuration file {self.path} changed, reloading")
        self._last_digest = digest
        return self.store.reload_from_source()

    def start(self) -> None:
        """Start the polling thread.

        Raises:
            RuntimeError: If the watcher is already running.
        """
        if self.is_running:
            raise RuntimeError("Config watcher is already running")

        self.is_running = True
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop, name="config-watcher", daemon=True
        )
        self._thread.start()

        logger.info(f"Watching {self.path} every {self.poll_interval}s")

    def stop(self) -> None:
        """Stop the polling thread and wait for the current poll to finish."""
        if not self.is_running:
            return

        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self.poll_interval + 1.0)

        self.is_running = False
        self._thread = None

        logger.info("Config watcher stopped")

    def _run_loop(self) -> None:
        # wait() returns early when stop() is called
        while not self._stop_event.wait(self.poll_interval):
            try:
                self.check_once()
            except Exception as e:
                logger.error(f"Error while polling configuration: {e}", exc_info=True)
