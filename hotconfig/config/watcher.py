"""File system watching for configuration hot reload."""

import logging
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, ContextManager, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import ConfigIOError, WatchSetupError

logger = logging.getLogger(__name__)


class WatcherState(Enum):
    """Lifecycle of a ConfigWatcher. CLOSED is terminal."""
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    CLOSED = "closed"


class ConfigChangeHandler(FileSystemEventHandler):
    """Forwards modifications of a single file to its watcher."""

    def __init__(self, watcher: 'ConfigWatcher'):
        self.watcher = watcher

    def on_modified(self, event: FileSystemEvent):
        """Handle file modification events."""
        if not event.is_directory:
            self.watcher._handle_change(event.src_path)

    def on_closed(self, event: FileSystemEvent):
        # Emitted once a writer closes the file, after its last modify event
        if not event.is_directory:
            self.watcher._handle_change(event.src_path)

    def on_moved(self, event: FileSystemEvent):
        # Editors and atomic writers replace the file by renaming onto it
        if not event.is_directory:
            self.watcher._handle_change(event.dest_path)


class ConfigWatcher:
    """Owns the watch subscription for one configuration file.

    The subscription covers the file's parent directory; events for other
    files in that directory are ignored. Each matching event runs
    ``on_change`` on the observer thread while holding ``lock``.

    A watcher is started at most once. ``stop()`` cancels it, closes the
    subscription exactly once and leaves it in the CLOSED state for good.
    """

    def __init__(self, path: Path, on_change: Callable[[], object], lock: ContextManager):
        self.path = Path(path)
        self.on_change = on_change
        self.lock = lock
        self.error: Optional[BaseException] = None

        self._file_name = self.path.name
        self._observer: Optional[Observer] = None
        self._state = WatcherState.STOPPED
        self._state_lock = threading.Lock()
        self._cancelled = threading.Event()
        self._started_once = False

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def is_alive(self) -> bool:
        """Whether the observer thread is running."""
        return self._observer is not None and self._observer.is_alive()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> bool:
        """Subscribe to changes of the file's directory and start observing.

        Returns:
            True if the watcher is running, False if the subscription failed

        Raises:
            RuntimeError: If the watcher was already started or stopped
        """
        with self._state_lock:
            if self._started_once or self._state is not WatcherState.STOPPED:
                raise RuntimeError(
                    f"Watcher for {self.path} cannot be started again (state: {self._state.value})"
                )
            self._started_once = True
            self._state = WatcherState.STARTING

            watch_dir = self.path.parent
            observer = Observer()
            try:
                observer.schedule(ConfigChangeHandler(self), str(watch_dir), recursive=False)
                observer.daemon = True
                observer.start()
            except Exception as e:
                error = WatchSetupError(
                    f"Failed to watch {watch_dir} for configuration changes: {e}",
                    config_path=str(self.path)
                )
                logger.warning(
                    f"{error}. The configuration will not be reloaded at runtime.",
                    exc_info=True
                )
                self._state = WatcherState.STOPPED
                return False

            self._observer = observer
            self._state = WatcherState.RUNNING

        logger.info(f"Watching {self.path} for changes")
        return True

    def _handle_change(self, event_path) -> None:
        if Path(os.fsdecode(event_path)).name != self._file_name:
            return
        if self._cancelled.is_set():
            logger.debug(f"Ignoring change of {self.path}: watcher is stopping")
            return

        logger.debug(f"Configuration file changed: {self.path}")
        try:
            with self.lock:
                if self._cancelled.is_set():
                    return
                self.on_change()
        except Exception as e:
            logger.error(f"Error handling configuration change for {self.path}: {e}", exc_info=True)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel the watcher and close its subscription.

        Safe to call more than once; only the first call closes anything.

        Args:
            timeout: Seconds to wait for the observer thread to finish

        Raises:
            ConfigIOError: If the subscription could not be closed
        """
        self._cancelled.set()
        with self._state_lock:
            if self._state is WatcherState.CLOSED:
                return
            observer = self._observer
            self._state = WatcherState.CLOSED

        if observer is None:
            return

        try:
            observer.stop()
            if observer is not threading.current_thread():
                observer.join(timeout)
        except OSError as e:
            self.error = ConfigIOError(
                f"Failed to close file watcher for {self.path}: {e}",
                config_path=str(self.path)
            )
            raise self.error from e

        logger.info(f"Stopped watching {self.path}")
