"""Change detection for vaultsync.

Uses Watchdog to notice changes in catalog storage and a fixed-interval poll
to catch what the watch misses (deletions are not reported reliably on every
platform). Both funnel into ``LibraryReconciler.sync``, which drops calls
that arrive while a pass is already running.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import VaultSyncConfig
from .errors import CatalogUnavailable, WatchStartFailure
from .logging_config import get_logger
from .reconciler import LibraryReconciler, ProgressSink, SyncResult

logger = get_logger(__name__)

# Reads are not changes; the sync itself opens every source PDF it copies.
_READ_ONLY_EVENTS = {"opened", "closed_no_write"}


def _log_progress(message: str) -> None:
    logger.debug(f"[sync] {message}")


class StorageEventHandler(FileSystemEventHandler):
    """Forward every change event under catalog storage to a callback."""

    def __init__(self, on_change: Callable[[], None]):
        super().__init__()
        self.on_change = on_change

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in _READ_ONLY_EVENTS:
            return
        self.on_change()


class ConfigFileHandler(FileSystemEventHandler):
    """Call back when one specific file is written, created or moved into place."""

    def __init__(self, path: Path, on_change: Callable[[], None]):
        super().__init__()
        self.path = path.resolve()
        self.on_change = on_change

    def _matches(self, raw_path) -> bool:
        return bool(raw_path) and Path(raw_path).resolve() == self.path

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            self.on_change()

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            self.on_change()

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.dest_path):
            self.on_change()


def watch_config_file(path: Path, on_change: Callable[[], None]) -> Observer:
    """Start an observer on the folder holding ``path``. Caller stops it."""
    observer = Observer()
    observer.schedule(
        ConfigFileHandler(path, on_change), str(path.resolve().parent), recursive=False
    )
    observer.start()
    return observer


class SyncCoordinator:
    """Owns the storage watch, the debounce timer and the poll loop.

    Lifecycle: ``start()``, ``stop()``, ``restart()``. ``update_config()``
    applies new settings with a full restart.
    """

    def __init__(
        self,
        config: VaultSyncConfig,
        reconciler: LibraryReconciler,
        progress: Optional[ProgressSink] = None,
    ) -> None:
        self.config = config
        self.reconciler = reconciler
        self.progress = progress or _log_progress

        self._lock = threading.Lock()
        self._running = False
        self._observer: Optional[Observer] = None
        self._debounce_timer: Optional[threading.Timer] = None
        self._debounce_generation = 0
        self._poll_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def watching(self) -> bool:
        """True if the storage watch is active (False means poll-only)."""
        return self._observer is not None

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._stop_event = threading.Event()

            try:
                self._observer = self._start_observer()
            except WatchStartFailure as exc:
                logger.warning(f"{exc}. Continuing in poll-only mode.")
                self._observer = None

            if self.config.monitoring.poll_seconds > 0:
                self._poll_thread = threading.Thread(
                    target=self._poll_loop,
                    args=(self._stop_event,),
                    daemon=True,
                    name="VaultSyncPoller",
                )
                self._poll_thread.start()

        logger.info(
            f"Watching {self.config.storage_path} "
            f"(debounce {self.config.monitoring.debounce_seconds:g}s, "
            f"poll {self.config.monitoring.poll_seconds:g}s)"
        )

    def stop(self) -> None:
        """Cancel timers and close the watch. An in-flight pass runs to completion."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._stop_event.set()
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
                self._debounce_timer = None
            self._debounce_generation += 1
            observer, self._observer = self._observer, None
            self._poll_thread = None

        if observer is not None:
            observer.stop()
            observer.join()

    def restart(self) -> None:
        self.stop()
        self.start()

    def update_config(self, config: VaultSyncConfig) -> None:
        """Apply new settings and restart the watch and poll loop."""
        was_running = self._running
        self.stop()
        self.config = config
        self.reconciler.update_config(config)
        if was_running:
            self.start()

    def notify(self) -> None:
        """Record a storage change; sync once changes stop for the debounce interval."""
        with self._lock:
            if not self._running:
                return
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
            self._debounce_generation += 1
            timer = threading.Timer(
                self.config.monitoring.debounce_seconds,
                self._debounce_elapsed,
                args=(self._debounce_generation,),
            )
            timer.daemon = True
            self._debounce_timer = timer
            timer.start()

    def trigger_sync(self, reason: str = "manual") -> Optional[SyncResult]:
        """Run a pass now. Errors are logged, never raised."""
        logger.debug(f"Sync triggered by {reason}")
        try:
            return self.reconciler.sync(self.progress)
        except CatalogUnavailable as exc:
            logger.error(f"✗ Sync failed: {exc}")
        except Exception as exc:
            logger.error(f"✗ Sync failed ({reason}): {exc}")
        return None

    def _debounce_elapsed(self, generation: int) -> None:
        with self._lock:
            # A newer event or stop() superseded this timer
            if generation != self._debounce_generation or not self._running:
                return
            self._debounce_timer = None
        self.trigger_sync("watch")

    def _poll_loop(self, stop_event: threading.Event) -> None:
        interval = self.config.monitoring.poll_seconds
        while not stop_event.wait(interval):
            self.trigger_sync("poll")

    def _start_observer(self) -> Observer:
        storage_path = self.config.storage_path
        if not storage_path.is_dir():
            raise WatchStartFailure(storage_path)

        observer = Observer()
        try:
            observer.schedule(
                StorageEventHandler(self.notify), str(storage_path), recursive=True
            )
            observer.start()
        except OSError as exc:
            raise WatchStartFailure(storage_path, exc) from exc
        return observer
