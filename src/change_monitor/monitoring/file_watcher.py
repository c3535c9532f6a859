"""
File system watcher that turns watchdog notifications into ChangeEvents.

Watches one directory tree recursively and reports file creations,
modifications and deletions. Raw signals arrive on the watchdog observer
thread and are handed to the asyncio loop, where follow-up modifications of
the same file are coalesced before the event is emitted.
"""

import asyncio
import logging
import os
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from change_monitor.models import AdapterError, ChangeEvent, ChangeKind, MonitorTarget

logger = logging.getLogger(__name__)


class ChangeEventWatcher(FileSystemEventHandler):
    """
    Watchdog event handler bound to a single monitor target.

    Emits one ChangeEvent per file signal through ``emit``, which is always
    called on the event loop thread. Events for the same path keep the order
    the OS reported them in.
    """

    def __init__(
        self,
        config,
        target: MonitorTarget,
        emit: Callable[[ChangeEvent], None],
        coalesce_seconds: float = 0.05,
    ):
        """
        Initialize the watcher.

        Args:
            config: Service settings with ignore patterns and observer options
            target: Target whose root and tracked patterns drive the watcher
            emit: Callback receiving each normalized event
            coalesce_seconds: Window, measured from the first signal, for folding follow-up
                modifications (0 disables)
        """
        super().__init__()
        self.config = config
        self.target = target
        self.emit = emit
        self.coalesce_seconds = coalesce_seconds

        # Coalescing state, only touched on the loop thread
        self._pending_events: dict[str, ChangeEvent] = {}
        self._flush_handles: dict[str, asyncio.TimerHandle] = {}

        self._observer: Observer | None = None
        self._watched_paths: set[str] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._accepting = False

    def start_watching(self) -> None:
        """
        Start watching the target root recursively.

        Must be called from a coroutine running on the loop that should
        receive events.

        Raises:
            AdapterError: If the observer cannot be started
        """
        root = self.target.root
        try:
            if not root.is_dir():
                raise AdapterError(f"Path is not a directory: {root}", path=str(root), operation="start_watching")

            self._loop = asyncio.get_running_loop()

            observer_class = PollingObserver if self.config.use_polling else Observer
            self._observer = observer_class(timeout=self.target.interval)

            directory_str = str(root.resolve())
            self._observer.schedule(self, directory_str, recursive=True)
            self._watched_paths.add(directory_str)

            self._accepting = True
            self._observer.start()
            logger.info("Started monitoring %s (interval: %ss)", directory_str, self.target.interval)

        except AdapterError:
            self._reset()
            raise
        except Exception as e:
            logger.error("Failed to start file monitoring for %s: %s", root, e)
            self._reset()
            raise AdapterError(
                f"Failed to start monitoring: {e}",
                path=str(root),
                operation="start_watching",
                underlying_error=e,
            ) from e

    def stop_watching(self) -> None:
        """
        Stop the observer and release its OS watch handles.

        Events already observed but still inside the coalescing window are
        emitted; anything arriving afterwards is dropped.
        """
        self._accepting = False
        try:
            if self._observer and self._observer.is_alive():
                self._observer.stop()
                self._observer.join(timeout=self.config.observer_join_timeout)
                if self._observer.is_alive():
                    logger.warning("Observer thread did not exit within %ss", self.config.observer_join_timeout)
                logger.info("File monitoring stopped for %s", self.target.path)

        except Exception as e:
            logger.error("Error stopping file monitoring: %s", e)
            raise AdapterError(
                "Failed to stop monitoring", path=self.target.path, operation="stop_watching", underlying_error=e
            ) from e

        finally:
            for key in list(self._pending_events):
                self._flush(key)
            self._reset()

    def _reset(self) -> None:
        for handle in self._flush_handles.values():
            handle.cancel()
        self._flush_handles.clear()
        self._pending_events.clear()
        self._watched_paths.clear()
        self._observer = None
        self._accepting = False

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_file_event(ChangeKind.CREATED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_file_event(ChangeKind.MODIFIED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_file_event(ChangeKind.DELETED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle moves inside the tree as delete + create."""
        if hasattr(event, 'dest_path') and not event.is_directory:
            self._handle_file_event(ChangeKind.DELETED, event.src_path)
            self._handle_file_event(ChangeKind.CREATED, event.dest_path)

    def _handle_file_event(self, change_kind: ChangeKind, raw_path: str | bytes) -> None:
        """
        Normalize a raw signal and hand it to the event loop.

        Runs on the observer thread. Errors are logged so that one bad
        event never takes the observer down.
        """
        try:
            file_path = Path(os.fsdecode(raw_path))
            if not self._should_process_file(file_path):
                return

            observed_at = datetime.now(UTC)
            logger.debug("File event: %s %s", change_kind.value, file_path)

            if self._loop and not self._loop.is_closed():
                self._loop.call_soon_threadsafe(self._accept, change_kind, str(file_path), observed_at)
            else:
                logger.error("No event loop available for %s event on %s", change_kind.value, file_path)

        except Exception as e:
            logger.error("Error handling file event %s for %s: %s", change_kind, raw_path, e)

    def _accept(self, change_kind: ChangeKind, file_key: str, observed_at: datetime) -> None:
        """Coalesce and emit an event. Runs on the loop thread."""
        if not self._accepting:
            logger.debug("Dropping %s event for %s after stop", change_kind.value, file_key)
            return

        change_event = ChangeEvent(path=file_key, change_kind=change_kind, timestamp=observed_at)

        if self.coalesce_seconds <= 0:
            self._emit_event(change_event)
            return

        pending = self._pending_events.get(file_key)
        if pending is not None:
            if change_kind == ChangeKind.MODIFIED and pending.change_kind in (ChangeKind.CREATED, ChangeKind.MODIFIED):
                # The pending event keeps its original deadline
                logger.debug("Folding modification into pending %s event for %s", pending.change_kind.value, file_key)
                return
            # A different kind of change: the pending one goes out first
            self._flush(file_key)

        self._pending_events[file_key] = change_event
        self._schedule_flush(file_key)

    def _schedule_flush(self, file_key: str) -> None:
        existing = self._flush_handles.pop(file_key, None)
        if existing is not None:
            existing.cancel()
        self._flush_handles[file_key] = self._loop.call_later(self.coalesce_seconds, self._flush, file_key)

    def _flush(self, file_key: str) -> None:
        handle = self._flush_handles.pop(file_key, None)
        if handle is not None:
            handle.cancel()

        change_event = self._pending_events.pop(file_key, None)
        if change_event is not None:
            self._emit_event(change_event)

    def _emit_event(self, change_event: ChangeEvent) -> None:
        try:
            self.emit(change_event)
        except Exception as e:
            logger.error("Error emitting %s: %s", change_event, e)

    def _should_process_file(self, file_path: Path) -> bool:
        """
        Check if a file should be reported.

        Args:
            file_path: Path to check

        Returns:
            True if the file matches the target and is not ignored
        """
        try:
            if self.config.should_ignore_file(file_path):
                return False

            if self.config.ignore_hidden and self._is_hidden(file_path):
                return False

            return self.target.tracks(file_path)

        except Exception as e:
            logger.debug("Error checking if file should be processed %s: %s", file_path, e)
            return False

    def _is_hidden(self, file_path: Path) -> bool:
        try:
            parts = file_path.relative_to(self.target.root.resolve()).parts
        except ValueError:
            parts = (file_path.name,)
        return any(part.startswith('.') for part in parts)

    @property
    def is_watching(self) -> bool:
        """Check if currently watching for file changes."""
        return self._observer is not None and self._observer.is_alive()

    def get_watched_paths(self) -> list[str]:
        """Get list of currently watched directory paths."""
        return list(self._watched_paths)

    def get_pending_events_count(self) -> int:
        """Get count of events waiting out the coalescing window."""
        return len(self._pending_events)
