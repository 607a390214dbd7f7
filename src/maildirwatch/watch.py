"""Per-user set of watched Maildir directories."""

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CLOSED_NO_WRITE,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_OPENED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

log: logging.Logger = logging.getLogger(__name__)

# Reading a Maildir produces these; they never change the tree.
IGNORED_EVENT_TYPES: frozenset[str] = frozenset(
    {EVENT_TYPE_OPENED, EVENT_TYPE_CLOSED, EVENT_TYPE_CLOSED_NO_WRITE}
)


class WatchSet:
    """
    The directories of one user's Maildir that are watched for changes.

    The kernel side is a single recursive watch on the user's root, so a
    user costs one notification instance however many folders it holds.
    Events are only passed on for directories that have been added: a walk
    adds the directories it visits, and a directory created afterwards
    stays silent until the next walk adds it.
    """

    def __init__(self, root: Path, observer_factory: Callable[[], BaseObserver] = Observer) -> None:
        self.root: str = os.path.abspath(root)
        self._observer: BaseObserver = observer_factory()
        self._handler: _ChangeHandler = _ChangeHandler(self._dispatch)
        self._paths: set[str] = set()
        self._callbacks: list[Callable[[Path], None]] = []
        self._lock: threading.Lock = threading.Lock()

        _ = self._observer.schedule(self._handler, self.root, recursive=True)
        self._observer.start()

    @property
    def paths(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._paths)

    def add(self, path: str) -> None:
        with self._lock:
            self._paths.add(path)

    def subscribe(self, callback: Callable[[Path], None]) -> None:
        self._callbacks.append(callback)

    def close(self) -> None:
        self._observer.stop()
        try:
            self._observer.join(timeout=5)
        except RuntimeError:
            log.warning("Failed to join watch observer thread")

    def covers(self, path: str) -> bool:
        """Whether a change at `path` is reported by the watched directories."""
        with self._lock:
            return path in self._paths or os.path.dirname(path) in self._paths

    def _dispatch(self, event: FileSystemEvent) -> None:
        if event.event_type in IGNORED_EVENT_TYPES:
            return
        # Directory attribute changes, e.g. atime updates from listing them.
        if event.is_directory and event.event_type == EVENT_TYPE_MODIFIED:
            return

        for value in (event.src_path, event.dest_path):
            if not value:
                continue
            path: Path = _event_path(value)
            if self.covers(str(path)):
                self._emit(path)
                return

    def _emit(self, path: Path) -> None:
        for callback in list(self._callbacks):
            try:
                callback(path)
            except Exception:
                log.exception("Change callback failed for path %s", path)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, callback: Callable[[FileSystemEvent], None]) -> None:
        super().__init__()
        self._callback: Callable[[FileSystemEvent], None] = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._callback(event)


def _event_path(value: str | bytes) -> Path:
    if isinstance(value, bytes):
        return Path(os.fsdecode(value))
    return Path(value)
