from collections.abc import Callable
from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry
from watchdog.events import FileSystemEventHandler

from maildirwatch.metrics import Metrics
from maildirwatch.watch import WatchSet


class FakeObserver:
    """Stands in for a watchdog observer without touching inotify."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[str, bool]] = []
        self.handler: FileSystemEventHandler | None = None
        self.started: bool = False
        self.stopped: bool = False

    def schedule(self, handler: FileSystemEventHandler, path: str, recursive: bool = False) -> object:
        self.handler = handler
        self.scheduled.append((path, recursive))
        return object()

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout: float | None = None) -> None:
        pass


@pytest.fixture
def observers() -> list[FakeObserver]:
    return []


@pytest.fixture
def watch_factory(observers: list[FakeObserver]) -> Callable[[Path], WatchSet]:
    def factory(root: Path) -> WatchSet:
        observer: FakeObserver = FakeObserver()
        observers.append(observer)
        return WatchSet(root, observer_factory=lambda: observer)

    return factory


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> Metrics:
    return Metrics(registry=registry)


def make_maildir(path: Path) -> Path:
    for name in ("cur", "new", "tmp"):
        (path / name).mkdir(parents=True)
    return path
