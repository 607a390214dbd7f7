import queue
import shutil
import time
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileCreatedEvent

from maildirwatch.discovery import discover_users
from maildirwatch.errors import WalkError
from maildirwatch.metrics import Metrics
from maildirwatch.monitor import MaildirMonitor
from maildirwatch.walker import UserMaildir
from maildirwatch.watch import WatchSet

from .conftest import FakeObserver, make_maildir

POLL: float = 0.01


def drain(done: "queue.Queue[Path]", count: int) -> list[Path]:
    return [done.get(timeout=5) for _ in range(count)]


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline: float = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(POLL)
    return predicate()


def test_every_user_is_walked_on_start(
    tmp_path: Path, watch_factory: Callable[[Path], WatchSet], observers: list[FakeObserver], metrics: Metrics
) -> None:
    _ = make_maildir(tmp_path / "alice")
    _ = make_maildir(tmp_path / "bob")
    users: list[UserMaildir] = discover_users(tmp_path, watch_factory)

    with MaildirMonitor(users, metrics, poll_interval=POLL) as monitor:
        assert sorted(drain(monitor.done, 2)) == [tmp_path / "alice", tmp_path / "bob"]
        assert sorted(monitor.running()) == [tmp_path / "alice", tmp_path / "bob"]

    assert monitor.running() == []
    assert monitor.failures() == {}
    assert all(observer.stopped for observer in observers)


def test_change_event_triggers_another_walk(
    tmp_path: Path, watch_factory: Callable[[Path], WatchSet], observers: list[FakeObserver], metrics: Metrics
) -> None:
    alice: Path = make_maildir(tmp_path / "alice")
    users: list[UserMaildir] = discover_users(tmp_path, watch_factory)

    with MaildirMonitor(users, metrics, poll_interval=POLL) as monitor:
        assert drain(monitor.done, 1) == [alice]

        (alice / "new" / "1.host").write_text("hello")
        handler = observers[0].handler
        assert handler is not None
        handler.dispatch(FileCreatedEvent(str(alice / "new" / "1.host")))

        assert drain(monitor.done, 1) == [alice]


def test_dead_walker_is_reported(
    tmp_path: Path, watch_factory: Callable[[Path], WatchSet], metrics: Metrics
) -> None:
    _ = make_maildir(tmp_path / "alice")
    bob: Path = make_maildir(tmp_path / "bob")
    users: list[UserMaildir] = discover_users(tmp_path, watch_factory)
    shutil.rmtree(bob)

    with MaildirMonitor(users, metrics, poll_interval=POLL) as monitor:
        assert drain(monitor.done, 1) == [tmp_path / "alice"]
        assert wait_until(lambda: bob in monitor.failures())

        failures: dict[Path, BaseException] = monitor.failures()
        assert isinstance(failures[bob], WalkError)
        assert monitor.running() == [tmp_path / "alice"]
        assert monitor.done.empty()
