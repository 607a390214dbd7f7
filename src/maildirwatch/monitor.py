import logging
import queue
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from types import TracebackType

from .errors import WalkerClosedError
from .metrics import Metrics
from .walker import UserMaildir

log: logging.Logger = logging.getLogger(__name__)


class MaildirMonitor:
    """
    Run one walker per user and feed filesystem changes back as triggers.

    Every walker runs in its own pool thread. The future of each walker is
    kept so a walker that died on an error can be reported instead of
    disappearing silently.
    """

    def __init__(self, users: list[UserMaildir], metrics: Metrics, poll_interval: float = 0.1) -> None:
        self.users: list[UserMaildir] = users
        self.metrics: Metrics = metrics
        self.poll_interval: float = poll_interval
        self.done: queue.Queue[Path] = queue.Queue()

        self._executor: ThreadPoolExecutor | None = None
        self._futures: dict[Path, Future[None]] = {}

    def __enter__(self) -> "MaildirMonitor":
        self.start()
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None
    ) -> None:
        self.stop()

    def start(self) -> None:
        if self._executor is not None:
            return

        self._executor = ThreadPoolExecutor(
            max_workers=max(1, len(self.users)), thread_name_prefix="maildir-walk"
        )

        for user in self.users:
            user.watch_set.subscribe(lambda path, user=user: self._on_change(user, path))

            future: Future[None] = self._executor.submit(user.walk, self.metrics, self.done, self.poll_interval)
            future.add_done_callback(lambda f, user=user: self._on_walker_exit(user, f))
            self._futures[user.user_path] = future

            _ = user.trigger()

    def stop(self) -> None:
        for user in self.users:
            user.shutdown()

        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

        for user in self.users:
            user.watch_set.close()

    def running(self) -> list[Path]:
        return [path for path, future in self._futures.items() if not future.done()]

    def failures(self) -> dict[Path, BaseException]:
        failed: dict[Path, BaseException] = {}
        for path, future in self._futures.items():
            if not future.done():
                continue
            exc: BaseException | None = future.exception()
            if exc is not None:
                failed[path] = exc
        return failed

    def _on_change(self, user: UserMaildir, path: Path) -> None:
        try:
            if not user.trigger():
                log.debug("walk for %s already pending, change at %s coalesced", user.user_path, path)
        except WalkerClosedError:
            log.debug("ignoring change at %s, walker for %s has stopped", path, user.user_path)

    def _on_walker_exit(self, user: UserMaildir, future: Future[None]) -> None:
        exc: BaseException | None = future.exception()
        if exc is None:
            log.debug("walker for %s stopped", user.user_path)
            return

        log.error(
            "walker for %s died, its Maildir is no longer monitored",
            user.user_path,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
