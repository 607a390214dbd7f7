import hashlib
import logging
import os
import queue
import threading
from collections.abc import Callable, Iterator
from pathlib import Path

from .errors import WalkerClosedError, WalkError
from .metrics import Metrics
from .models import WalkResult
from .watch import WatchSet

log: logging.Logger = logging.getLogger(__name__)


def iter_tree(top: str) -> Iterator[os.DirEntry[str]]:
    """
    Yield every entry below `top` depth first, in name order per directory.

    A directory is yielded before its own entries are listed, so a consumer
    sees each directory before anything inside it. Symlinks are yielded but
    never followed.
    """
    with os.scandir(top) as it:
        entries: list[os.DirEntry[str]] = sorted(it, key=lambda entry: entry.name)

    for entry in entries:
        yield entry
        if entry.is_dir(follow_symlinks=False):
            yield from iter_tree(entry.path)


def walk_tree(user_path: Path, watch: Callable[[str], None] | None = None) -> WalkResult:
    """
    Walk one user's Maildir and compute its structural fingerprint.

    Only folders and regular files are counted. Every folder, and the root
    itself, is passed to `watch` as an absolute path. The checksum is a
    SHA-512 over the visited paths in traversal order and never looks at
    file contents.

    Raises
    ------
    OSError
        If a directory cannot be listed, an entry cannot be stat'ed, or
        `watch` fails to register a directory.
    """
    root: str = str(user_path)
    if watch is not None:
        watch(os.path.abspath(root))

    folder_count: int = 0
    file_count: int = 0
    total_size: int = 0
    sha = hashlib.sha512()

    for entry in iter_tree(root):
        if entry.is_dir(follow_symlinks=False):
            folder_count += 1
            if watch is not None:
                watch(os.path.abspath(entry.path))
        elif entry.is_file(follow_symlinks=False):
            file_count += 1
            total_size += entry.stat(follow_symlinks=False).st_size
        else:
            # Maildirs only hold folders and files.
            continue

        sha.update(os.fsencode(entry.path))

    return WalkResult(
        user_path=user_path,
        element_count=folder_count + file_count,
        folder_count=folder_count,
        file_count=file_count,
        total_size=total_size,
        checksum=sha.hexdigest(),
    )


class UserMaildir:
    """
    Watch and walk state of a single user's Maildir.

    `walk` is meant to run in its own thread. It blocks until `trigger` or
    `shutdown` is called, and handles triggers strictly one after another.
    At most one trigger is kept pending; further triggers are coalesced into
    it.
    """

    def __init__(self, user_path: Path, watch_set: WatchSet) -> None:
        self.user_path: Path = user_path
        self.watch_set: WatchSet = watch_set

        self._walk_trigger: queue.Queue[None] = queue.Queue(maxsize=1)
        self._shutdown: threading.Event = threading.Event()
        self._closed: threading.Event = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def trigger(self) -> bool:
        """
        Request a walk. Returns False when a walk was already pending.
        """
        if self._closed.is_set():
            raise WalkerClosedError(f"walker for {self.user_path} no longer accepts triggers")

        try:
            self._walk_trigger.put_nowait(None)
        except queue.Full:
            return False
        return True

    def shutdown(self) -> None:
        self._shutdown.set()

    def walk(self, metrics: Metrics, done: "queue.Queue[Path]", poll_interval: float = 0.1) -> None:
        """
        Serve walk triggers until shut down or until a walk fails.

        Each completed walk publishes its metrics and puts `user_path` on
        `done` exactly once. A failed walk is logged and ends the loop by
        raising `WalkError`; nothing is put on `done` for it.
        """
        checksum: str | None = None
        metrics.set_walker_up(self.user_path, True)

        try:
            while not self._shutdown.is_set():
                try:
                    self._walk_trigger.get(timeout=poll_interval)
                except queue.Empty:
                    continue

                if self._shutdown.is_set():
                    break

                try:
                    result: WalkResult = walk_tree(self.user_path, self.watch_set.add)
                except OSError as err:
                    log.error("error while walking user Maildir %s: %s", self.user_path, err)
                    raise WalkError(self.user_path) from err

                metrics.publish(result, previous_checksum=checksum)
                checksum = result.checksum

                done.put(self.user_path)

            log.debug("done walking Maildir for %s", self.user_path)
        finally:
            self._closed.set()
            metrics.set_walker_up(self.user_path, False)
