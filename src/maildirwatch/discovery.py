import logging
import os
from collections.abc import Callable
from pathlib import Path

from .errors import DiscoveryError
from .walker import UserMaildir
from .watch import WatchSet

log: logging.Logger = logging.getLogger(__name__)


def list_user_dirs(maildir_root: Path) -> list[Path]:
    """
    Return one path per user directory directly below `maildir_root`.

    Entries are sorted by name. Files and symlinks in the root are ignored.
    """
    try:
        with os.scandir(maildir_root) as it:
            names: list[str] = sorted(entry.name for entry in it if entry.is_dir(follow_symlinks=False))
    except OSError as err:
        raise DiscoveryError(f"Cannot list Maildir root {maildir_root}: {err}") from err

    return [maildir_root / name for name in names]


def discover_users(
    maildir_root: Path, watch_factory: Callable[[Path], WatchSet] = WatchSet
) -> list[UserMaildir]:
    """
    Create the initial watch and walk state for every user below `maildir_root`.

    If a watch set cannot be allocated for one user, the ones already
    allocated for earlier users are closed before `DiscoveryError` is raised.
    """
    users: list[UserMaildir] = []

    for user_path in list_user_dirs(maildir_root):
        try:
            watch_set: WatchSet = watch_factory(user_path)
        except OSError as err:
            for user in users:
                user.watch_set.close()
            raise DiscoveryError(f"Cannot create watcher for {user_path}: {err}") from err

        users.append(UserMaildir(user_path=user_path, watch_set=watch_set))

    log.debug("discovered %d user Maildirs below %s", len(users), maildir_root)

    return users
