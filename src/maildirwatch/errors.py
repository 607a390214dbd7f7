from pathlib import Path


class DiscoveryError(Exception):
    """Raised when the mail storage root cannot be turned into user states."""


class WalkError(Exception):
    """Raised when a user's walker terminates because a walk failed."""

    def __init__(self, user_path: Path) -> None:
        super().__init__(f"walk of {user_path} failed")
        self.user_path: Path = user_path


class WalkerClosedError(RuntimeError):
    """Raised when triggering a walker that no longer accepts triggers."""
