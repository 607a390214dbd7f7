from pathlib import Path

from prometheus_client import REGISTRY, CollectorRegistry, Gauge

from .models import WalkResult


class Metrics:
    def __init__(self, registry: CollectorRegistry = REGISTRY, namespace: str = "maildir") -> None:
        self.elements: Gauge = Gauge(
            "elements",
            "Number of folders and files in a user's Maildir.",
            ["user"],
            namespace=namespace,
            registry=registry,
        )
        self.folders: Gauge = Gauge(
            "folders",
            "Number of folders in a user's Maildir.",
            ["user"],
            namespace=namespace,
            registry=registry,
        )
        self.files: Gauge = Gauge(
            "files",
            "Number of files in a user's Maildir.",
            ["user"],
            namespace=namespace,
            registry=registry,
        )
        self.size: Gauge = Gauge(
            "size_bytes",
            "Total size of the files in a user's Maildir, labeled with the SHA-512 over its paths.",
            ["user", "sha512"],
            namespace=namespace,
            registry=registry,
        )
        self.walker_up: Gauge = Gauge(
            "walker_up",
            "Whether the walker of a user's Maildir is still running.",
            ["user"],
            namespace=namespace,
            registry=registry,
        )

    def publish(self, result: WalkResult, previous_checksum: str | None = None) -> None:
        user: str = str(result.user_path)

        self.elements.labels(user=user).set(result.element_count)
        self.folders.labels(user=user).set(result.folder_count)
        self.files.labels(user=user).set(result.file_count)

        if previous_checksum is not None and previous_checksum != result.checksum:
            self.size.remove(user, previous_checksum)
        self.size.labels(user=user, sha512=result.checksum).set(result.total_size)

    def set_walker_up(self, user_path: Path, up: bool) -> None:
        self.walker_up.labels(user=str(user_path)).set(1 if up else 0)
