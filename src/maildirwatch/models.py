from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class WalkResult:
    user_path: Path
    element_count: int
    folder_count: int
    file_count: int
    total_size: int
    checksum: str
