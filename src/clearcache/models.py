"""Records passed between traversal, validation and deletion."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from pathlib import Path

from .patterns import CachePattern


class SafetyFailureKind(Enum):
    """Reason a candidate was declined by a safety layer."""

    SYSTEM_PATH = "system_path"
    MIN_DEPTH = "min_depth"
    IMPORTANT_FILE = "important_file"
    MODE = "mode"
    IGNORED = "ignored"


class FailureKind(Enum):
    """Reason a validated target could not be removed."""

    PERMISSION = "permission"
    VANISHED = "vanished"
    IO = "io"


def measure_path(path: Path) -> tuple[int, int]:
    """Total size in bytes and number of files below a path.

    Symbolic links are counted as a single entry of their own size and
    never followed. Unreadable subdirectories are skipped.

    Returns:
        Tuple of (total_bytes, file_count).

    """
    try:
        st = path.lstat()
    except FileNotFoundError:
        return 0, 0

    if not path.is_dir() or path.is_symlink():
        return st.st_size, 1

    total_size = 0
    file_count = 0
    stack = [path]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(Path(entry.path))
                        else:
                            total_size += entry.stat(follow_symlinks=False).st_size
                            file_count += 1
                    except OSError:
                        continue
        except OSError:
            continue

    return total_size, file_count


@dataclass(frozen=True)
class Candidate:
    """A filesystem entry matched by a cache pattern, not yet validated.

    Size and file count are measured once, on first access.
    """

    path: Path
    depth_from_root: int
    pattern: CachePattern
    is_directory: bool
    is_symlink: bool = False

    @cached_property
    def _measurement(self) -> tuple[int, int]:
        return measure_path(self.path)

    @property
    def approximate_size_bytes(self) -> int:
        return self._measurement[0]

    @property
    def file_count(self) -> int:
        return self._measurement[1]


@dataclass(frozen=True)
class ValidatedTarget:
    """Outcome of running a candidate through every safety layer."""

    candidate: Candidate
    accepted: bool
    rejection_reason: SafetyFailureKind | None = None

    @property
    def path(self) -> Path:
        return self.candidate.path
