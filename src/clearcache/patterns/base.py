"""Cache pattern descriptor and the ecosystems it belongs to."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Ecosystem(Enum):
    """Toolchain families, in classification priority order."""

    NODEJS = "node"
    RUST = "rust"
    GO = "go"
    PYTHON = "python"
    DOCKER = "docker"
    GENERAL = "general"

    @property
    def priority(self) -> int:
        return list(Ecosystem).index(self)


class MatchKind(Enum):
    """How a pattern string is compared against an entry name."""

    EXACT = "exact"
    GLOB_SUFFIX = "glob_suffix"  # "*.egg-info"
    EXTENSION = "extension"  # "*.pyc"


@dataclass(frozen=True)
class CachePattern:
    """Immutable description of one cache artifact name."""

    name: str
    pattern: str
    ecosystem: Ecosystem
    directory: bool = True
    is_library: bool = False
    description: str = ""

    @property
    def match_kind(self) -> MatchKind:
        if not self.pattern.startswith("*"):
            return MatchKind.EXACT
        tail = self.pattern[1:]
        if tail.startswith(".") and "." not in tail[1:] and "-" not in tail:
            return MatchKind.EXTENSION
        return MatchKind.GLOB_SUFFIX

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self.pattern.split("/"))

    def matches(self, entry_name: str, is_directory: bool, parents: tuple[str, ...] = ()) -> bool:
        """Check whether an entry is matched by this pattern.

        Args:
            entry_name: Final path component of the entry.
            is_directory: Whether the entry is a directory.
            parents: Names of the enclosing directories, nearest last.
                Only consulted by multi-segment patterns such as ``pkg/mod``.

        Returns:
            True if the entry matches.

        """
        if is_directory != self.directory:
            return False

        kind = self.match_kind
        if kind is MatchKind.EXTENSION:
            return entry_name.endswith(self.pattern[1:]) and entry_name != self.pattern[1:]
        if kind is MatchKind.GLOB_SUFFIX:
            return entry_name.endswith(self.pattern[1:])

        *leading, last = self.segments
        if entry_name != last:
            return False
        if not leading:
            return True
        return len(parents) >= len(leading) and tuple(parents[-len(leading):]) == tuple(leading)
