"""Independent protection layers applied to every candidate.

A candidate is accepted only when every layer accepts it. Rejections are
expected and non-fatal; ``SafetyViolationError`` is reserved for targets
that should have been impossible to accept.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from .models import Candidate, SafetyFailureKind, ValidatedTarget

if TYPE_CHECKING:
    from .ignore import IgnoreRuleSet
    from .patterns import CachePattern

logger = logging.getLogger(__name__)

PROTECTED_SYSTEM_PATHS: frozenset[str] = frozenset({
    "/",
    "/usr",
    "/bin",
    "/sbin",
    "/etc",
    "/var",
    "/home",
    "/root",
    "/boot",
    "/dev",
    "/proc",
    "/sys",
    "/tmp",
    "/opt",
    "/lib",
    "/lib64",
    "/Library",
    "/System",
    "/Applications",
    "/Users",
    "/Volumes",
    "/private",
    "C:\\",
    "C:\\Windows",
    "C:\\Program Files",
    "C:\\Program Files (x86)",
    "C:\\Users",
})

# Presence of any of these directly inside a candidate means it is not a cache
SENTINEL_FILES: frozenset[str] = frozenset({
    "main.rs",
    "lib.rs",
    "main.go",
    "index.js",
    "main.py",
    "__init__.py",
    "package.json",
    "Cargo.toml",
    "go.mod",
    "requirements.txt",
    "setup.py",
    "pyproject.toml",
    "Makefile",
    "CMakeLists.txt",
    "README.md",
    "README",
    "LICENSE",
    ".git",
    ".svn",
    ".hg",
})

# Cache Directory Tagging Specification marker, written by pytest, cargo and others
CACHEDIR_TAG = "CACHEDIR.TAG"

# Sentinels a tagged cache directory may legitimately hold
DOCUMENTATION_SENTINELS: frozenset[str] = frozenset({"README.md", "README", "LICENSE"})

DEFAULT_MIN_DEPTH = 3
DEPTH_ORIGINS = ("filesystem", "root")

CASE_INSENSITIVE_FS = sys.platform in ("darwin", "win32")


class SafetyViolationError(RuntimeError):
    """An accepted target breaks an invariant the validator guarantees."""


def normalize_path(path: Path | str, *, case_insensitive: bool = CASE_INSENSITIVE_FS) -> str:
    """Normalize a path for block-list comparison."""
    normalized = os.path.normpath(os.path.abspath(os.fspath(path)))
    return normalized.lower() if case_insensitive else normalized


class SafetyLayer(Protocol):
    """A single independent accept/reject predicate."""

    kind: SafetyFailureKind

    def accepts(self, candidate: Candidate) -> bool:
        ...


@dataclass
class SystemPathLayer:
    """Rejects critical system and home directories by exact path."""

    extra_paths: Iterable[Path | str] = ()
    case_insensitive: bool = CASE_INSENSITIVE_FS
    kind: SafetyFailureKind = SafetyFailureKind.SYSTEM_PATH
    _blocked: frozenset[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        paths: set[Path | str] = set(PROTECTED_SYSTEM_PATHS)
        paths.update(self.extra_paths)
        home = Path.home()
        paths.update({home, home.parent})
        self._blocked = frozenset(normalize_path(p, case_insensitive=self.case_insensitive) for p in paths)

    def is_path_protected(self, path: Path) -> bool:
        return normalize_path(path, case_insensitive=self.case_insensitive) in self._blocked

    def accepts(self, candidate: Candidate) -> bool:
        return not self.is_path_protected(candidate.path)


@dataclass
class MinimumDepthLayer:
    """Rejects candidates too close to the root to be a project cache."""

    min_depth: int = DEFAULT_MIN_DEPTH
    origin: str = "filesystem"
    kind: SafetyFailureKind = SafetyFailureKind.MIN_DEPTH

    def __post_init__(self) -> None:
        if self.origin not in DEPTH_ORIGINS:
            raise ValueError(f"Invalid depth_origin: {self.origin!r} (expected one of {DEPTH_ORIGINS})")

    def depth_of(self, candidate: Candidate) -> int:
        if self.origin == "root":
            return candidate.depth_from_root
        # Components of the absolute path, counting the filesystem root
        return len(Path(os.path.abspath(candidate.path)).parts)

    def accepts(self, candidate: Candidate) -> bool:
        return self.depth_of(candidate) >= self.min_depth


@dataclass
class ImportantFileLayer:
    """Rejects directories that directly contain source, manifest or VCS files."""

    sentinels: frozenset[str] = SENTINEL_FILES
    kind: SafetyFailureKind = SafetyFailureKind.IMPORTANT_FILE

    def find_sentinel(self, path: Path) -> str | None:
        """Return the first sentinel name found directly inside ``path``.

        A directory tagged with ``CACHEDIR.TAG`` may carry documentation
        files; manifests, entry points and VCS markers still count.
        """
        try:
            with os.scandir(path) as entries:
                names = {entry.name for entry in entries}
        except FileNotFoundError:
            return None
        except OSError as e:
            # Unlistable means unverifiable
            logger.debug("Cannot inspect %s: %s", path, e)
            return "<unreadable>"

        sentinels = self.sentinels
        if CACHEDIR_TAG in names:
            sentinels = sentinels - DOCUMENTATION_SENTINELS
        found = sorted(names & sentinels)
        return found[0] if found else None

    def accepts(self, candidate: Candidate) -> bool:
        if not candidate.is_directory or candidate.is_symlink:
            return True
        sentinel = self.find_sentinel(candidate.path)
        if sentinel is not None:
            logger.debug("Important file %s found in %s", sentinel, candidate.path)
            return False
        return True


@dataclass
class ModeLayer:
    """Rejects library patterns unless running in library mode."""

    include_libraries: bool = False
    kind: SafetyFailureKind = SafetyFailureKind.MODE

    def accepts(self, candidate: Candidate) -> bool:
        return self.include_libraries or not candidate.pattern.is_library


@dataclass
class IgnoreLayer:
    """Re-checks ignore status for candidates built outside the traversal."""

    ignore_rules: IgnoreRuleSet | None = None
    kind: SafetyFailureKind = SafetyFailureKind.IGNORED

    def accepts(self, candidate: Candidate) -> bool:
        if self.ignore_rules is None:
            return True
        return not self.ignore_rules.is_ignored(candidate.path, candidate.is_directory)


class SafetyValidator:
    """Runs a candidate through every layer; any rejection discards it."""

    def __init__(
        self,
        layers: Iterable[SafetyLayer],
        allowed_patterns: frozenset[CachePattern] | None = None,
    ) -> None:
        """Initialize the validator.

        Args:
            layers: Independent safety predicates.
            allowed_patterns: Patterns active in the current mode. Used only
                to detect impossible acceptances, see ``check_invariants``.

        """
        self.layers: tuple[SafetyLayer, ...] = tuple(layers)
        self.allowed_patterns = allowed_patterns
        self._system_layer = next(
            (layer for layer in self.layers if isinstance(layer, SystemPathLayer)),
            SystemPathLayer(),
        )

    @classmethod
    def standard(
        cls,
        *,
        include_libraries: bool = False,
        ignore_rules: IgnoreRuleSet | None = None,
        min_depth: int = DEFAULT_MIN_DEPTH,
        depth_origin: str = "filesystem",
        extra_protected: Iterable[Path | str] = (),
        extra_sentinels: Iterable[str] = (),
        allowed_patterns: frozenset[CachePattern] | None = None,
    ) -> SafetyValidator:
        """Build a validator with the five standard layers."""
        return cls(
            [
                SystemPathLayer(extra_paths=tuple(extra_protected)),
                MinimumDepthLayer(min_depth=min_depth, origin=depth_origin),
                ImportantFileLayer(sentinels=SENTINEL_FILES | frozenset(extra_sentinels)),
                ModeLayer(include_libraries=include_libraries),
                IgnoreLayer(ignore_rules=ignore_rules),
            ],
            allowed_patterns=allowed_patterns,
        )

    def is_path_protected(self, path: Path) -> bool:
        """Check a path against the system block-list."""
        return self._system_layer.is_path_protected(path)

    def validate(self, candidate: Candidate) -> ValidatedTarget:
        """Accept the candidate, or reject it with the first failing layer's reason."""
        for layer in self.layers:
            if not layer.accepts(candidate):
                logger.debug("Rejected %s (%s)", candidate.path, layer.kind.value)
                return ValidatedTarget(candidate=candidate, accepted=False, rejection_reason=layer.kind)
        return ValidatedTarget(candidate=candidate, accepted=True)

    def check_invariants(self, target: ValidatedTarget, root: Path) -> None:
        """Verify that an accepted target is one the validator could have produced.

        Raises:
            SafetyViolationError: If the target must not be deleted.

        """
        if not target.accepted:
            return
        path = Path(os.path.abspath(target.path))
        root = Path(os.path.abspath(root))

        if target.rejection_reason is not None:
            raise SafetyViolationError(f"Accepted target carries a rejection reason: {path}")
        if path == root or root not in path.parents:
            raise SafetyViolationError(f"Accepted target is outside the traversal root: {path}")
        if self.is_path_protected(path):
            raise SafetyViolationError(f"Accepted target is a protected system path: {path}")
        if self.allowed_patterns is not None and target.candidate.pattern not in self.allowed_patterns:
            raise SafetyViolationError(
                f"Accepted target matched a pattern outside the active mode: {path} ({target.candidate.pattern.name})"
            )
