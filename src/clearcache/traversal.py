"""Depth-first discovery of cache candidates beneath a root directory."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .models import Candidate

if TYPE_CHECKING:
    from .ignore import IgnoreRuleSet
    from .registry import PatternRegistry

logger = logging.getLogger(__name__)

# Version control metadata is never classified or entered
VCS_DIRS = frozenset({".git", ".svn", ".hg", ".bzr"})

DEFAULT_MAX_DEPTH = 20


class RootAccessError(OSError):
    """The traversal root is missing, not a directory, or unreadable."""


def check_root(root: Path) -> Path:
    """Return the absolute root, or fail if it cannot be listed.

    Raises:
        RootAccessError: If the root is missing, not a directory or unreadable.

    """
    root = Path(os.path.abspath(root))
    if not root.is_dir():
        raise RootAccessError(f"Not a directory: {root}")
    if not os.access(root, os.R_OK | os.X_OK):
        raise RootAccessError(f"Cannot read directory: {root}")
    return root


@dataclass
class TraversalStats:
    """Counters collected while walking."""

    directories_scanned: int = 0
    directories_skipped: int = 0
    entries_ignored: int = 0
    depth_limited: int = 0


class TraversalEngine:
    """Walks a tree and yields entries matching the active patterns.

    A matched directory is a leaf: it is yielded and never descended into.
    Symbolic links are never followed. Ignore rules are only evaluated when
    the rule set is enabled; otherwise a minimal walk is used.
    """

    def __init__(
        self,
        registry: PatternRegistry,
        ignore_rules: IgnoreRuleSet | None = None,
        *,
        recursive: bool = True,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        """Initialize the engine.

        Args:
            registry: Patterns used for classification.
            ignore_rules: Exclusion rules, or None to disable them.
            recursive: Descend below the root's immediate entries.
            max_depth: Deepest directory level that is still listed.

        """
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self.registry = registry
        self.ignore_rules = ignore_rules
        self.recursive = recursive
        self.max_depth = max_depth
        self.stats = TraversalStats()

    @property
    def uses_ignore_rules(self) -> bool:
        return self.ignore_rules is not None and self.ignore_rules.enabled

    def walk(self, root: Path) -> Iterator[Candidate]:
        """Return a lazy iterator of candidates below ``root``.

        The root is checked eagerly so that an unusable root fails before
        any candidate is produced.

        Raises:
            RootAccessError: If the root cannot be listed.

        """
        root = check_root(root)

        if self.uses_ignore_rules:
            logger.debug("Walking %s with ignore rules", root)
            return self._walk(root, check_ignored=True)
        logger.debug("Walking %s without ignore rules", root)
        return self._walk(root, check_ignored=False)

    def _walk(self, root: Path, *, check_ignored: bool) -> Iterator[Candidate]:
        limit = self.max_depth if self.recursive else 1
        # (directory, depth of its entries, names from root)
        stack: list[tuple[Path, int, tuple[str, ...]]] = [(root, 1, ())]

        while stack:
            directory, depth, parents = stack.pop()
            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except PermissionError:
                logger.warning("Permission denied scanning: %s", directory)
                self.stats.directories_skipped += 1
                continue
            except OSError as e:
                logger.warning("Cannot scan %s: %s", directory, e)
                self.stats.directories_skipped += 1
                continue

            self.stats.directories_scanned += 1
            subdirs: list[tuple[Path, int, tuple[str, ...]]] = []

            for entry in entries:
                if entry.name in VCS_DIRS:
                    continue

                path = Path(entry.path)
                try:
                    is_symlink = entry.is_symlink()
                    # A link is classified by what it points at but never entered
                    is_dir = entry.is_dir()
                except OSError:
                    continue

                if check_ignored and self.ignore_rules is not None and self.ignore_rules.is_ignored(path, is_dir):
                    logger.debug("Ignored by rules: %s", path)
                    self.stats.entries_ignored += 1
                    continue

                pattern = self.registry.classify(entry.name, is_dir, parents)
                if pattern is not None:
                    yield Candidate(
                        path=path,
                        depth_from_root=depth,
                        pattern=pattern,
                        is_directory=is_dir and not is_symlink,
                        is_symlink=is_symlink,
                    )
                    continue

                if not is_dir or is_symlink:
                    continue
                if depth >= limit:
                    if self.recursive:
                        logger.debug("Max depth %d reached, not entering: %s", limit, path)
                        self.stats.depth_limited += 1
                    continue
                subdirs.append((path, depth + 1, (*parents, entry.name)))

            # Reversed so the stack pops in name order
            stack.extend(reversed(subdirs))
