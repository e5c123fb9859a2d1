"""Tests for candidate discovery."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from clearcache.ignore import IGNORE_FILENAME, IgnoreRuleSet
from clearcache.models import Candidate
from clearcache.registry import PatternRegistry
from clearcache.traversal import RootAccessError, TraversalEngine


@pytest.fixture
def registry() -> PatternRegistry:
    """Create the built-in registry."""
    return PatternRegistry.builtin()


def _write(path: Path, content: str = "x") -> Path:
    """Create a file and its parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def _names(candidates: list[Candidate], root: Path) -> set[str]:
    return {c.path.relative_to(root).as_posix() for c in candidates}


class TestWalk:
    """Tests for the basic walk."""

    def test_finds_cache_directories(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """Matching directories are reported, ordinary ones are not."""
        _write(tmp_path / "__pycache__" / "test.pyc", "test")
        _write(tmp_path / ".exporter" / "data.json", "data")
        _write(tmp_path / "normal_dir" / "file.txt", "content")

        found = list(TraversalEngine(registry).walk(tmp_path))

        assert _names(found, tmp_path) == {"__pycache__", ".exporter"}

    def test_matched_directory_is_a_leaf(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """Nothing below a matched directory is reported."""
        _write(tmp_path / "app" / "build" / "__pycache__" / "x.pyc")
        _write(tmp_path / "app" / "build" / "cache" / "data.bin")
        _write(tmp_path / "app" / "node_modules" / "pkg" / "dist" / "index.js")

        found = list(TraversalEngine(registry).walk(tmp_path))
        paths = [c.path for c in found]

        assert _names(found, tmp_path) == {"app/build", "app/node_modules"}
        for path in paths:
            assert not any(other in path.parents for other in paths)

    def test_file_patterns(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """File patterns produce file candidates."""
        _write(tmp_path / "pkg" / "module.pyc")
        _write(tmp_path / "pkg" / "module.py")

        found = list(TraversalEngine(registry).walk(tmp_path))

        assert _names(found, tmp_path) == {"pkg/module.pyc"}
        assert found[0].is_directory is False

    def test_depth_from_root(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """Depth counts path components below the root."""
        _write(tmp_path / "__pycache__" / "a.pyc")
        _write(tmp_path / "a" / "b" / ".mypy_cache" / "x")

        depths = {c.path.name: c.depth_from_root for c in TraversalEngine(registry).walk(tmp_path)}

        assert depths == {"__pycache__": 1, ".mypy_cache": 3}

    def test_version_control_dirs_skipped(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """Version control metadata is never entered."""
        _write(tmp_path / ".git" / "logs" / "HEAD")
        _write(tmp_path / ".git" / "cache" / "x")

        assert list(TraversalEngine(registry).walk(tmp_path)) == []

    def test_walk_is_lazy(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """walk returns an iterator that yields on demand."""
        _write(tmp_path / "a" / "__pycache__" / "x.pyc")
        _write(tmp_path / "b" / "__pycache__" / "x.pyc")

        iterator = TraversalEngine(registry).walk(tmp_path)
        first = next(iterator)

        assert first.path == tmp_path / "a" / "__pycache__"
        assert next(iterator).path == tmp_path / "b" / "__pycache__"

    def test_candidate_measures_lazily(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """Size and file count reflect the whole subtree."""
        _write(tmp_path / "dist" / "a.js", "abc")
        _write(tmp_path / "dist" / "nested" / "b.js", "12345")

        (candidate,) = TraversalEngine(registry).walk(tmp_path)

        assert candidate.approximate_size_bytes == 8
        assert candidate.file_count == 2


class TestRecursionAndDepth:
    """Tests for recursive mode and the depth bound."""

    def test_non_recursive_only_root_entries(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """Non-recursive mode classifies only the root's entries."""
        _write(tmp_path / "__pycache__" / "a.pyc")
        _write(tmp_path / "sub" / "__pycache__" / "b.pyc")

        found = list(TraversalEngine(registry, recursive=False).walk(tmp_path))

        assert _names(found, tmp_path) == {"__pycache__"}

    def test_max_depth_stops_branch(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """Branches deeper than max_depth are not listed."""
        _write(tmp_path / "a" / "__pycache__" / "x.pyc")
        _write(tmp_path / "a" / "b" / "__pycache__" / "y.pyc")

        engine = TraversalEngine(registry, max_depth=2)
        found = list(engine.walk(tmp_path))

        assert _names(found, tmp_path) == {"a/__pycache__"}
        assert engine.stats.depth_limited == 1

    def test_invalid_max_depth(self, registry: PatternRegistry) -> None:
        """max_depth below one is rejected."""
        with pytest.raises(ValueError, match="max_depth"):
            TraversalEngine(registry, max_depth=0)


class TestIgnoreRules:
    """Tests for the ignore-aware strategy."""

    def test_ignored_directories_not_entered(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """Ignored directories and their contents are skipped."""
        (tmp_path / IGNORE_FILENAME).write_text("keep/\n")
        _write(tmp_path / "keep" / "__pycache__" / "a.pyc")
        _write(tmp_path / "other" / "__pycache__" / "b.pyc")

        engine = TraversalEngine(registry, IgnoreRuleSet(tmp_path))
        found = list(engine.walk(tmp_path))

        assert engine.uses_ignore_rules
        assert _names(found, tmp_path) == {"other/__pycache__"}
        assert engine.stats.entries_ignored == 1

    def test_ignored_cache_not_reported(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """A cache directory matched by an ignore rule is not a candidate."""
        (tmp_path / IGNORE_FILENAME).write_text("/dist/\n")
        _write(tmp_path / "dist" / "a.js")
        _write(tmp_path / "web" / "dist" / "b.js")

        found = list(TraversalEngine(registry, IgnoreRuleSet(tmp_path)).walk(tmp_path))

        assert _names(found, tmp_path) == {"web/dist"}

    def test_disabled_rules_use_minimal_walk(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """With ignore processing disabled, rule files have no effect."""
        (tmp_path / IGNORE_FILENAME).write_text("keep/\n")
        _write(tmp_path / "keep" / "__pycache__" / "a.pyc")

        engine = TraversalEngine(registry, IgnoreRuleSet(tmp_path, enabled=False))
        found = list(engine.walk(tmp_path))

        assert not engine.uses_ignore_rules
        assert _names(found, tmp_path) == {"keep/__pycache__"}


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
class TestSymlinks:
    """Tests for symbolic link handling."""

    def test_symlink_cache_reported_as_link(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """A link named like a cache is a candidate for the link itself."""
        outside = tmp_path / "outside"
        _write(outside / "precious.txt")
        root = tmp_path / "root"
        root.mkdir()
        (root / "__pycache__").symlink_to(outside, target_is_directory=True)

        (candidate,) = TraversalEngine(registry).walk(root)

        assert candidate.path == root / "__pycache__"
        assert candidate.is_symlink
        assert not candidate.is_directory

    def test_symlinked_directories_not_followed(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """Links to ordinary directories are never descended into."""
        outside = tmp_path / "outside"
        _write(outside / "__pycache__" / "x.pyc")
        root = tmp_path / "root"
        _write(root / "project" / "main.py")
        (root / "project" / "loop").symlink_to(root, target_is_directory=True)
        (root / "linked").symlink_to(outside, target_is_directory=True)

        assert list(TraversalEngine(registry).walk(root)) == []


class TestRootErrors:
    """Tests for unusable roots."""

    def test_missing_root(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """A missing root fails before iteration."""
        with pytest.raises(RootAccessError):
            TraversalEngine(registry).walk(tmp_path / "missing")

    def test_file_root(self, registry: PatternRegistry, tmp_path: Path) -> None:
        """A file cannot be a root."""
        with pytest.raises(RootAccessError, match="Not a directory"):
            TraversalEngine(registry).walk(_write(tmp_path / "file.txt"))
