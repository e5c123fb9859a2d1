"""Hierarchical gitignore-compatible exclusion rules.

Each directory between the traversal root and an entry may contribute a
``.clearcacheignore`` file (and, on request, a ``.gitignore``). Rules are
evaluated root-most file first and in file order within a file; the last
matching rule decides. A path below an excluded directory stays excluded
even if a later rule negates it, because the directory itself would never
be entered.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

IGNORE_FILENAME = ".clearcacheignore"
GITIGNORE_FILENAME = ".gitignore"


class IgnorePatternError(ValueError):
    """An ignore pattern could not be compiled."""


@dataclass(frozen=True)
class IgnoreRule:
    """A single compiled line of an ignore file."""

    raw_pattern: str
    regex: re.Pattern[str]
    negated: bool
    directory_only: bool
    anchored: bool
    source_depth: int

    def matches(self, relative: str, is_directory: bool) -> bool:
        """Match a ``/``-separated path relative to the rule file's directory."""
        if self.directory_only and not is_directory:
            return False
        return self.regex.match(relative) is not None


def _translate(pattern: str) -> str:
    """Translate a gitignore glob into a regular expression body."""
    out: list[str] = []
    i, n = 0, len(pattern)

    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                end = i + 2
                at_segment_start = i == 0 or pattern[i - 1] == "/"
                if at_segment_start and end < n and pattern[end] == "/":
                    out.append("(?:.*/)?")
                    i = end + 1
                    continue
                if at_segment_start and end == n:
                    out.append(".*")
                    i = end
                    continue
                # Anywhere else ** behaves like *
                out.append("[^/]*")
                i = end
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            close = pattern.find("]", j)
            if close == -1:
                raise IgnorePatternError(f"Unterminated character class in pattern: {pattern!r}")
            body = pattern[i + 1 : close].replace("\\", "\\\\")
            if body[:1] == "!":
                body = "^" + body[1:]
            out.append(f"[{body}]")
            i = close + 1
            continue
        elif c == "\\" and i + 1 < n:
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        else:
            out.append(re.escape(c))
        i += 1

    return "".join(out)


def compile_rule(line: str, source_depth: int = 0) -> IgnoreRule | None:
    """Compile one ignore-file line.

    Args:
        line: Raw line, with or without its newline.
        source_depth: Depth of the directory holding the rule file.

    Returns:
        The compiled rule, or None for blank lines and comments.

    Raises:
        IgnorePatternError: If the pattern cannot be compiled.

    """
    line = line.rstrip("\r\n")
    if not line.strip() or line.startswith("#"):
        return None

    # Trailing spaces are dropped unless escaped
    stripped = line.rstrip(" ")
    if stripped.endswith("\\") and len(stripped) < len(line):
        stripped += " "
    text = stripped

    negated = False
    if text.startswith("!"):
        negated = True
        text = text[1:]
    elif text.startswith(("\\!", "\\#")):
        text = text[1:]

    directory_only = text.endswith("/")
    text = text.rstrip("/")
    anchored = "/" in text
    text = text.lstrip("/")
    if not text:
        return None

    body = _translate(text)
    expression = f"^{body}$" if anchored else f"^(?:.*/)?{body}$"
    try:
        regex = re.compile(expression)
    except re.error as e:
        raise IgnorePatternError(f"Invalid ignore pattern {line!r}: {e}") from e

    return IgnoreRule(
        raw_pattern=line,
        regex=regex,
        negated=negated,
        directory_only=directory_only,
        anchored=anchored,
        source_depth=source_depth,
    )


def parse_rules(text: str, source_depth: int = 0) -> tuple[IgnoreRule, ...]:
    """Compile every rule in an ignore file's text, in file order."""
    rules: list[IgnoreRule] = []
    for line in text.splitlines():
        rule = compile_rule(line, source_depth)
        if rule is not None:
            rules.append(rule)
    return tuple(rules)


@dataclass(frozen=True)
class RuleLevel:
    """Rules contributed by the ignore files of a single directory."""

    directory: Path
    depth: int
    rules: tuple[IgnoreRule, ...]


@dataclass(frozen=True)
class CompiledRules:
    """Rules in effect for one directory: every ancestor level, root first."""

    levels: tuple[RuleLevel, ...] = ()

    def __len__(self) -> int:
        return sum(len(level.rules) for level in self.levels)

    def match(self, path: Path, is_directory: bool) -> bool | None:
        """Evaluate the rules against a path.

        Returns:
            True if the last matching rule ignores the path, False if it
            re-includes it, None if no rule matches.

        """
        verdict: bool | None = None
        for level in self.levels:
            try:
                relative = path.relative_to(level.directory).as_posix()
            except ValueError:
                continue
            for rule in level.rules:
                if rule.matches(relative, is_directory):
                    verdict = not rule.negated
        return verdict


class IgnoreRuleSet:
    """Lazily-built, memoized ignore rules beneath a traversal root.

    Rule files are read the first time a directory's rules are needed.
    Each directory's ``CompiledRules`` shares its ancestors' ``RuleLevel``
    objects and is stored in a flat mapping keyed by directory path.
    """

    def __init__(
        self,
        root: Path,
        *,
        respect_gitignore: bool = False,
        enabled: bool = True,
    ) -> None:
        """Initialize the rule set.

        Args:
            root: Traversal root; rule files above it are not consulted.
            respect_gitignore: Also fold in ``.gitignore`` files.
            enabled: When False, nothing is ever ignored.

        """
        self.root = Path(os.path.abspath(root))
        self.respect_gitignore = respect_gitignore
        self.enabled = enabled
        self._effective: dict[Path, CompiledRules] = {}
        self._excluded: dict[Path, bool] = {self.root: False}
        self._lock = threading.RLock()

    @property
    def filenames(self) -> tuple[str, ...]:
        """Rule files read per directory, lowest priority first."""
        if self.respect_gitignore:
            return (GITIGNORE_FILENAME, IGNORE_FILENAME)
        return (IGNORE_FILENAME,)

    def _chain(self, directory: Path) -> list[Path]:
        """Directories from the root down to ``directory`` inclusive."""
        relative = directory.relative_to(self.root)
        chain = [self.root]
        current = self.root
        for part in relative.parts:
            current = current / part
            chain.append(current)
        return chain

    def _load_level(self, directory: Path, depth: int) -> RuleLevel | None:
        rules: list[IgnoreRule] = []

        for filename in self.filenames:
            rule_file = directory / filename
            try:
                text = rule_file.read_text(encoding="utf-8")
            except FileNotFoundError:
                continue
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Cannot read ignore file %s: %s", rule_file, e)
                continue
            try:
                rules.extend(parse_rules(text, depth))
            except IgnorePatternError as e:
                raise IgnorePatternError(f"{rule_file}: {e}") from e
            logger.debug("Loaded ignore rules from %s", rule_file)

        if not rules:
            return None
        return RuleLevel(directory=directory, depth=depth, rules=tuple(rules))

    def effective_ruleset(self, directory: Path) -> CompiledRules:
        """Return the rules in effect for entries inside ``directory``.

        Raises:
            ValueError: If the directory is outside the traversal root.
            IgnorePatternError: If a rule file contains an invalid pattern.

        """
        directory = Path(os.path.abspath(directory))

        with self._lock:
            cached = self._effective.get(directory)
            if cached is not None:
                return cached

            compiled = CompiledRules()
            for depth, current in enumerate(self._chain(directory)):
                known = self._effective.get(current)
                if known is None:
                    level = self._load_level(current, depth) if self.enabled else None
                    known = compiled if level is None else CompiledRules((*compiled.levels, level))
                    self._effective[current] = known
                compiled = known
            return compiled

    def _is_within_root(self, path: Path) -> bool:
        return path == self.root or self.root in path.parents

    def is_directory_excluded(self, directory: Path) -> bool:
        """Check whether a directory, or any of its ancestors, is ignored."""
        if not self.enabled:
            return False
        directory = Path(os.path.abspath(directory))
        if not self._is_within_root(directory):
            return False

        with self._lock:
            cached = self._excluded.get(directory)
            if cached is not None:
                return cached

            excluded = False
            for current in self._chain(directory)[1:]:
                known = self._excluded.get(current)
                if known is None:
                    known = excluded or self.effective_ruleset(current.parent).match(current, True) is True
                    self._excluded[current] = known
                excluded = known
            return excluded

    def is_ignored(self, path: Path, is_directory: bool) -> bool:
        """Check whether a path is excluded by the rules in effect for it.

        Paths outside the root are never ignored.
        """
        if not self.enabled:
            return False
        path = Path(os.path.abspath(path))
        if path == self.root or not self._is_within_root(path):
            return False

        if is_directory:
            return self.is_directory_excluded(path)
        if self.is_directory_excluded(path.parent):
            return True
        return self.effective_ruleset(path.parent).match(path, False) is True


DEFAULT_IGNORE_CONTENT = """\
# clearcache ignore patterns
# This file uses the same syntax as .gitignore
# Patterns here will be excluded from cache cleaning

# Version control directories
.git/
.svn/
.hg/
.bzr/

# IDE and editor directories
.vscode/
.idea/
*.swp
*.swo
*~

# OS generated files
.DS_Store
.DS_Store?
._*
.Spotlight-V100
.Trashes
ehthumbs.db
Thumbs.db

# Important project files
package.json
Cargo.toml
go.mod
requirements.txt
setup.py
pyproject.toml
Makefile
CMakeLists.txt

# Documentation
README*
LICENSE*
CHANGELOG*
CONTRIBUTING*
docs/
doc/

# Source code
src/
lib/
include/

# Configuration files
config/
conf/
settings/
"""


def default_ignore_content() -> str:
    """Return the stock ``.clearcacheignore`` text."""
    return DEFAULT_IGNORE_CONTENT


def write_default_ignore(directory: Path, *, force: bool = False) -> Path:
    """Write a default ignore file into ``directory``.

    Raises:
        FileExistsError: If the file exists and ``force`` is not set.

    """
    target = directory / IGNORE_FILENAME
    if target.exists() and not force:
        raise FileExistsError(f"{target} already exists")
    target.write_text(default_ignore_content(), encoding="utf-8")
    return target
