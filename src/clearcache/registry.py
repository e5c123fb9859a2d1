"""Read-only table of cache patterns with classification lookups."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .patterns import CachePattern, Ecosystem, MatchKind, discover_patterns

logger = logging.getLogger(__name__)

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})

# --types aliases
ECOSYSTEM_ALIASES: dict[str, Ecosystem] = {
    "node": Ecosystem.NODEJS,
    "nodejs": Ecosystem.NODEJS,
    "npm": Ecosystem.NODEJS,
    "yarn": Ecosystem.NODEJS,
    "pnpm": Ecosystem.NODEJS,
    "rust": Ecosystem.RUST,
    "cargo": Ecosystem.RUST,
    "go": Ecosystem.GO,
    "golang": Ecosystem.GO,
    "python": Ecosystem.PYTHON,
    "py": Ecosystem.PYTHON,
    "pip": Ecosystem.PYTHON,
    "docker": Ecosystem.DOCKER,
    "general": Ecosystem.GENERAL,
    "cache": Ecosystem.GENERAL,
}


def parse_bool(value: Any, default: bool) -> bool:
    """Interpret a YAML value as a boolean.

    Args:
        value: Raw value (bool, int, string or None).
        default: Returned when value is None.

    Returns:
        Parsed boolean.

    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() in _TRUE_STRINGS


def parse_ecosystems(text: str | Iterable[str]) -> frozenset[Ecosystem]:
    """Parse a ``--types`` selection into ecosystems.

    Args:
        text: Comma-separated names (or an iterable of names). ``all``
            selects every ecosystem.

    Returns:
        Selected ecosystems.

    Raises:
        ValueError: If a name is not a known ecosystem or alias.

    """
    names = text.split(",") if isinstance(text, str) else list(text)
    selected: set[Ecosystem] = set()

    for raw in names:
        name = raw.strip().lower()
        if not name:
            continue
        if name == "all":
            return frozenset(Ecosystem)
        try:
            selected.add(ECOSYSTEM_ALIASES[name])
        except KeyError:
            raise ValueError(f"Unknown cache type: {raw.strip()}") from None

    if not selected:
        raise ValueError("No cache types selected")
    return frozenset(selected)


def pattern_from_dict(data: Mapping[str, Any]) -> CachePattern:
    """Build a user-supplied pattern from a configuration mapping."""
    if "pattern" not in data:
        raise ValueError(f"Extra pattern is missing 'pattern': {dict(data)!r}")

    pattern = str(data["pattern"]).strip().strip("/")
    if not pattern:
        raise ValueError("Extra pattern must not be empty")

    ecosystem_name = str(data.get("ecosystem", "general"))
    try:
        ecosystem = ECOSYSTEM_ALIASES[ecosystem_name.lower()]
    except KeyError:
        raise ValueError(f"Unknown ecosystem for pattern {pattern!r}: {ecosystem_name}") from None

    return CachePattern(
        name=str(data.get("name", pattern)),
        pattern=pattern,
        ecosystem=ecosystem,
        directory=parse_bool(data.get("directory"), True),
        is_library=parse_bool(data.get("library"), False),
        description=str(data.get("description", "User-defined pattern")),
    )


class PatternRegistry:
    """Immutable, ordered set of cache patterns.

    Patterns are kept in ecosystem priority order. Classification tries exact
    names first, then extension and glob-suffix patterns; within each group
    the first pattern in priority order wins.
    """

    def __init__(self, patterns: Iterable[CachePattern]) -> None:
        ordered = sorted(patterns, key=lambda p: p.ecosystem.priority)
        self._patterns: tuple[CachePattern, ...] = tuple(ordered)

        # Exact single-segment names resolve through a table lookup
        self._exact: dict[tuple[str, bool], CachePattern] = {}
        nested: list[CachePattern] = []
        wildcard: list[CachePattern] = []
        for pattern in self._patterns:
            if pattern.match_kind is not MatchKind.EXACT:
                wildcard.append(pattern)
            elif len(pattern.segments) > 1:
                nested.append(pattern)
            else:
                self._exact.setdefault((pattern.pattern, pattern.directory), pattern)
        self._nested: tuple[CachePattern, ...] = tuple(nested)
        self._wildcard: tuple[CachePattern, ...] = tuple(wildcard)

    @classmethod
    def builtin(
        cls,
        extra: Iterable[CachePattern] = (),
        disabled: Iterable[str] = (),
    ) -> PatternRegistry:
        """Build the registry from the built-in table plus user overrides."""
        return cls((*discover_patterns(disabled), *extra))

    @property
    def patterns(self) -> tuple[CachePattern, ...]:
        return self._patterns

    def __len__(self) -> int:
        return len(self._patterns)

    def __iter__(self):
        return iter(self._patterns)

    def __contains__(self, pattern: object) -> bool:
        return pattern in self._patterns

    def classify(
        self,
        entry_name: str,
        is_directory: bool,
        parents: tuple[str, ...] = (),
    ) -> CachePattern | None:
        """Find the pattern matching a filesystem entry.

        Args:
            entry_name: Final path component.
            is_directory: Whether the entry is a directory.
            parents: Enclosing directory names, nearest last.

        Returns:
            The first matching pattern, or None.

        """
        # Multi-segment names are more specific than single names
        for pattern in self._nested:
            if pattern.matches(entry_name, is_directory, parents):
                return pattern

        exact = self._exact.get((entry_name, is_directory))
        if exact is not None:
            return exact

        for pattern in self._wildcard:
            if pattern.matches(entry_name, is_directory, parents):
                return pattern
        return None

    def filter_by_mode(self, *, safe_only: bool) -> frozenset[CachePattern]:
        """Return the patterns active in safe mode or library mode."""
        if safe_only:
            return frozenset(p for p in self._patterns if not p.is_library)
        return frozenset(self._patterns)

    def filter_by_selected_ecosystems(self, selection: Iterable[Ecosystem]) -> frozenset[CachePattern]:
        """Return the patterns belonging to the selected ecosystems."""
        selected = set(selection)
        return frozenset(p for p in self._patterns if p.ecosystem in selected)

    def restricted_to(self, selection: Iterable[Ecosystem]) -> PatternRegistry:
        """Return a new registry holding only the selected ecosystems."""
        keep = self.filter_by_selected_ecosystems(selection)
        return PatternRegistry(p for p in self._patterns if p in keep)
