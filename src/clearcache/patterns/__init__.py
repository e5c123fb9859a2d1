"""Built-in cache pattern table with auto-discovery."""

from __future__ import annotations

import importlib
import logging
import pkgutil
import types
from collections.abc import Iterable

from .base import CachePattern, Ecosystem, MatchKind

__all__ = ["CachePattern", "Ecosystem", "MatchKind", "discover_patterns"]

logger = logging.getLogger(__name__)


def discover_patterns(disabled: Iterable[str] = ()) -> tuple[CachePattern, ...]:
    """Collect the pattern tables of every ecosystem submodule.

    Scans this package for modules exposing ``ECOSYSTEM`` and ``PATTERNS``,
    orders them by ecosystem priority and drops patterns whose name is
    listed in ``disabled``.
    """
    disabled = set(disabled)
    tables: list[tuple[Ecosystem, tuple[CachePattern, ...]]] = []
    package = importlib.import_module(__package__ or "clearcache.patterns")

    for _finder, module_name, _is_pkg in pkgutil.iter_modules(package.__path__):
        if module_name == "base":
            continue
        mod = importlib.import_module(f"{package.__name__}.{module_name}")
        table = _read_table(mod)
        if table is not None:
            tables.append(table)

    tables.sort(key=lambda item: item[0].priority)

    patterns: list[CachePattern] = []
    for _ecosystem, table in tables:
        for pattern in table:
            if pattern.name in disabled:
                logger.debug("Pattern disabled by config: %s (%s)", pattern.name, pattern.pattern)
                continue
            patterns.append(pattern)
    return tuple(patterns)


def _read_table(mod: types.ModuleType) -> tuple[Ecosystem, tuple[CachePattern, ...]] | None:
    """Return the (ecosystem, patterns) pair declared by a submodule."""
    ecosystem = getattr(mod, "ECOSYSTEM", None)
    patterns = getattr(mod, "PATTERNS", None)
    if not isinstance(ecosystem, Ecosystem) or patterns is None:
        logger.warning("Ignoring pattern module without a table: %s", mod.__name__)
        return None
    return ecosystem, tuple(patterns)
