"""Go module and build caches."""

from __future__ import annotations

from .base import CachePattern, Ecosystem

ECOSYSTEM = Ecosystem.GO

PATTERNS: tuple[CachePattern, ...] = (
    CachePattern("go_mod_cache", "pkg/mod", ECOSYSTEM, is_library=True, description="Go module cache"),
    CachePattern("go_build_cache", "go-build", ECOSYSTEM, description="Go build cache"),
)
