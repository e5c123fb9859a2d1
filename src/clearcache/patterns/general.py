"""Tool-agnostic cache, temp, build and log locations."""

from __future__ import annotations

from .base import CachePattern, Ecosystem

ECOSYSTEM = Ecosystem.GENERAL


def _dirs(name: str, description: str, *patterns: str) -> tuple[CachePattern, ...]:
    return tuple(CachePattern(name, p, ECOSYSTEM, description=description) for p in patterns)


PATTERNS: tuple[CachePattern, ...] = (
    *_dirs("cache_dirs", "General cache directories", ".cache", "cache", "@cache"),
    *_dirs("temp_dirs", "Temporary directories", ".temp", "temp", "@temp", ".tmp", "tmp"),
    *_dirs("build_dirs", "Build output directories", "build", "dist", "out", ".build"),
    CachePattern("log_files", "*.log", ECOSYSTEM, directory=False, description="Log files"),
    *_dirs("log_dirs", "Log directories", "logs", ".log"),
    *_dirs("exporter_dirs", "Data exporter cache directories", ".exporter"),
)
