"""Cargo build output."""

from __future__ import annotations

from .base import CachePattern, Ecosystem

ECOSYSTEM = Ecosystem.RUST

PATTERNS: tuple[CachePattern, ...] = (
    CachePattern("cargo_target", "target", ECOSYSTEM, is_library=True, description="Cargo build artifacts"),
    # Regenerated by cargo, but pins dependency versions, so only in library mode
    CachePattern(
        "cargo_lock",
        "Cargo.lock",
        ECOSYSTEM,
        directory=False,
        is_library=True,
        description="Cargo lock file",
    ),
)
