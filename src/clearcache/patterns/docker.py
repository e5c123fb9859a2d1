"""Docker caches live inside the container runtime, not the project tree.

They are pruned through the runtime itself (see ``clearcache.docker``).
"""

from __future__ import annotations

from .base import CachePattern, Ecosystem

ECOSYSTEM = Ecosystem.DOCKER

PATTERNS: tuple[CachePattern, ...] = ()
