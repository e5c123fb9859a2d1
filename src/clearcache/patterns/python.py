"""Python bytecode and tool caches.

None of these require reinstalling anything after removal.
"""

from __future__ import annotations

from .base import CachePattern, Ecosystem

ECOSYSTEM = Ecosystem.PYTHON

PATTERNS: tuple[CachePattern, ...] = (
    CachePattern("python_cache", "__pycache__", ECOSYSTEM, description="Python bytecode cache"),
    CachePattern("python_bytecode", "*.pyc", ECOSYSTEM, directory=False, description="Python bytecode files"),
    CachePattern("python_optimized", "*.pyo", ECOSYSTEM, directory=False, description="Optimized bytecode files"),
    CachePattern("pytest_cache", ".pytest_cache", ECOSYSTEM, description="Pytest cache"),
    CachePattern("mypy_cache", ".mypy_cache", ECOSYSTEM, description="MyPy cache"),
    CachePattern("pip_cache", ".pip", ECOSYSTEM, description="Pip cache"),
)
