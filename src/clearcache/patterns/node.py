"""Node.js dependency stores and bundler caches."""

from __future__ import annotations

from .base import CachePattern, Ecosystem

ECOSYSTEM = Ecosystem.NODEJS

PATTERNS: tuple[CachePattern, ...] = (
    # Libraries (require reinstallation)
    CachePattern("node_modules", "node_modules", ECOSYSTEM, is_library=True, description="Node.js dependencies"),
    CachePattern("npm_cache", ".npm", ECOSYSTEM, description="NPM cache"),
    CachePattern("next_build", ".next", ECOSYSTEM, description="Next.js build cache"),
    CachePattern("nuxt_build", ".nuxt", ECOSYSTEM, description="Nuxt.js build cache"),
    CachePattern("nuxt_output", ".output", ECOSYSTEM, description="Nuxt.js build output"),
    CachePattern("yarn_cache", ".yarn/cache", ECOSYSTEM, description="Yarn cache"),
    CachePattern("pnpm_cache", ".pnpm-store", ECOSYSTEM, description="PNPM store"),
    CachePattern("turbo_cache", ".turbo", ECOSYSTEM, description="Turbo build cache"),
    CachePattern("parcel_cache", ".parcel-cache", ECOSYSTEM, description="Parcel build cache"),
)
