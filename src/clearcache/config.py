"""Configuration management for clearcache."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .patterns import CachePattern
from .registry import parse_bool, parse_ecosystems, pattern_from_dict
from .safety import DEFAULT_MIN_DEPTH, DEPTH_ORIGINS
from .traversal import DEFAULT_MAX_DEPTH

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _positive_int(data: dict[str, Any], key: str) -> int:
    try:
        value = int(data[key])
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be an integer, got {data[key]!r}") from None
    if value < 1:
        raise ValueError(f"{key} must be at least 1, got {value}")
    return value


@dataclass
class CleanConfig:
    """Configuration for a cache cleaning run."""

    # Comma-separated ecosystem selection ("all" or names/aliases)
    types: str = "all"

    recursive: bool = False
    dry_run: bool = False
    include_libraries: bool = False

    # Worker count; None means one per CPU
    parallel: int | None = None

    # Ignore files
    respect_gitignore: bool = False
    no_ignore: bool = False

    # Traversal and safety limits
    max_depth: int = DEFAULT_MAX_DEPTH
    min_depth: int = DEFAULT_MIN_DEPTH
    depth_origin: str = "filesystem"

    # Pattern table overrides
    extra_patterns: list[CachePattern] = field(default_factory=list)
    disabled_patterns: list[str] = field(default_factory=list)

    # Additional safety inputs
    protected_paths: list[Path] = field(default_factory=list)
    sentinel_files: list[str] = field(default_factory=list)

    # Logging
    log_file: Path | None = None
    log_level: str = "INFO"

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        return Path.home() / ".config/clearcache/config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> CleanConfig:
        """Load configuration from a YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration; defaults when the file does not exist.

        Raises:
            ValueError: If the file is not valid YAML or holds invalid values.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Invalid configuration in {config_path}: expected a mapping")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> CleanConfig:
        """Create config from dictionary."""
        config = cls()

        if "types" in data:
            types = data["types"]
            config.types = ",".join(types) if isinstance(types, list) else str(types)

        # Flags
        config.recursive = parse_bool(data.get("recursive"), config.recursive)
        config.include_libraries = parse_bool(data.get("include_libraries"), config.include_libraries)
        config.respect_gitignore = parse_bool(data.get("respect_gitignore"), config.respect_gitignore)
        config.no_ignore = parse_bool(data.get("no_ignore"), config.no_ignore)

        # Limits
        if data.get("parallel") is not None:
            config.parallel = _positive_int(data, "parallel")
        if "max_depth" in data:
            config.max_depth = _positive_int(data, "max_depth")
        if "min_depth" in data:
            config.min_depth = _positive_int(data, "min_depth")
        if "depth_origin" in data:
            config.depth_origin = str(data["depth_origin"])

        # Patterns
        if "extra_patterns" in data:
            config.extra_patterns = [pattern_from_dict(p) for p in data["extra_patterns"] or []]
        if "disabled_patterns" in data:
            config.disabled_patterns = [str(name) for name in data["disabled_patterns"] or []]

        # Safety
        if "protected_paths" in data:
            config.protected_paths = [Path(os.path.expanduser(p)) for p in data["protected_paths"] or []]
        if "sentinel_files" in data:
            config.sentinel_files = [str(name) for name in data["sentinel_files"] or []]

        # Logging
        if "logging" in data:
            logging_cfg = data["logging"] or {}
            if logging_cfg.get("file"):
                config.log_file = Path(os.path.expanduser(logging_cfg["file"]))
            if "level" in logging_cfg:
                config.log_level = str(logging_cfg["level"])

        config.validate()
        return config

    def validate(self) -> None:
        """Check values that cannot be enforced by the loader alone.

        Raises:
            ValueError: On the first invalid value.

        """
        if self.parallel is not None and self.parallel < 1:
            raise ValueError(f"parallel must be at least 1, got {self.parallel}")
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")
        if self.min_depth < 0:
            raise ValueError(f"min_depth must not be negative, got {self.min_depth}")
        if self.depth_origin not in DEPTH_ORIGINS:
            raise ValueError(f"Invalid depth_origin: {self.depth_origin!r}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level!r}")
        if self.respect_gitignore and self.no_ignore:
            logging.getLogger(__name__).warning("no_ignore overrides respect_gitignore")
        parse_ecosystems(self.types)

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to a YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data: dict[str, Any] = {
            "types": self.types,
            "recursive": self.recursive,
            "include_libraries": self.include_libraries,
            "parallel": self.parallel,
            "respect_gitignore": self.respect_gitignore,
            "no_ignore": self.no_ignore,
            "max_depth": self.max_depth,
            "min_depth": self.min_depth,
            "depth_origin": self.depth_origin,
            "extra_patterns": [
                {
                    "name": p.name,
                    "pattern": p.pattern,
                    "ecosystem": p.ecosystem.value,
                    "directory": p.directory,
                    "library": p.is_library,
                    "description": p.description,
                }
                for p in self.extra_patterns
            ],
            "disabled_patterns": list(self.disabled_patterns),
            "protected_paths": [str(p) for p in self.protected_paths],
            "sentinel_files": list(self.sentinel_files),
            "logging": {
                "file": str(self.log_file) if self.log_file else None,
                "level": self.log_level,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
