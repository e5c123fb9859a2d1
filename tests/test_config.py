"""Tests for configuration loading and saving."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from clearcache.config import CleanConfig, parse_bool
from clearcache.patterns import Ecosystem


class TestParseBool:
    """Tests for boolean parsing helper."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (True, True),
            (False, False),
            ("true", True),
            ("TRUE", True),
            ("yes", True),
            ("on", True),
            ("1", True),
            ("false", False),
            ("no", False),
            ("off", False),
            ("0", False),
            ("random", False),  # Non-standard strings are False
            ("", False),
        ],
    )
    def test_parse_bool_values(self, value: bool | str, expected: bool) -> None:
        """Test parsing various boolean representations."""
        assert parse_bool(value, False) == expected

    def test_parse_bool_none_uses_default(self) -> None:
        """Test that None returns the default value."""
        assert parse_bool(None, True) is True
        assert parse_bool(None, False) is False

    def test_parse_bool_integer(self) -> None:
        """Test parsing integer values."""
        assert parse_bool(1, False) is True
        assert parse_bool(0, True) is False


class TestCleanConfigDefaults:
    """Tests for default configuration values."""

    def test_default_values(self) -> None:
        """Test that defaults are the conservative ones."""
        config = CleanConfig()

        assert config.types == "all"
        assert config.recursive is False
        assert config.dry_run is False
        assert config.include_libraries is False
        assert config.parallel is None
        assert config.respect_gitignore is False
        assert config.no_ignore is False
        assert config.max_depth == 20
        assert config.min_depth == 3
        assert config.depth_origin == "filesystem"
        assert config.log_file is None
        assert config.log_level == "INFO"

    def test_defaults_validate(self) -> None:
        """Test that the defaults pass validation."""
        CleanConfig().validate()


class TestConfigLoad:
    """Tests for loading configuration from file."""

    def test_load_nonexistent_file(self, tmp_path: Path) -> None:
        """Test loading returns defaults when file doesn't exist."""
        config = CleanConfig.load(tmp_path / "nonexistent.yaml")

        assert config == CleanConfig()

    def test_load_empty_file(self, tmp_path: Path) -> None:
        """Test loading empty file returns defaults."""
        config_path = tmp_path / "empty.yaml"
        config_path.touch()

        assert CleanConfig.load(config_path).max_depth == 20

    def test_load_partial_config(self, tmp_path: Path) -> None:
        """Test loading partial config merges with defaults."""
        config = self._load_config_from_text(tmp_path, "partial.yaml", "recursive: yes\nparallel: 4\n")

        assert config.recursive is True
        assert config.parallel == 4
        assert config.include_libraries is False  # Default

    def test_load_full_config(self, tmp_path: Path) -> None:
        """Test loading full configuration."""
        config_path = tmp_path / "full.yaml"
        data = {
            "types": ["node", "python"],
            "recursive": True,
            "include_libraries": "true",
            "parallel": 8,
            "respect_gitignore": True,
            "max_depth": 6,
            "min_depth": 2,
            "depth_origin": "root",
            "extra_patterns": [
                {"name": "bazel_out", "pattern": "bazel-out", "ecosystem": "general"},
                {"pattern": "*.tsbuildinfo", "ecosystem": "node", "directory": False},
            ],
            "disabled_patterns": ["build_dirs"],
            "protected_paths": ["~/work/keep"],
            "sentinel_files": ["KEEP"],
            "logging": {
                "file": "~/logs/clearcache.log",
                "level": "DEBUG",
            },
        }
        with config_path.open("w") as f:
            yaml.dump(data, f)

        config = CleanConfig.load(config_path)

        assert config.types == "node,python"
        assert config.recursive is True
        assert config.include_libraries is True
        assert config.parallel == 8
        assert config.respect_gitignore is True
        assert config.max_depth == 6
        assert config.min_depth == 2
        assert config.depth_origin == "root"
        assert [p.name for p in config.extra_patterns] == ["bazel_out", "*.tsbuildinfo"]
        assert config.extra_patterns[1].ecosystem == Ecosystem.NODEJS
        assert config.extra_patterns[1].directory is False
        assert config.disabled_patterns == ["build_dirs"]
        assert config.protected_paths == [Path.home() / "work/keep"]
        assert config.sentinel_files == ["KEEP"]
        assert config.log_file == Path.home() / "logs/clearcache.log"
        assert config.log_level == "DEBUG"

    def test_load_invalid_yaml_raises(self, tmp_path: Path) -> None:
        """Test that malformed YAML raises ValueError with context."""
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("types: [\n  unclosed")

        with pytest.raises(ValueError, match="Invalid YAML"):
            CleanConfig.load(config_path)

    def test_load_non_mapping_raises(self, tmp_path: Path) -> None:
        """Test that a YAML list is not accepted as configuration."""
        with pytest.raises(ValueError, match="expected a mapping"):
            self._load_config_from_text(tmp_path, "list.yaml", "- a\n- b\n")

    @pytest.mark.parametrize(
        "content,message",
        [
            ("parallel: 0\n", "parallel must be at least 1"),
            ("parallel: many\n", "parallel must be an integer"),
            ("max_depth: 0\n", "max_depth must be at least 1"),
            ("depth_origin: cwd\n", "Invalid depth_origin"),
            ("types: java\n", "Unknown cache type"),
            ("logging:\n  level: LOUD\n", "Invalid log_level"),
            ("extra_patterns:\n  - name: nothing\n", "missing 'pattern'"),
        ],
    )
    def test_load_invalid_values_raise(self, tmp_path: Path, content: str, message: str) -> None:
        """Test that invalid values fail loading with a clear message."""
        with pytest.raises(ValueError, match=message):
            self._load_config_from_text(tmp_path, "bad.yaml", content)

    @staticmethod
    def _load_config_from_text(tmp_path: Path, filename: str, content: str) -> CleanConfig:
        """Create a config file with given content and load it."""
        config_path = tmp_path / filename
        config_path.write_text(content)
        return CleanConfig.load(config_path)


class TestConfigSave:
    """Tests for saving configuration to file."""

    def test_save_creates_directory(self, tmp_path: Path) -> None:
        """Test that save creates parent directories."""
        config_path = tmp_path / "subdir" / "config.yaml"

        CleanConfig().save(config_path)

        assert config_path.exists()

    def test_save_and_load_roundtrip(self, tmp_path: Path) -> None:
        """Test that saved config can be loaded identically."""
        config_path = tmp_path / "roundtrip.yaml"
        original = CleanConfig.load(tmp_path / "missing.yaml")
        original.types = "rust,go"
        original.recursive = True
        original.parallel = 3
        original.min_depth = 4
        original.disabled_patterns = ["log_files"]
        original.protected_paths = [tmp_path / "keep"]
        original.log_level = "DEBUG"

        original.save(config_path)
        loaded = CleanConfig.load(config_path)

        assert loaded == original

    def test_save_format(self, tmp_path: Path) -> None:
        """Test that saved YAML has expected structure."""
        config_path = tmp_path / "format.yaml"
        CleanConfig().save(config_path)

        with config_path.open() as f:
            data = yaml.safe_load(f)

        assert data["types"] == "all"
        assert "extra_patterns" in data
        assert data["logging"]["level"] == "INFO"


class TestConfigPath:
    """Tests for config path handling."""

    def test_get_config_path(self) -> None:
        """Test default config path location."""
        assert CleanConfig.get_config_path() == Path.home() / ".config/clearcache/config.yaml"

    def test_load_uses_default_path(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that load() uses the default path when no path is specified."""
        custom_default = tmp_path / "default_config.yaml"
        monkeypatch.setattr(CleanConfig, "get_config_path", classmethod(lambda cls: custom_default))
        custom_default.write_text("max_depth: 7\n")

        assert CleanConfig.load().max_depth == 7
