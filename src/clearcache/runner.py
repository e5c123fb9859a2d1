"""Orchestrates a single cache cleaning run."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

from .cleaner import Cleaner, ParallelDeleter
from .docker import DockerPruner
from .ignore import IgnoreRuleSet
from .models import FailureKind
from .patterns import Ecosystem
from .registry import PatternRegistry, parse_ecosystems
from .report import OutcomeAccumulator, RunOutcome
from .safety import SafetyValidator
from .traversal import TraversalEngine

if TYPE_CHECKING:
    from .config import CleanConfig
    from .models import ValidatedTarget

LOGGER_NAME = "clearcache"


def setup_logging(config: CleanConfig, *, verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """Set up the ``clearcache`` logger hierarchy.

    Args:
        config: Run configuration.
        verbose: Show debug messages on the console.
        console: Console for the Rich handler.

    Returns:
        Configured logger instance.

    Raises:
        ValueError: If the configured log level is unknown.

    """
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log_level: {config.log_level!r}")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else level)

    # Clear existing handlers to avoid duplicates across runs
    if logger.handlers:
        logger.handlers.clear()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else max(level, logging.WARNING))
    logger.addHandler(console_handler)

    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
        logger.addHandler(file_handler)

    return logger


class CacheCleanRun:
    """Builds the pipeline for one root directory and runs it.

    Registry and ignore rules are built once; the traversal stream flows
    through the validator into the worker pool, and every stage reports
    into one ``OutcomeAccumulator``.
    """

    def __init__(
        self,
        config: CleanConfig,
        root: Path,
        *,
        registry: PatternRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the run.

        Args:
            config: Run configuration.
            root: Directory to clean.
            registry: Pattern table; the built-in table when None.
            logger: Logger instance.

        Raises:
            ValueError: If the ecosystem selection is invalid.

        """
        self.config = config
        self.root = Path(os.path.abspath(root))
        self.logger = logger or logging.getLogger(LOGGER_NAME)

        self.ecosystems = parse_ecosystems(config.types)
        if registry is None:
            registry = PatternRegistry.builtin(config.extra_patterns, config.disabled_patterns)
        self.registry = registry.restricted_to(self.ecosystems)

        self.ignore_rules = IgnoreRuleSet(
            self.root,
            respect_gitignore=config.respect_gitignore,
            enabled=not config.no_ignore,
        )
        self.validator = SafetyValidator.standard(
            include_libraries=config.include_libraries,
            ignore_rules=self.ignore_rules,
            min_depth=config.min_depth,
            depth_origin=config.depth_origin,
            extra_protected=config.protected_paths,
            extra_sentinels=config.sentinel_files,
            allowed_patterns=self.registry.filter_by_mode(safe_only=not config.include_libraries),
        )
        self.engine = TraversalEngine(
            self.registry,
            self.ignore_rules,
            recursive=config.recursive,
            max_depth=config.max_depth,
        )
        self.outcome = OutcomeAccumulator(dry_run=config.dry_run)

    @property
    def prunes_docker(self) -> bool:
        """Docker is only pruned when named explicitly, never through ``all``."""
        names = {name.strip().lower() for name in self.config.types.split(",")}
        return "docker" in names and Ecosystem.DOCKER in self.ecosystems

    def _validated(self) -> Iterator[ValidatedTarget]:
        """Stream accepted targets, recording every candidate and rejection."""
        for candidate in self.engine.walk(self.root):
            self.outcome.record_candidate()
            target = self.validator.validate(candidate)
            if target.accepted:
                self.outcome.record_accepted()
                yield target
            else:
                self.logger.info(
                    "Skipping %s (%s)",
                    candidate.path,
                    target.rejection_reason.value if target.rejection_reason else "rejected",
                )
                self.outcome.record_rejection(target.rejection_reason)

    def run(self) -> RunOutcome:
        """Run the pipeline to completion.

        Returns:
            Finalized run outcome.

        Raises:
            RootAccessError: If the root cannot be traversed.
            IgnorePatternError: If an ignore file holds an invalid pattern.
            SafetyViolationError: If an accepted target breaks an invariant.

        """
        self.logger.info(
            "Cleaning %s (%s mode%s)",
            self.root,
            "library" if self.config.include_libraries else "safe",
            ", dry run" if self.config.dry_run else "",
        )

        # Root rule files are compiled before anything is removed
        self.ignore_rules.effective_ruleset(self.root)

        cleaner = Cleaner(self.logger, dry_run=self.config.dry_run)
        deleter = ParallelDeleter(
            cleaner,
            self.outcome,
            root=self.root,
            validator=self.validator,
            workers=self.config.parallel,
        )
        deleter.run(self._validated())

        if self.prunes_docker:
            result = DockerPruner(self.logger, dry_run=self.config.dry_run).prune()
            if not result.success:
                self.outcome.record_error(Path("docker"), FailureKind.IO, result.error or "Docker prune failed")

        stats = self.engine.stats
        self.logger.debug(
            "Traversal: scanned=%d, skipped=%d, ignored=%d, depth_limited=%d",
            stats.directories_scanned,
            stats.directories_skipped,
            stats.entries_ignored,
            stats.depth_limited,
        )
        self.outcome.record_traversal(
            directories_scanned=stats.directories_scanned,
            directories_skipped=stats.directories_skipped,
            entries_ignored=stats.entries_ignored,
            depth_limited=stats.depth_limited,
        )

        outcome = self.outcome.finalize()
        self.logger.info(
            "Run finished: candidates=%d, accepted=%d, rejected=%d, deleted=%d, failed=%d",
            outcome.candidates_seen,
            outcome.accepted,
            outcome.total_rejected,
            outcome.deleted,
            outcome.total_failed,
        )
        return outcome
