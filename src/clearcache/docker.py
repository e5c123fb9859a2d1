"""Prune Docker caches through the container runtime's own commands."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass

PRUNE_COMMANDS: tuple[tuple[str, ...], ...] = (
    ("docker", "system", "prune", "-af"),
    ("docker", "volume", "prune", "-f"),
)


@dataclass
class PruneResult:
    """Result of a Docker prune attempt."""

    success: bool
    commands_run: int = 0
    error: str | None = None


class DockerPruner:
    """Runs the Docker prune commands, or lists them in dry-run mode."""

    def __init__(self, logger: logging.Logger, *, dry_run: bool = False) -> None:
        self.logger = logger
        self.dry_run = dry_run

    def is_available(self) -> bool:
        """Check whether the docker CLI can be executed."""
        try:
            result = subprocess.run(
                ["docker", "--version"],
                capture_output=True,
                text=True,
                check=False,
            )
        except (subprocess.SubprocessError, OSError):
            return False
        return result.returncode == 0

    def prune(self) -> PruneResult:
        """Remove unused containers, images and volumes.

        Returns:
            PruneResult describing what ran.

        """
        if self.dry_run:
            for command in PRUNE_COMMANDS:
                self.logger.info("Would run: %s", " ".join(command))
            return PruneResult(success=True)

        if not self.is_available():
            return PruneResult(success=False, error="Docker is not available")

        commands_run = 0
        for command in PRUNE_COMMANDS:
            try:
                result = subprocess.run(
                    list(command),
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except (subprocess.SubprocessError, OSError) as e:
                return PruneResult(success=False, commands_run=commands_run, error=str(e))

            commands_run += 1
            if result.returncode != 0:
                error = f"{' '.join(command[:3])} failed: {result.stderr.strip()}"
                self.logger.error("%s", error)
                return PruneResult(success=False, commands_run=commands_run, error=error)

        self.logger.info("Docker caches pruned")
        return PruneResult(success=True, commands_run=commands_run)
