"""Removal of validated targets on a fixed-size worker pool."""

from __future__ import annotations

import logging
import os
import shutil
import threading
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import TYPE_CHECKING

from .models import FailureKind, ValidatedTarget
from .report import CleanupResult
from .safety import SafetyViolationError

if TYPE_CHECKING:
    from .report import OutcomeAccumulator
    from .safety import SafetyValidator


def default_workers() -> int:
    """Number of available processing units."""
    return os.cpu_count() or 1


class Cleaner:
    """Removes a single target, or only measures it in dry-run mode."""

    def __init__(self, logger: logging.Logger, *, dry_run: bool = False) -> None:
        """Initialize the cleaner.

        Args:
            logger: Logger instance.
            dry_run: Measure targets without removing them.

        """
        self.logger = logger
        self.dry_run = dry_run

    def delete_target(self, target: ValidatedTarget) -> CleanupResult:
        """Remove a target recursively.

        Size and file count are measured before removal in both modes, so
        a dry run reports the same numbers a real run would.

        Args:
            target: Accepted target to remove.

        Returns:
            CleanupResult with operation details.

        """
        path = target.path
        candidate = target.candidate

        if not os.path.lexists(path):
            return CleanupResult(
                path=path,
                success=False,
                action="error",
                failure=FailureKind.VANISHED,
                error="Target no longer exists",
            )

        size = candidate.approximate_size_bytes
        files = candidate.file_count

        if self.dry_run:
            self.logger.info("Would delete: %s (%d files, %d bytes)", path, files, size)
            return CleanupResult(
                path=path,
                success=True,
                action="would_delete",
                bytes_freed=size,
                files_removed=files,
            )

        try:
            if candidate.is_directory and not candidate.is_symlink:
                shutil.rmtree(path)
            else:
                path.unlink()
        except FileNotFoundError as e:
            self.logger.warning("Target vanished before deletion %s: %s", path, e)
            return CleanupResult(
                path=path,
                success=False,
                action="error",
                failure=FailureKind.VANISHED,
                error=f"Vanished: {e}",
            )
        except PermissionError as e:
            self.logger.error("Permission denied deleting %s: %s", path, e)
            return CleanupResult(
                path=path,
                success=False,
                action="error",
                failure=FailureKind.PERMISSION,
                error=f"Permission denied: {e}",
            )
        except OSError as e:
            self.logger.error("Error deleting %s: %s", path, e)
            return CleanupResult(
                path=path,
                success=False,
                action="error",
                failure=FailureKind.IO,
                error=str(e),
            )

        self.logger.info("Deleted: %s (%d files, %d bytes)", path, files, size)
        return CleanupResult(
            path=path,
            success=True,
            action="deleted",
            bytes_freed=size,
            files_removed=files,
        )


class ParallelDeleter:
    """Feeds accepted targets to a worker pool and folds results into a run outcome.

    Targets are disjoint subtrees, so workers share nothing but the
    accumulator. At most ``2 * workers`` targets are in flight; the stream
    is consumed as the pool frees up.
    """

    def __init__(
        self,
        cleaner: Cleaner,
        outcome: OutcomeAccumulator,
        *,
        root: Path,
        validator: SafetyValidator | None = None,
        workers: int | None = None,
    ) -> None:
        workers = default_workers() if workers is None else workers
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.cleaner = cleaner
        self.outcome = outcome
        self.root = Path(os.path.abspath(root))
        self.validator = validator
        self.workers = workers
        self._claimed: set[Path] = set()
        self._claimed_ancestors: set[Path] = set()

    def _claim(self, target: ValidatedTarget) -> None:
        """Check a target before it is handed to a worker.

        Raises:
            SafetyViolationError: If the target was not accepted, breaks a
                validator invariant, or overlaps an earlier target.

        """
        if not target.accepted:
            raise SafetyViolationError(f"Rejected candidate reached the deletion stage: {target.path}")
        if self.validator is not None:
            self.validator.check_invariants(target, self.root)

        path = Path(os.path.abspath(target.path))
        if path in self._claimed or path in self._claimed_ancestors:
            raise SafetyViolationError(f"Target overlaps another target: {path}")
        if any(parent in self._claimed for parent in path.parents):
            raise SafetyViolationError(f"Target is nested inside another target: {path}")

        self._claimed.add(path)
        self._claimed_ancestors.update(path.parents)

    def _process(self, target: ValidatedTarget) -> None:
        self.outcome.record_result(self.cleaner.delete_target(target))

    def run(self, targets: Iterable[ValidatedTarget]) -> None:
        """Process every target in the stream.

        Raises:
            SafetyViolationError: Pending work is cancelled and the error
                propagates; results already recorded are kept.

        """
        slots = threading.BoundedSemaphore(self.workers * 2)
        futures: list[Future[None]] = []

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="clearcache") as pool:
            try:
                for target in targets:
                    self._claim(target)
                    slots.acquire()
                    future = pool.submit(self._process, target)
                    future.add_done_callback(lambda _f: slots.release())
                    futures.append(future)
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

            done, _pending = wait(futures)
            for future in done:
                # Surfaces unexpected worker exceptions
                future.result()
