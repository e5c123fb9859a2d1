"""Run-wide counters and the final, immutable run report."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from .models import FailureKind, SafetyFailureKind


@dataclass(frozen=True)
class CleanupResult:
    """Result of removing (or measuring, in dry-run) one target."""

    path: Path
    success: bool
    action: str  # "deleted", "would_delete", "error"
    bytes_freed: int = 0
    files_removed: int = 0
    failure: FailureKind | None = None
    error: str | None = None


@dataclass(frozen=True)
class TargetError:
    """A per-target failure as it appears in the report."""

    path: Path
    kind: FailureKind
    message: str


@dataclass(frozen=True)
class RunOutcome:
    """Summary of a completed run."""

    dry_run: bool
    candidates_seen: int = 0
    accepted: int = 0
    rejected: dict[SafetyFailureKind, int] = field(default_factory=dict)
    deleted: int = 0
    bytes_freed: int = 0
    files_removed: int = 0
    failed: dict[FailureKind, int] = field(default_factory=dict)
    errors: tuple[TargetError, ...] = ()
    results: tuple[CleanupResult, ...] = ()
    directories_scanned: int = 0
    directories_skipped: int = 0
    entries_ignored: int = 0
    depth_limited: int = 0

    @property
    def total_rejected(self) -> int:
        return sum(self.rejected.values())

    @property
    def total_failed(self) -> int:
        return sum(self.failed.values())

    @property
    def nothing_found(self) -> bool:
        return self.candidates_seen == 0


class OutcomeAccumulator:
    """Thread-safe collector filled by the validator and the worker pool."""

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run
        self._lock = threading.Lock()
        self._candidates = 0
        self._accepted = 0
        self._rejected: Counter[SafetyFailureKind] = Counter()
        self._deleted = 0
        self._bytes = 0
        self._files = 0
        self._failed: Counter[FailureKind] = Counter()
        self._errors: list[TargetError] = []
        self._results: list[CleanupResult] = []
        self._traversal: dict[str, int] = {}
        self._outcome: RunOutcome | None = None

    def _check_open(self) -> None:
        if self._outcome is not None:
            raise RuntimeError("Run outcome already finalized")

    def record_candidate(self) -> None:
        with self._lock:
            self._check_open()
            self._candidates += 1

    def record_accepted(self) -> None:
        with self._lock:
            self._check_open()
            self._accepted += 1

    def record_rejection(self, reason: SafetyFailureKind) -> None:
        with self._lock:
            self._check_open()
            self._rejected[reason] += 1

    def record_result(self, result: CleanupResult) -> None:
        """Fold one target's removal result into the totals."""
        with self._lock:
            self._check_open()
            self._results.append(result)
            if result.success:
                self._deleted += 1
                self._bytes += result.bytes_freed
                self._files += result.files_removed
                return
            kind = result.failure or FailureKind.IO
            self._failed[kind] += 1
            self._errors.append(TargetError(path=result.path, kind=kind, message=result.error or ""))

    def record_error(self, path: Path, kind: FailureKind, message: str) -> None:
        """Record a failure that is not tied to a traversal target."""
        with self._lock:
            self._check_open()
            self._failed[kind] += 1
            self._errors.append(TargetError(path=path, kind=kind, message=message))

    def record_traversal(
        self,
        *,
        directories_scanned: int,
        directories_skipped: int,
        entries_ignored: int,
        depth_limited: int,
    ) -> None:
        """Store the walker's counters for the report."""
        with self._lock:
            self._check_open()
            self._traversal = {
                "directories_scanned": directories_scanned,
                "directories_skipped": directories_skipped,
                "entries_ignored": entries_ignored,
                "depth_limited": depth_limited,
            }

    def finalize(self) -> RunOutcome:
        """Freeze the totals. Further recording raises ``RuntimeError``."""
        with self._lock:
            if self._outcome is None:
                self._outcome = RunOutcome(
                    dry_run=self.dry_run,
                    candidates_seen=self._candidates,
                    accepted=self._accepted,
                    rejected=dict(self._rejected),
                    deleted=self._deleted,
                    bytes_freed=self._bytes,
                    files_removed=self._files,
                    failed=dict(self._failed),
                    errors=tuple(self._errors),
                    results=tuple(self._results),
                    **self._traversal,
                )
            return self._outcome
