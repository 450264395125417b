"""Progress tracking for rate-limited save runs.

The limiter reports enqueued, saved and discarded item counts through a
ProgressTracker so callers (such as the CLI) can observe a run.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

from save_pacer.logging import get_logger

logger = get_logger(__name__)


class ProgressState(StrEnum):
    """State of a tracked run."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ProgressUpdate:
    """A progress update event."""

    total: int
    completed: int
    failed: int
    state: ProgressState
    error: str | None = None
    started_at: datetime | None = None
    elapsed_seconds: float = 0.0

    @property
    def remaining(self) -> int:
        """Number of items neither saved nor discarded."""
        return max(0, self.total - self.completed - self.failed)

    @property
    def progress_percent(self) -> float:
        """Completion percentage (0-100)."""
        if self.total == 0:
            return 100.0
        return ((self.completed + self.failed) / self.total) * 100


ProgressCallback = Callable[[ProgressUpdate], None]


class ProgressTracker:
    """Observable progress tracker for a save run.

    Usage:
        tracker = ProgressTracker(name="import")
        tracker.on_progress(lambda update: print(f"{update.progress_percent:.0f}%"))

        limiter = RateLimiter(30, backend, progress=tracker)
        limiter.enqueue_all(records)
        await limiter.finalize()
    """

    def __init__(self, total: int = 0, name: str = "save run") -> None:
        """Initialize the progress tracker.

        Args:
            total: Number of items known upfront
            name: Name of the run for logging
        """
        self._total = total
        self._name = name
        self._completed = 0
        self._failed = 0
        self._state = ProgressState.PENDING
        self._error: str | None = None
        self._started_at: datetime | None = None
        self._start_time: float | None = None
        self._callbacks: list[ProgressCallback] = []

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    @property
    def total(self) -> int:
        """Total number of items enqueued."""
        return self._total

    @property
    def completed(self) -> int:
        """Number of items saved."""
        return self._completed

    @property
    def failed(self) -> int:
        """Number of items discarded or lost to a failed save."""
        return self._failed

    @property
    def state(self) -> ProgressState:
        """Current state of the run."""
        return self._state

    @property
    def is_done(self) -> bool:
        """Whether the run has finished (completed or failed)."""
        return self._state in (ProgressState.COMPLETED, ProgressState.FAILED)

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time since start in seconds."""
        if self._start_time is None:
            return 0.0
        return time.monotonic() - self._start_time

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------
    def on_progress(self, callback: ProgressCallback) -> None:
        """Register a callback that receives a ProgressUpdate on every change."""
        self._callbacks.append(callback)

    def _notify(self) -> None:
        update = self.get_update()
        for callback in self._callbacks:
            try:
                callback(update)
            except Exception as e:
                logger.warning("Progress callback error: {}", e)

    # -------------------------------------------------------------------------
    # State Management
    # -------------------------------------------------------------------------
    def start(self) -> None:
        """Mark the run as started. Repeated calls keep the original start time."""
        if self._state == ProgressState.IN_PROGRESS:
            return
        self._state = ProgressState.IN_PROGRESS
        self._started_at = datetime.now(UTC)
        self._start_time = time.monotonic()
        logger.info("Started {} (total={})", self._name, self._total)
        self._notify()

    def complete(self) -> None:
        """Mark the run as successfully completed."""
        self._state = ProgressState.COMPLETED
        logger.info(
            "Completed {}: {} saved, {} discarded in {:.1f}s",
            self._name,
            self._completed,
            self._failed,
            self.elapsed_seconds,
        )
        self._notify()

    def fail(self, error: str) -> None:
        """Mark the run as failed.

        Args:
            error: Error message describing the failure
        """
        self._state = ProgressState.FAILED
        self._error = error
        logger.error("Failed {}: {}", self._name, error)
        self._notify()

    # -------------------------------------------------------------------------
    # Progress Updates
    # -------------------------------------------------------------------------
    def add_total(self, count: int) -> None:
        """Add newly enqueued items to the total."""
        self._total += count
        self._notify()

    def increment(self, count: int = 1) -> None:
        """Record saved items."""
        self._completed += count
        logger.debug(
            "{} progress: {}/{} ({:.1f}%)",
            self._name,
            self._completed + self._failed,
            self._total,
            self.get_update().progress_percent,
        )
        self._notify()

    def increment_failed(self, count: int = 1) -> None:
        """Record discarded items."""
        self._failed += count
        self._notify()

    def get_update(self) -> ProgressUpdate:
        """Get current progress as an update object."""
        return ProgressUpdate(
            total=self._total,
            completed=self._completed,
            failed=self._failed,
            state=self._state,
            error=self._error,
            started_at=self._started_at,
            elapsed_seconds=self.elapsed_seconds,
        )
