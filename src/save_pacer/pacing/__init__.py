"""Rate-limited save queue.

Components:
- RateLimiter: FIFO queue, pacing timer, halt and completion protocol
- BatchDispatcher: Splits slices into sub-batches saved concurrently
- ProgressTracker: Observable progress reporting
"""

from .dispatcher import BatchDispatcher, DispatchResult, split_batches
from .limiter import LimiterState, PacerState, RateLimiter
from .progress import ProgressCallback, ProgressState, ProgressTracker, ProgressUpdate

__all__ = [
    # Dispatch
    "BatchDispatcher",
    "DispatchResult",
    "split_batches",
    # Limiter
    "LimiterState",
    "PacerState",
    "RateLimiter",
    # Progress tracking
    "ProgressCallback",
    "ProgressState",
    "ProgressTracker",
    "ProgressUpdate",
]
