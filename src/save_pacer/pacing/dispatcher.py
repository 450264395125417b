"""Batch dispatcher for concurrent sub-batch saves.

A slice released by the pacer is split into sub-batches no larger than
the configured maximum, every sub-batch is sent to the backend as its own
request, and the requests are joined into a single outcome.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

from save_pacer.backends.base import SaveBackend
from save_pacer.exceptions import BackendError
from save_pacer.items import Item
from save_pacer.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class DispatchResult:
    """Result of a successful dispatch."""

    item_count: int
    batch_count: int


def split_batches(items: Sequence[T], max_batch_size: int) -> list[list[T]]:
    """Split items into consecutive batches of at most max_batch_size.

    Args:
        items: Items in dispatch order
        max_batch_size: Upper bound for every batch

    Returns:
        Batches preserving the original order
    """
    if max_batch_size < 1:
        raise ValueError("max_batch_size must be at least 1")
    return [
        list(items[start : start + max_batch_size])
        for start in range(0, len(items), max_batch_size)
    ]


class BatchDispatcher:
    """Fans a slice of items out to concurrent backend save requests.

    Usage:
        dispatcher = BatchDispatcher(backend, max_batch_size=10)
        result = await dispatcher.dispatch(items)  # raises BackendError
    """

    def __init__(self, backend: SaveBackend, max_batch_size: int = 10) -> None:
        """Initialize the dispatcher.

        Args:
            backend: Persistence backend receiving sub-batches
            max_batch_size: Maximum items per save request
        """
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        self._backend = backend
        self._max_batch_size = max_batch_size

    @property
    def max_batch_size(self) -> int:
        """Maximum items per save request."""
        return self._max_batch_size

    async def dispatch(self, items: Sequence[Item]) -> DispatchResult:
        """Save every item, one concurrent request per sub-batch.

        Returns as soon as every request has succeeded, or raises the first
        failure observed. Requests still running when a failure surfaces are
        left to finish on their own; their outcomes are only logged.

        Args:
            items: Slice to save, in dispatch order

        Returns:
            DispatchResult with item and request counts

        Raises:
            BackendError: If any sub-batch save fails
        """
        batches = split_batches(items, self._max_batch_size)
        if not batches:
            return DispatchResult(item_count=0, batch_count=0)

        # Tasks are created in order so requests are issued in slice order
        tasks = [asyncio.create_task(self._save(batch)) for batch in batches]
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)

        error: BaseException | None = None
        for task in tasks:
            if task not in done:
                continue
            exc = task.exception()
            if exc is not None and error is None:
                error = exc

        if error is not None:
            for task in pending:
                task.add_done_callback(_log_late_outcome)
            raise error

        return DispatchResult(item_count=len(items), batch_count=len(batches))

    async def _save(self, batch: list[Item]) -> None:
        """Issue one save request, normalising failures to BackendError."""
        try:
            await self._backend.save_batch(batch)
        except BackendError:
            raise
        except Exception as e:
            raise BackendError(
                f"Save of {len(batch)} items failed: {e}",
                batch_size=len(batch),
            ) from e


def _log_late_outcome(task: asyncio.Task[None]) -> None:
    """Retrieve the outcome of a request that finished after the join failed."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning("Additional sub-batch failed after dispatch halted: {}", error)
