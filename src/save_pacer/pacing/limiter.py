"""Rate-limited save queue.

Items are buffered in FIFO order and released at most ``max_rate`` per
pacing interval. Each released slice is saved concurrently in sub-batches,
so earlier slices keep draining while later ticks fire. The first backend
failure halts the limiter for good: the timer is cancelled, queued items
are discarded and the error is reported through ``finalize``.

Usage:
    limiter = RateLimiter(30, DatabaseBackend())
    limiter.enqueue(record)
    limiter.enqueue_all(more_records)
    await limiter.finalize()
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Coroutine, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from save_pacer.backends.base import SaveBackend
from save_pacer.config import PacingConfig, get_settings
from save_pacer.exceptions import (
    AlreadyFinalizedError,
    BackendError,
    InvalidInputError,
    InvalidItemError,
)
from save_pacer.items import Item, is_item
from save_pacer.logging import bind_run

from .dispatcher import BatchDispatcher
from .progress import ProgressTracker


class PacerState(StrEnum):
    """State of the pacing loop."""

    IDLE = "idle"
    ARMED = "armed"
    DRAINING = "draining"


@dataclass
class LimiterState:
    """Mutable state of one limiter.

    Only the event loop thread touches these fields: from public calls,
    from the pacing timer callback, and from dispatch tasks through halt.
    """

    queue: list[Item] = field(default_factory=list)
    timer: asyncio.TimerHandle | None = None
    draining: bool = False
    halted: bool = False
    error: BackendError | None = None
    completion: asyncio.Future[None] | None = None
    in_flight: set[asyncio.Task[None]] = field(default_factory=set)
    ticks: int = 0


class RateLimiter:
    """Throttles saves to at most ``max_rate`` items per pacing interval."""

    def __init__(
        self,
        max_rate: int,
        backend: SaveBackend,
        *,
        config: PacingConfig | None = None,
        progress: ProgressTracker | None = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            max_rate: Items released per pacing interval
            backend: Persistence backend receiving sub-batches
            config: Optional pacing configuration (uses settings if not provided)
            progress: Optional ProgressTracker for progress reporting

        Raises:
            ValueError: If max_rate is not a positive integer
        """
        if isinstance(max_rate, bool) or not isinstance(max_rate, int) or max_rate < 1:
            raise ValueError(f"max_rate must be a positive integer, got {max_rate!r}")

        self._max_rate = max_rate
        self._config = config or get_settings().pacing
        self._dispatcher = BatchDispatcher(backend, self._config.max_batch_size)
        self._progress = progress
        self._state = LimiterState()

        # Prevent GC of completion watchers
        self._watchers: set[asyncio.Task[None]] = set()

        self.run_id = str(uuid.uuid4())
        self._logger = bind_run(self.run_id[:8])

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    @property
    def max_rate(self) -> int:
        """Items released per pacing interval."""
        return self._max_rate

    @property
    def interval(self) -> float:
        """Seconds between pacing ticks."""
        return self._config.interval_seconds

    @property
    def queue_size(self) -> int:
        """Number of items waiting to be released."""
        return len(self._state.queue)

    @property
    def is_halted(self) -> bool:
        """Whether a backend failure has permanently stopped the limiter."""
        return self._state.halted

    @property
    def error(self) -> BackendError | None:
        """The error that halted the limiter, if any."""
        return self._state.error

    @property
    def tick_count(self) -> int:
        """Number of pacing ticks that released a slice."""
        return self._state.ticks

    @property
    def pacer_state(self) -> PacerState:
        """Current state of the pacing loop."""
        if self._state.draining:
            return PacerState.DRAINING
        if self._state.timer is not None:
            return PacerState.ARMED
        return PacerState.IDLE

    @property
    def in_flight(self) -> int:
        """Number of slice dispatches still running."""
        return len(self._state.in_flight)

    # -------------------------------------------------------------------------
    # Enqueue
    # -------------------------------------------------------------------------
    def enqueue(self, item: Item) -> None:
        """Append one item to the queue.

        Raises:
            InvalidItemError: If item does not satisfy the Item protocol
        """
        if not is_item(item):
            raise InvalidItemError(item)
        if self._reject_after_halt(1):
            return

        self._state.queue.append(item)
        if self._progress:
            self._progress.add_total(1)

    def enqueue_all(self, items: Sequence[Item]) -> None:
        """Append a sequence of items, all or nothing.

        Raises:
            InvalidInputError: If items is not a sequence
            InvalidItemError: If any element does not satisfy the Item protocol
        """
        if isinstance(items, str | bytes) or not isinstance(items, Sequence):
            raise InvalidInputError(
                f"enqueue_all requires a sequence of items, got {type(items).__name__}"
            )

        for index, item in enumerate(items):
            if not is_item(item):
                self._logger.warning("Item at index {} failed validation: {!r}", index, item)
                raise InvalidItemError(item, index=index)

        if self._reject_after_halt(len(items)):
            return

        self._state.queue.extend(items)
        if self._progress:
            self._progress.add_total(len(items))

    def _reject_after_halt(self, count: int) -> bool:
        if not self._state.halted:
            return False
        self._logger.warning("Ignoring {} items enqueued after halt", count)
        return True

    # -------------------------------------------------------------------------
    # Finalize
    # -------------------------------------------------------------------------
    def finalize(self) -> asyncio.Future[None]:
        """Start draining and return a handle for the whole run.

        Must be called from a running event loop. Returns immediately; the
        returned future resolves when every queued item has been saved, or
        fails with the BackendError that halted the limiter.

        Returns:
            Future resolving to None on success

        Failures delivered through the future:
            BackendError: A sub-batch save failed (same error on every call)
            AlreadyFinalizedError: A previous completion request is still pending
        """
        loop = asyncio.get_running_loop()
        state = self._state
        self._logger.info("Finalizing, starting rate limited saves ({} queued)", len(state.queue))

        if state.error is not None:
            return _failed(loop, state.error)

        if state.completion is not None and not state.completion.done():
            return _failed(
                loop,
                AlreadyFinalizedError("finalize called while a completion request is pending"),
            )

        if state.queue:
            if self._progress:
                self._progress.start()
            state.completion = loop.create_future()
            self._start_timer()
            return state.completion

        # Queue already drained; wait for whatever is still being saved
        future: asyncio.Future[None] = loop.create_future()
        if not state.in_flight:
            future.set_result(None)
        else:
            self._watch(self._settle_after_dispatches(future))
        return future

    # -------------------------------------------------------------------------
    # Pacing Loop
    # -------------------------------------------------------------------------
    def _start_timer(self) -> None:
        """Schedule an immediate tick unless one is already armed."""
        state = self._state
        if state.timer is None and not state.halted:
            state.timer = asyncio.get_running_loop().call_later(0, self._tick)

    def _tick(self) -> None:
        """Release one slice and re-arm while work remains."""
        state = self._state
        state.timer = None

        if state.halted or not state.queue:
            return

        state.draining = True
        try:
            batch = state.queue[: self._max_rate]
            del state.queue[: self._max_rate]
            state.ticks += 1

            task = asyncio.create_task(self._dispatch(batch, state.ticks))
            state.in_flight.add(task)
            task.add_done_callback(state.in_flight.discard)

            self._logger.info("{} items left in the queue", len(state.queue))

            if state.queue:
                state.timer = asyncio.get_running_loop().call_later(self.interval, self._tick)
            elif state.completion is not None and not state.completion.done():
                self._watch(self._settle_after_dispatches(state.completion))
        finally:
            state.draining = False

    async def _dispatch(self, batch: list[Item], tick: int) -> None:
        """Save one slice; a failure halts the limiter."""
        self._logger.debug("Tick {}: dispatching {} items", tick, len(batch))
        try:
            result = await self._dispatcher.dispatch(batch)
        except BackendError as e:
            # The whole slice counts as lost, even if some sub-batches landed
            if self._progress:
                self._progress.increment_failed(len(batch))
            self.halt(e)
            return

        self._logger.debug(
            "Tick {}: saved {} items in {} requests",
            tick,
            result.item_count,
            result.batch_count,
        )
        if self._progress:
            self._progress.increment(result.item_count)

    async def _settle_after_dispatches(self, completion: asyncio.Future[None]) -> None:
        """Resolve a completion request once every running dispatch has finished.

        Items enqueued after the last tick emptied the queue keep the
        completion request open: the pacer is restarted and the next tick
        that drains the queue settles the request again.
        """
        state = self._state
        while state.in_flight:
            await asyncio.gather(*state.in_flight)

        if completion.done():
            return
        if state.error is not None:
            completion.set_exception(state.error)
            return
        if state.queue and completion is state.completion:
            self._logger.debug("{} items enqueued during drain, restarting pacer", len(state.queue))
            self._start_timer()
            return

        completion.set_result(None)
        if self._progress and state.completion is completion:
            self._progress.complete()

    def _watch(self, coro: Coroutine[object, object, None]) -> None:
        task = asyncio.create_task(coro)
        self._watchers.add(task)
        task.add_done_callback(self._watchers.discard)

    # -------------------------------------------------------------------------
    # Halt
    # -------------------------------------------------------------------------
    def halt(self, error: BackendError) -> None:
        """Permanently stop the limiter with an error.

        Cancels the pending tick, discards queued items and rejects the
        pending completion request. Later calls are ignored.

        Args:
            error: The failure that stopped the run
        """
        state = self._state
        if state.halted:
            return

        if state.timer is not None:
            state.timer.cancel()
            state.timer = None

        state.halted = True
        discarded = len(state.queue)
        state.queue.clear()
        state.error = error

        self._logger.error(
            "Save error, halting rate limiter ({} queued items discarded): {}",
            discarded,
            error,
        )

        if state.completion is not None and not state.completion.done():
            state.completion.set_exception(error)

        if self._progress:
            if discarded:
                self._progress.increment_failed(discarded)
            self._progress.fail(str(error))

    def get_stats(self) -> dict[str, int | bool | str]:
        """Get limiter statistics.

        Returns:
            Dict with queue_size, ticks, in_flight, halted and pacer state
        """
        return {
            "max_rate": self._max_rate,
            "queue_size": len(self._state.queue),
            "ticks": self._state.ticks,
            "in_flight": len(self._state.in_flight),
            "halted": self._state.halted,
            "pacer_state": self.pacer_state.value,
        }


def _failed(loop: asyncio.AbstractEventLoop, error: BaseException) -> asyncio.Future[None]:
    future: asyncio.Future[None] = loop.create_future()
    future.set_exception(error)
    return future
