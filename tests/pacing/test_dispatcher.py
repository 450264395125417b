"""Unit tests for BatchDispatcher and split_batches."""

import asyncio

import pytest

from save_pacer.backends import InMemoryBackend
from save_pacer.exceptions import BackendError
from save_pacer.pacing.dispatcher import BatchDispatcher, DispatchResult, split_batches
from tests.factories import make_numbered


class TestSplitBatches:
    """Tests for split_batches."""

    def test_empty(self) -> None:
        """No items, no batches."""
        assert split_batches([], 10) == []

    def test_exact_multiple(self) -> None:
        """Items split evenly."""
        assert split_batches([1, 2, 3, 4], 2) == [[1, 2], [3, 4]]

    def test_remainder_in_last_batch(self) -> None:
        """The last batch holds the remainder, order preserved."""
        assert split_batches([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_smaller_than_batch(self) -> None:
        """Fewer items than the limit produce one batch."""
        assert split_batches([1, 2], 10) == [[1, 2]]

    def test_rejects_zero_size(self) -> None:
        """Batch size must be positive."""
        with pytest.raises(ValueError):
            split_batches([1], 0)


class TestBatchDispatcherInit:
    """Tests for dispatcher construction."""

    def test_defaults(self) -> None:
        """Default sub-batch size is 10."""
        dispatcher = BatchDispatcher(InMemoryBackend())

        assert dispatcher.max_batch_size == 10

    def test_rejects_zero_size(self) -> None:
        """Sub-batch size must be positive."""
        with pytest.raises(ValueError):
            BatchDispatcher(InMemoryBackend(), max_batch_size=0)


class TestBatchDispatcherDispatch:
    """Tests for dispatch."""

    @pytest.mark.asyncio
    async def test_dispatch_empty(self) -> None:
        """An empty slice issues no requests."""
        backend = InMemoryBackend()
        result = await BatchDispatcher(backend).dispatch([])

        assert result == DispatchResult(item_count=0, batch_count=0)
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_dispatch_splits_into_requests(self) -> None:
        """A slice of 23 at size 10 becomes 10, 10 and 3 in order."""
        backend = InMemoryBackend()
        records = make_numbered(23)

        result = await BatchDispatcher(backend, max_batch_size=10).dispatch(records)

        assert result == DispatchResult(item_count=23, batch_count=3)
        assert [len(call) for call in backend.calls] == [10, 10, 3]
        assert backend.submitted_ids == [r.item_id for r in records]

    @pytest.mark.asyncio
    async def test_dispatch_is_concurrent(self) -> None:
        """All requests of a slice are in flight together."""
        backend = InMemoryBackend(delay=0.05)

        loop = asyncio.get_running_loop()
        started = loop.time()
        await BatchDispatcher(backend, max_batch_size=1).dispatch(make_numbered(4))

        assert backend.max_active == 4
        assert loop.time() - started < 0.15

    @pytest.mark.asyncio
    async def test_dispatch_raises_single_error(self) -> None:
        """Several failing requests still surface exactly one BackendError."""
        backend = InMemoryBackend(fail_with=lambda batch: BackendError(batch[0].item_id))

        with pytest.raises(BackendError) as exc_info:
            await BatchDispatcher(backend, max_batch_size=2).dispatch(make_numbered(6))

        assert str(exc_info.value) in {"item-0", "item-2", "item-4"}

    @pytest.mark.asyncio
    async def test_dispatch_fails_without_waiting_for_slow_requests(self) -> None:
        """The join fails as soon as one request fails."""

        def fail_fast(batch):
            return BackendError("fast failure") if batch[0].item_id == "item-1" else None

        class MixedBackend(InMemoryBackend):
            async def save_batch(self, items) -> None:
                if items[0].item_id == "item-0":
                    await asyncio.sleep(0.2)
                await super().save_batch(items)

        backend = MixedBackend(fail_with=fail_fast)
        loop = asyncio.get_running_loop()
        started = loop.time()

        with pytest.raises(BackendError, match="fast failure"):
            await BatchDispatcher(backend, max_batch_size=1).dispatch(make_numbered(2))

        assert loop.time() - started < 0.15
        await asyncio.sleep(0.25)
        assert "item-0" in backend.saved

    @pytest.mark.asyncio
    async def test_dispatch_wraps_other_exceptions(self) -> None:
        """Non-BackendError failures are wrapped with the original as cause."""
        backend = InMemoryBackend(fail_with=lambda batch: ValueError("bad payload"))

        with pytest.raises(BackendError, match="bad payload") as exc_info:
            await BatchDispatcher(backend).dispatch(make_numbered(3))

        assert isinstance(exc_info.value.__cause__, ValueError)
        assert exc_info.value.batch_size == 3
