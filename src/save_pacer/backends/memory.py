"""In-memory backend that records every save request."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence

from save_pacer.items import Item
from save_pacer.logging import get_logger

logger = get_logger(__name__)

FailureHook = Callable[[Sequence[Item]], BaseException | None]


class InMemoryBackend:
    """Backend that keeps saved items in a dict keyed by item_id.

    Each call to save_batch is recorded in ``calls`` in the order the calls
    were issued, before any simulated latency.

    Args:
        delay: Seconds to sleep inside every save request
        fail_with: Optional hook returning an exception to raise for a batch
    """

    def __init__(
        self,
        delay: float = 0.0,
        fail_with: FailureHook | None = None,
    ) -> None:
        self._delay = delay
        self._fail_with = fail_with
        self.calls: list[list[Item]] = []
        self.saved: dict[str, Item] = {}
        self.active = 0
        self.max_active = 0

    async def save_batch(self, items: Sequence[Item]) -> None:
        batch = list(items)
        self.calls.append(batch)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            if self._fail_with is not None:
                error = self._fail_with(batch)
                if error is not None:
                    raise error
            for item in batch:
                self.saved[item.item_id] = item
        finally:
            self.active -= 1
        logger.debug("Saved {} items in memory", len(batch))

    @property
    def submitted_ids(self) -> list[str]:
        """Ids of every item passed to save_batch, in call order."""
        return [item.item_id for batch in self.calls for item in batch]
