"""Persistence backend protocol."""

from collections.abc import Sequence
from typing import Protocol

from save_pacer.items import Item


class SaveBackend(Protocol):
    """Capability to persist a collection of items.

    Implementations must tolerate concurrent calls; no atomicity across
    separate calls is assumed. A call signals failure by raising.
    """

    async def save_batch(self, items: Sequence[Item]) -> None: ...
