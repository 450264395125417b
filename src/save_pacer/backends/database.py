"""Backend that upserts items into the SQLAlchemy database."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from save_pacer.db import RecordRepository, get_session_factory
from save_pacer.exceptions import BackendError
from save_pacer.items import Item
from save_pacer.logging import get_logger

logger = get_logger(__name__)


class DatabaseBackend:
    """Persist items as SavedRecord rows.

    Every save request uses its own session and commits once, so
    concurrent sub-batches never share a session. An item saved twice is
    updated in place.

    Args:
        session_factory: Optional session factory (defaults to the
            settings-configured engine)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._session_factory = session_factory

    async def save_batch(self, items: Sequence[Item]) -> None:
        factory = self._session_factory or get_session_factory()
        try:
            async with factory() as session:
                repo = RecordRepository(session)
                for item in items:
                    await repo.upsert(item.item_id, item.to_payload())
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("Database save of {} items failed: {}", len(items), e)
            raise BackendError(
                f"Database save of {len(items)} items failed: {e}",
                batch_size=len(items),
            ) from e

        logger.debug("Committed {} items", len(items))
