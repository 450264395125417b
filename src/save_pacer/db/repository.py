"""Repository for SavedRecord CRUD operations."""

from collections.abc import Mapping
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from save_pacer.db.models import SavedRecord


class RecordRepository:
    """Repository for SavedRecord entities.

    Usage:
        async with get_session() as session:
            repo = RecordRepository(session)
            await repo.upsert("order-1", {"kind": "order", "data": {}})
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a session (caller manages lifecycle)."""
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Access the underlying session."""
        return self._session

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_by_item_id(self, item_id: str) -> SavedRecord | None:
        """Get a record by its item id.

        Args:
            item_id: Identity of the saved item

        Returns:
            SavedRecord or None if not found
        """
        stmt = select(SavedRecord).where(SavedRecord.item_id == item_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all(self, limit: int | None = None) -> list[SavedRecord]:
        """Get records ordered by id, optionally limited."""
        stmt = select(SavedRecord).order_by(SavedRecord.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count(self) -> int:
        """Count stored records."""
        stmt = select(func.count()).select_from(SavedRecord)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    # -------------------------------------------------------------------------
    # Write Methods
    # -------------------------------------------------------------------------

    async def upsert(self, item_id: str, payload: Mapping[str, Any]) -> SavedRecord:
        """Create a record, or update it if the item id was saved before.

        Args:
            item_id: Identity of the item
            payload: Mapping with optional "kind" and "data" keys

        Returns:
            The created or updated record (flushed, not committed)
        """
        kind = str(payload.get("kind", "record"))
        data = dict(payload.get("data", {}))

        record = await self.get_by_item_id(item_id)
        if record is None:
            record = SavedRecord(item_id=item_id, kind=kind, data=data, save_count=1)
            self._session.add(record)
        else:
            record.kind = kind
            record.data = data
            record.save_count += 1

        await self._session.flush()
        return record
