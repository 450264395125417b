"""SQLAlchemy ORM models for saved records."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class SavedRecord(Base):
    """An item persisted by the database backend."""

    __tablename__ = "saved_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    item_id: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    kind: Mapped[str] = mapped_column(String(100), default="record")
    data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    # 1 on create, incremented on every later save of the same item_id
    save_count: Mapped[int] = mapped_column(default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<SavedRecord(item_id={self.item_id!r}, save_count={self.save_count})>"
