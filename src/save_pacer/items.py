"""Item contract and the record schema used by the CLI and database backend."""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol, Self, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


@runtime_checkable
class Item(Protocol):
    """Anything that has an identity and can be submitted for persistence."""

    @property
    def item_id(self) -> str: ...

    def to_payload(self) -> Mapping[str, Any]: ...


def is_item(value: object) -> bool:
    """Whether a value satisfies the Item protocol."""
    return isinstance(value, Item)


class SchemaBase(BaseModel):
    """Base class for pydantic schemas with ORM conversion support."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )

    @classmethod
    def from_orm(cls, obj: Any) -> Self:
        """
        Factory method to create a schema instance from a SQLAlchemy model.

        Args:
            obj: SQLAlchemy model instance

        Returns:
            Pydantic schema instance
        """
        return cls.model_validate(obj)

    @classmethod
    def from_orm_list(cls, objs: list[Any]) -> list[Self]:
        """Create schema instances from a list of SQLAlchemy models."""
        return [cls.from_orm(obj) for obj in objs]


class Record(SchemaBase):
    """A generic saveable record.

    Example JSON line:
        {"item_id": "order-1", "kind": "order", "data": {"total": 12.5}}
    """

    item_id: str = Field(min_length=1, max_length=200)
    kind: str = Field(default="record", min_length=1, max_length=100)
    data: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        """Serialisable payload handed to the backend."""
        return {"kind": self.kind, "data": self.data}


class RecordRead(Record):
    """A stored record as read back from the database."""

    save_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
