"""Database layer for the database save backend."""

from .engine import (
    create_tables,
    dispose_engine,
    get_engine,
    get_session,
    get_session_factory,
    make_session_factory,
)
from .models import Base, SavedRecord
from .repository import RecordRepository

__all__ = [
    "Base",
    "RecordRepository",
    "SavedRecord",
    "create_tables",
    "dispose_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
    "make_session_factory",
]
