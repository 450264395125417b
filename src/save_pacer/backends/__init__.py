"""Persistence backends the rate limiter can save through."""

from .base import SaveBackend
from .database import DatabaseBackend
from .memory import InMemoryBackend

__all__ = [
    "DatabaseBackend",
    "InMemoryBackend",
    "SaveBackend",
]
