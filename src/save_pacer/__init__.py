"""Rate-limited save queue for batch persistence backends."""

__version__ = "0.1.0"

from save_pacer.exceptions import (  # noqa: E402
    AlreadyFinalizedError,
    BackendError,
    InvalidInputError,
    InvalidItemError,
    SavePacerError,
)
from save_pacer.items import Item, Record  # noqa: E402
from save_pacer.pacing import RateLimiter  # noqa: E402

__all__ = [
    "AlreadyFinalizedError",
    "BackendError",
    "InvalidInputError",
    "InvalidItemError",
    "Item",
    "RateLimiter",
    "Record",
    "SavePacerError",
    "__version__",
]
