"""Save pacer exceptions."""

from typing import Any


class SavePacerError(Exception):
    """Base exception for save pacer errors."""

    pass


class InvalidItemError(SavePacerError, TypeError):
    """Raised when an enqueued value does not satisfy the Item protocol."""

    def __init__(self, item: Any, index: int | None = None) -> None:
        if index is None:
            message = f"Cannot enqueue {item!r}: not a saveable item"
        else:
            message = f"Cannot enqueue element {index} ({item!r}): not a saveable item"
        super().__init__(message)
        self.item = item
        self.index = index


class InvalidInputError(SavePacerError, TypeError):
    """Raised when enqueue_all receives something other than a sequence."""

    pass


class BackendError(SavePacerError):
    """Raised when the persistence backend fails to save a sub-batch.

    A backend error is terminal for the limiter that observed it.
    """

    def __init__(self, message: str, batch_size: int | None = None) -> None:
        super().__init__(message)
        self.batch_size = batch_size


class AlreadyFinalizedError(SavePacerError):
    """Raised when finalize is called while a completion request is pending."""

    pass
