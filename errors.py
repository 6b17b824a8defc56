"""
errors.py
---------
Error taxonomy of the ledger engine.

    ValidationError        bad input, rejected before any write
    NotFoundError          referenced record is missing, nothing written
    PartialFailureError    a later step failed after earlier writes landed
    StoreUnavailableError  the record store cannot be reached
    PermissionDeniedError  the acting user may not mutate the ledger
"""

from typing import Optional, Sequence


class LedgerError(Exception):
    """Base class for every error raised by the ledger engine."""


class ValidationError(LedgerError):
    """Malformed or out-of-range input."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(LedgerError):
    """A record referenced by id does not exist in its collection."""

    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection}/{record_id} not found")
        self.collection = collection
        self.record_id = record_id


class StoreUnavailableError(LedgerError):
    """The underlying persistence layer is unreachable."""


class PermissionDeniedError(LedgerError):
    """The acting user lacks the capability required by an operation."""


class PartialFailureError(LedgerError):
    """
    A multi-step operation stopped after some of its writes succeeded.

    Attributes:
        step: Name of the step that failed.
        completed: Names of the steps whose effects are persisted.
        cause: The original exception.
        record_id: Id of the primary record if it was written.
    """

    def __init__(
        self,
        step: str,
        completed: Sequence[str],
        cause: Exception,
        record_id: Optional[str] = None,
    ):
        super().__init__(
            f"step '{step}' failed after {list(completed)} completed: {cause}"
        )
        self.step = step
        self.completed = list(completed)
        self.cause = cause
        self.record_id = record_id
