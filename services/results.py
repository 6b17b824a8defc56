"""
services/results.py
-------------------
Typed outcome of ledger mutations, and the step tracker used to tell a
clean failure from a partial one.
"""

from dataclasses import dataclass
from functools import wraps
from typing import Callable, Optional

from errors import LedgerError, PartialFailureError
from utils.logger import get_logger

logger = get_logger(__name__)

SKIPPED = "(skipped)"


@dataclass
class OperationResult:
    """
    What a coordinator entry point hands back to its caller.

    Attributes:
        success: True when every step completed.
        record_id: Id of the created or affected record, when there is one.
        error: The typed error when `success` is False.
        message: Short human-readable outcome.
    """
    success: bool
    record_id: Optional[str] = None
    error: Optional[LedgerError] = None
    message: str = ""

    @property
    def failed_step(self) -> Optional[str]:
        if isinstance(self.error, PartialFailureError):
            return self.error.step
        return None

    def __bool__(self) -> bool:
        return self.success


def returns_result(func: Callable):
    """
    Turn a ledger operation into one that never raises a LedgerError.

    The wrapped function returns either an OperationResult or a record id;
    a LedgerError becomes a failed OperationResult. Other exceptions are
    programming errors and propagate.
    """
    @wraps(func)
    def wrapper(*args, **kwargs) -> OperationResult:
        try:
            outcome = func(*args, **kwargs)
        except LedgerError as e:
            logger.warning(f"{func.__name__} failed: {type(e).__name__}: {e}")
            record_id = getattr(e, "record_id", None)
            return OperationResult(False, record_id=record_id, error=e, message=str(e))
        if isinstance(outcome, OperationResult):
            return outcome
        return OperationResult(True, record_id=outcome, message=f"{func.__name__} ok")

    return wrapper


class StepTracker:
    """
    Runs the writes of one logical operation in order.

    A failure before any write re-raises the original error unchanged;
    a failure after at least one write raises PartialFailureError naming
    the failed step and the steps already persisted. Nothing is rolled back.
    """

    def __init__(self, operation: str):
        self.operation = operation
        self.completed: list[str] = []
        self.record_id: Optional[str] = None

    def run(self, step: str, fn: Callable, *args, **kwargs):
        try:
            result = fn(*args, **kwargs)
        except LedgerError as e:
            if not self.wrote_anything:
                raise
            logger.error(
                f"{self.operation}: step '{step}' failed after {self.completed}: {e}"
            )
            raise PartialFailureError(step, self.completed, e, self.record_id) from e
        self.completed.append(step)
        return result

    @property
    def wrote_anything(self) -> bool:
        return any(not s.endswith(SKIPPED) for s in self.completed)

    def mark_skipped(self, step: str) -> None:
        """Record that the last completed step ran but changed nothing."""
        if self.completed and self.completed[-1] == step:
            self.completed[-1] = step + SKIPPED
