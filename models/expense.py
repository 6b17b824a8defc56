"""
models/expense.py
-----------------
Domain models for expenses and their line items.

An expense never stores its own total: the total is always derived from
the items currently attached to it.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    VALIDATED = "validated"
    FLAGGED_AS_DEBT = "danger"


_VALIDATED_ALIASES = {"validated", "valid", "true"}
_FLAGGED_ALIASES = {"danger", "debt", "flagged", "flagged-as-debt"}


def normalize_status(raw) -> ExpenseStatus:
    """
    Convert a stored status value to an ExpenseStatus.

    Older documents carry free-form strings (or booleans); 'validated',
    'valid' and 'true' in any case mean validated. Anything unknown or
    absent is pending.
    """
    if isinstance(raw, ExpenseStatus):
        return raw
    if raw is None:
        return ExpenseStatus.PENDING
    value = str(raw).strip().lower()
    if value in _VALIDATED_ALIASES:
        return ExpenseStatus.VALIDATED
    if value in _FLAGGED_ALIASES:
        return ExpenseStatus.FLAGGED_AS_DEBT
    return ExpenseStatus.PENDING


@dataclass
class ExpenseItem:
    """
    One purchased article or service.

    Attributes:
        quantity: May be fractional.
        unit_price: Price of one unit.
        amount_given: Cash actually handed over for this line.
    """
    designation: str
    quantity: float
    unit_price: float
    amount_given: float = 0.0
    unit: str = ""
    reference: str = ""
    article_id: Optional[str] = None
    supplier_id: Optional[str] = None
    supplier: str = ""
    beneficiary: Optional[str] = None
    expense_id: Optional[str] = None
    created_by: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def total(self) -> float:
        return self.quantity * self.unit_price

    @property
    def remainder(self) -> float:
        """Positive: cash to recover from the supplier. Negative: still to pay."""
        return self.amount_given - self.total


@dataclass
class Expense:
    """
    A spending event grouping one or more ExpenseItems.

    Items live in their own collection and point back through `expense_id`;
    `items` is filled by the repository when the expense is loaded with them.
    """
    project_id: str
    date: Optional[date] = field(default_factory=date.today)
    description: str = ""
    status: ExpenseStatus = ExpenseStatus.PENDING
    reference: Optional[str] = None
    created_by: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
    items: list[ExpenseItem] = field(default_factory=list)

    @property
    def total(self) -> float:
        return math.fsum(item.total for item in self.items)

    def is_validated(self) -> bool:
        return self.status is ExpenseStatus.VALIDATED

    def __str__(self) -> str:
        ref = self.reference or (self.id or "")[:8].upper()
        return f"-{self.total:.0f} | {ref} | {self.status.value} | {self.date}"
