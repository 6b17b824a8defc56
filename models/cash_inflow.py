"""
models/cash_inflow.py
---------------------
Domain model for cash coming into the organization.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from config import ADVANCE_SOURCE, CASH_INFLOW_SOURCES


@dataclass
class CashInflow:
    """
    Represents a single cash inflow.

    Attributes:
        id: Store-assigned identifier (None for new records).
        project_id: Project the cash is allocated to.
        amount: Whole currency units, never negative.
        source: One of CASH_INFLOW_SOURCES.
        date: Calendar date of the inflow (None if the stored value is unreadable).
        description: Free-text note.
        created_by: Id of the user who recorded it.
        created_at: ISO timestamp of the first write.
    """
    project_id: str
    amount: float
    source: str
    date: Optional[date] = field(default_factory=date.today)
    description: str = ""
    created_by: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None

    def is_advance(self) -> bool:
        """Returns True if the inflow was drawn on the advance account."""
        return self.source == ADVANCE_SOURCE

    @property
    def source_label(self) -> str:
        return CASH_INFLOW_SOURCES.get(self.source, self.source)

    def __str__(self) -> str:
        return f"+{self.amount:.0f} | {self.source_label} | {self.date}"
