"""
models/closing.py
-----------------
Domain model for period-end cash closings.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass
class Closing:
    """
    A cash count at the end of a period.

    Attributes:
        initial_balance: Final balance of the previous closing (or total
            cash inflow for the very first closing).
        final_balance: Cash counted at closing time.
        difference: final_balance - initial_balance.
    """
    initial_balance: float
    final_balance: float
    difference: float
    notes: str = ""
    date: Optional[date] = field(default_factory=date.today)
    created_by: Optional[str] = None
    id: Optional[str] = None
