"""
models/reimbursement.py
-----------------------
Domain model for repayments of the advance account.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass
class Reimbursement:
    """A payment that reduces the advance-account debt."""
    amount: float
    description: str = ""
    date: Optional[date] = field(default_factory=date.today)
    created_by: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
