"""
models/project.py
-----------------
Domain model for projects (allocation buckets).
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class Project:
    """
    A named bucket that cash inflows and expenses are allocated to.

    `balance`, `total_income` and `total_expenses` are a cache maintained at
    write time; the authoritative values are recomputed from the inflow and
    expense records (see LedgerCoordinator.recompute_project_aggregates).
    """
    name: str
    description: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    balance: float = 0.0
    total_income: float = 0.0
    total_expenses: float = 0.0
    updated_at: Optional[str] = None
    created_by: Optional[str] = None
    id: Optional[str] = None

    def cache_is_consistent(self) -> bool:
        return self.balance == self.total_income - self.total_expenses


@dataclass(frozen=True)
class ProjectTotals:
    """Totals of one project recomputed from raw records."""
    project_id: str
    total_income: float
    total_expenses: float

    @property
    def balance(self) -> float:
        return self.total_income - self.total_expenses
