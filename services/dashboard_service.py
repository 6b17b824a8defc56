"""
services/dashboard_service.py
-----------------------------
Read side for the display layer: one snapshot of the ledger, the global
totals derived from it, and per-project figures.

Loading the dashboard reconciles the cached project aggregates, so a
stale cache is repaired every time the figures are looked at.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from models.project import Project, ProjectTotals
from repositories.cash_inflow_repo import CashInflowRepository
from repositories.expense_repo import ExpenseRepository
from repositories.project_repo import ProjectRepository
from repositories.record_store import RecordStore
from repositories.reimbursement_repo import ReimbursementRepository
from services.balance_calculator import (
    LedgerSnapshot,
    LedgerTotals,
    RemainderSummary,
    remainder_summary,
    within_period,
)
from services.ledger_coordinator import LedgerCoordinator
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Dashboard:
    totals: LedgerTotals
    projects: list[Project] = field(default_factory=list)
    project_totals: dict[str, ProjectTotals] = field(default_factory=dict)
    remainders: Optional[RemainderSummary] = None


class DashboardService:
    """Builds the figures shown on the dashboard and project pages."""

    def __init__(self, store: RecordStore, coordinator: Optional[LedgerCoordinator] = None):
        self.inflows = CashInflowRepository(store)
        self.expenses = ExpenseRepository(store)
        self.projects = ProjectRepository(store)
        self.reimbursements = ReimbursementRepository(store)
        self.coordinator = coordinator or LedgerCoordinator(store)

    def load_snapshot(self) -> LedgerSnapshot:
        """
        Read every ledger collection once.

        The reads are not isolated from concurrent writes; a snapshot taken
        mid-mutation can be off until the next load.
        """
        expenses = self.expenses.list()
        items = self.expenses.list_items()
        by_expense = ExpenseRepository.group_items(items)
        for expense in expenses:
            expense.items = by_expense.get(expense.id, [])
        return LedgerSnapshot(
            inflows=tuple(self.inflows.list()),
            expenses=tuple(expenses),
            items=tuple(items),
            reimbursements=tuple(self.reimbursements.list()),
        )

    def load(self, reconcile: bool = True) -> Dashboard:
        """
        Global totals plus per-project figures.

        Args:
            reconcile: Rewrite cached project aggregates that disagree with
                the recomputed values before returning them.
        """
        snapshot = self.load_snapshot()
        if reconcile:
            project_totals = self.coordinator.reconcile_all_projects(snapshot)
        else:
            project_totals = {
                p.id: snapshot.project_totals(p.id) for p in self.projects.list()
            }
        totals = snapshot.totals()
        logger.info(
            f"Dashboard: income {totals.total_income:.0f}, expenses {totals.total_expenses:.0f}, "
            f"balance {totals.global_balance:.0f}, advance debt {totals.advance_debt:.0f}"
        )
        return Dashboard(
            totals=totals,
            projects=self.projects.list(),
            project_totals=project_totals,
            remainders=remainder_summary(snapshot.all_items()),
        )

    def period_totals(self, start: Optional[date] = None, end: Optional[date] = None) -> LedgerTotals:
        """Totals of the records dated within [start, end]; undated records are left out."""
        snapshot = self.load_snapshot()
        expenses = within_period(snapshot.expenses, start, end)
        kept = {e.id for e in expenses}
        return LedgerSnapshot(
            inflows=tuple(within_period(snapshot.inflows, start, end)),
            expenses=tuple(expenses),
            items=tuple(i for i in snapshot.all_items() if i.expense_id in kept),
            reimbursements=tuple(within_period(snapshot.reimbursements, start, end)),
            exclude_projects=snapshot.exclude_projects,
        ).totals()
