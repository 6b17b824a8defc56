"""
services/balance_calculator.py
------------------------------
Pure derivation of monetary aggregates from a set of ledger records.

Nothing here reads or writes the store; every function takes the records it
needs and returns a number. These functions are the source of truth for
balances: cached project fields are only ever checked or repaired against
them.
"""

import math
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, Optional, Sequence, TypeVar

from config import (
    ADVANCE_REPAYMENT_PROJECT_ID,
    ADVANCE_SOURCE,
    COUNT_ADVANCE_REPAYMENTS_AS_EXPENSES,
)
from models.cash_inflow import CashInflow
from models.expense import Expense, ExpenseItem
from models.project import ProjectTotals
from models.reimbursement import Reimbursement

Dated = TypeVar("Dated")


# ── Income ───────────────────────────────────────────────

def total_income(inflows: Iterable[CashInflow], project_id: Optional[str] = None) -> float:
    """Sum of inflow amounts, optionally restricted to one project."""
    return math.fsum(
        i.amount for i in inflows
        if project_id is None or i.project_id == project_id
    )


# ── Expenses ─────────────────────────────────────────────

def _items_by_expense(items: Iterable[ExpenseItem]) -> dict[str, list[ExpenseItem]]:
    grouped: dict[str, list[ExpenseItem]] = {}
    for item in items:
        grouped.setdefault(item.expense_id, []).append(item)
    return grouped


def expense_total(expense: Expense, items: Optional[Iterable[ExpenseItem]] = None) -> float:
    """
    Total of one expense: sum of quantity x unit price over its items.

    Args:
        expense: The expense.
        items: Its items; defaults to `expense.items`. An expense without
            items totals 0.
    """
    lines = expense.items if items is None else items
    return math.fsum(item.quantity * item.unit_price for item in lines)


def _expense_sum(
    expenses: Iterable[Expense],
    items: Optional[Iterable[ExpenseItem]],
    validated_only: bool,
    exclude_projects: Sequence[str],
) -> float:
    grouped = _items_by_expense(items) if items is not None else None
    totals = []
    for expense in expenses:
        if validated_only and not expense.is_validated():
            continue
        if expense.project_id in exclude_projects:
            continue
        lines = grouped.get(expense.id, []) if grouped is not None else expense.items
        totals.append(expense_total(expense, lines))
    return math.fsum(totals)


def total_expenses(
    expenses: Iterable[Expense],
    items: Optional[Iterable[ExpenseItem]] = None,
    exclude_projects: Sequence[str] = (),
) -> float:
    """
    Sum of every expense total, whatever its status.

    When `items` is given, expenses are joined to them by `expense_id`;
    otherwise each expense's own `items` list is used.
    """
    return _expense_sum(expenses, items, False, exclude_projects)


def validated_expense_total(
    expenses: Iterable[Expense],
    items: Optional[Iterable[ExpenseItem]] = None,
    exclude_projects: Sequence[str] = (),
) -> float:
    """Same as total_expenses, restricted to validated expenses."""
    return _expense_sum(expenses, items, True, exclude_projects)


# ── Balances ─────────────────────────────────────────────

def global_balance(inflows, expenses, items=None, exclude_projects: Sequence[str] = ()) -> float:
    """Income minus every expense (worst-case view)."""
    inflows = list(inflows)
    return total_income(inflows) - total_expenses(expenses, items, exclude_projects)


def effective_balance(inflows, expenses, items=None, exclude_projects: Sequence[str] = ()) -> float:
    """Income minus validated expenses only."""
    inflows = list(inflows)
    return total_income(inflows) - validated_expense_total(expenses, items, exclude_projects)


def project_totals(
    project_id: str,
    inflows: Iterable[CashInflow],
    expenses: Iterable[Expense],
    items: Optional[Iterable[ExpenseItem]] = None,
) -> ProjectTotals:
    """Income and expense totals of one project, recomputed from raw records."""
    return ProjectTotals(
        project_id=project_id,
        total_income=total_income(inflows, project_id),
        total_expenses=total_expenses(
            [e for e in expenses if e.project_id == project_id], items
        ),
    )


def project_balance(project_id, inflows, expenses, items=None) -> float:
    return project_totals(project_id, inflows, expenses, items).balance


# ── Advance account ──────────────────────────────────────

def advance_debt(
    inflows: Iterable[CashInflow],
    reimbursements: Iterable[Reimbursement],
    advance_source: str = ADVANCE_SOURCE,
) -> float:
    """
    Outstanding advance-account debt, never below zero.

    Only the reimbursement records are netted against advance inflows;
    the expenses synthesized for reimbursements are not read here.
    """
    drawn = math.fsum(i.amount for i in inflows if i.source == advance_source)
    repaid = math.fsum(r.amount for r in reimbursements)
    return max(0.0, drawn - repaid)


# ── Filters and item-level views ─────────────────────────

def within_period(
    records: Iterable[Dated], start: Optional[date] = None, end: Optional[date] = None
) -> list[Dated]:
    """
    Keep records dated within [start, end] (both inclusive, both optional).

    Records with a missing or unreadable date are always dropped here, even
    though unfiltered totals still count them.
    """
    kept = []
    for record in records:
        when = getattr(record, "date", None)
        if when is None:
            continue
        if start is not None and when < start:
            continue
        if end is not None and when > end:
            continue
        kept.append(record)
    return kept


@dataclass(frozen=True)
class RemainderSummary:
    """Item remainders split by direction."""
    to_recover: float
    to_pay: float

    @property
    def net(self) -> float:
        return self.to_recover - self.to_pay


def remainder_summary(items: Iterable[ExpenseItem]) -> RemainderSummary:
    remainders = [item.remainder for item in items]
    return RemainderSummary(
        to_recover=math.fsum(r for r in remainders if r > 0),
        to_pay=math.fsum(-r for r in remainders if r < 0),
    )


# ── Snapshot ─────────────────────────────────────────────

@dataclass(frozen=True)
class LedgerTotals:
    total_income: float
    total_expenses: float
    validated_expenses: float
    advance_debt: float

    @property
    def global_balance(self) -> float:
        return self.total_income - self.total_expenses

    @property
    def effective_balance(self) -> float:
        return self.total_income - self.validated_expenses


def _excluded_projects() -> tuple[str, ...]:
    if COUNT_ADVANCE_REPAYMENTS_AS_EXPENSES:
        return ()
    return (ADVANCE_REPAYMENT_PROJECT_ID,)


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    One read of the ledger collections, used for display-side totals.

    `items` is the separately read item collection, joined to expenses by
    `expense_id`. When it is None each expense's own `items` list is used.

    After a confirmed delete the caller can drop the record locally and
    recompute totals without re-reading the store.
    """
    inflows: tuple[CashInflow, ...] = ()
    expenses: tuple[Expense, ...] = ()
    items: Optional[tuple[ExpenseItem, ...]] = None
    reimbursements: tuple[Reimbursement, ...] = ()
    exclude_projects: tuple[str, ...] = field(default_factory=_excluded_projects)

    def totals(self) -> LedgerTotals:
        return LedgerTotals(
            total_income=total_income(self.inflows),
            total_expenses=total_expenses(self.expenses, self.items, self.exclude_projects),
            validated_expenses=validated_expense_total(
                self.expenses, self.items, self.exclude_projects
            ),
            advance_debt=advance_debt(self.inflows, self.reimbursements),
        )

    def project_totals(self, project_id: str) -> ProjectTotals:
        return project_totals(project_id, self.inflows, self.expenses, self.items)

    def all_items(self) -> tuple[ExpenseItem, ...]:
        if self.items is not None:
            return self.items
        return tuple(item for e in self.expenses for item in e.items)

    def project_ids(self) -> set[str]:
        ids = {i.project_id for i in self.inflows}
        ids.update(e.project_id for e in self.expenses)
        return ids

    def drop_inflow(self, inflow_id: str) -> "LedgerSnapshot":
        return replace(self, inflows=tuple(i for i in self.inflows if i.id != inflow_id))

    def drop_expense(self, expense_id: str) -> "LedgerSnapshot":
        return replace(
            self,
            expenses=tuple(e for e in self.expenses if e.id != expense_id),
            items=(
                None if self.items is None
                else tuple(i for i in self.items if i.expense_id != expense_id)
            ),
        )
