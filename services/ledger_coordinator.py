"""
services/ledger_coordinator.py
------------------------------
Create/update/delete protocols for cash inflows and expenses.

Each public operation is one business action executed as several dependent
writes, in order, with no multi-document transaction:

    1. validate input and load what is needed (no write yet)
    2. adjust the cached aggregates of the affected project(s)
    3. write the primary record(s)
    4. refresh dependent values (advance-account debt)

A failure before the first write leaves the ledger untouched. A failure
after it is reported as a PartialFailureError naming the failed step;
nothing is rolled back, since project aggregates can always be rebuilt
with `recompute_project_aggregates`.
"""

from dataclasses import replace
from datetime import date
from typing import Iterable, Optional, Union

from config import EXPENSE_REFERENCE_PREFIX
from errors import NotFoundError, ValidationError
from models.activity import ActivityType, EntityType
from models.cash_inflow import CashInflow
from models.expense import Expense, ExpenseItem, ExpenseStatus
from models.project import ProjectTotals
from repositories.cash_inflow_repo import CashInflowRepository
from repositories.expense_repo import ExpenseRepository
from repositories.project_repo import ProjectRepository
from repositories.record_store import RecordStore
from security.auth import ActorContext, authorized_only
from services.activity_service import ActivityService
from services.advance_debt import AdvanceDebtTracker
from services.balance_calculator import LedgerSnapshot, expense_total
from services.results import OperationResult, StepTracker, returns_result
from services.validation import (
    require_amount,
    require_date,
    require_source,
    require_text,
)
from utils.logger import get_logger

logger = get_logger(__name__)

ItemInput = Union[ExpenseItem, dict]


class LedgerCoordinator:
    """
    Entry point for every ledger mutation.

    All public mutating methods take the acting user explicitly, require the
    write capability, and return an OperationResult instead of raising.
    """

    def __init__(
        self,
        store: RecordStore,
        advance_debt: Optional[AdvanceDebtTracker] = None,
        activity: Optional[ActivityService] = None,
    ):
        self.store = store
        self.inflows = CashInflowRepository(store)
        self.expenses = ExpenseRepository(store)
        self.projects = ProjectRepository(store)
        self.activity = activity or ActivityService(store)
        self.advance_debt = advance_debt or AdvanceDebtTracker(store, self.activity)

    # ── CASH INFLOWS ──────────────────────────────────────

    @returns_result
    @authorized_only
    def create_cash_inflow(
        self,
        actor: ActorContext,
        amount,
        source: str,
        project_id: str,
        inflow_date: Union[date, str, None] = None,
        description: str = "",
    ) -> str:
        """
        Record cash coming in and credit the project it is allocated to.

        A missing project is tolerated: the inflow is kept and the project
        aggregates are simply not adjusted.

        Returns:
            The new inflow id (wrapped in an OperationResult).
        """
        inflow = CashInflow(
            project_id=require_text(project_id, "project_id"),
            amount=require_amount(amount),
            source=require_source(source),
            date=require_date(inflow_date),
            description=description or "",
            created_by=actor.user_id,
        )

        steps = StepTracker("create_cash_inflow")
        steps.run("inflow", self.inflows.add, inflow)
        steps.record_id = inflow.id
        self._adjust_step(
            steps, "project_aggregates",
            inflow.project_id, income_delta=inflow.amount,
        )
        if inflow.is_advance():
            self._refresh_advance_debt(steps)

        self.activity.log(
            actor, ActivityType.CREATE, EntityType.CASH_INFLOW, inflow.id, inflow,
            f"Nouvelle entrée: {inflow.amount:.0f} ({inflow.source_label})", inflow.project_id,
        )
        logger.info(f"Added cash inflow #{inflow.id} of {inflow.amount:.0f} to project {inflow.project_id}")
        return inflow.id

    @returns_result
    @authorized_only
    def update_cash_inflow(
        self,
        actor: ActorContext,
        inflow_id: str,
        amount=None,
        source: Optional[str] = None,
        project_id: Optional[str] = None,
        inflow_date: Union[date, str, None] = None,
        description: Optional[str] = None,
    ) -> str:
        """
        Edit an inflow. Only the fields given are changed.

        The old amount is taken off the old project and the new amount put
        on the new project, unconditionally; on the same project the two
        adjustments net to the delta.
        """
        existing = self.inflows.get_by_id(inflow_id)
        updated = replace(
            existing,
            amount=existing.amount if amount is None else require_amount(amount),
            source=existing.source if source is None else require_source(source),
            project_id=(
                existing.project_id if project_id is None
                else require_text(project_id, "project_id")
            ),
            date=existing.date if inflow_date is None else require_date(inflow_date),
            description=existing.description if description is None else description,
        )

        steps = StepTracker("update_cash_inflow")
        steps.record_id = inflow_id
        self._adjust_step(
            steps, "old_project_aggregates",
            existing.project_id, income_delta=-existing.amount,
        )
        self._adjust_step(
            steps, "new_project_aggregates",
            updated.project_id, income_delta=updated.amount,
        )
        steps.run("inflow", self.inflows.update, updated)
        if existing.is_advance() or updated.is_advance():
            self._refresh_advance_debt(steps)

        self.activity.log(
            actor, ActivityType.UPDATE, EntityType.CASH_INFLOW, inflow_id, updated,
            f"Entrée modifiée: {existing.amount:.0f} -> {updated.amount:.0f}", updated.project_id,
        )
        logger.info(f"Updated cash inflow #{inflow_id}: {existing.amount:.0f} -> {updated.amount:.0f}")
        return inflow_id

    @returns_result
    @authorized_only
    def delete_cash_inflow(self, actor: ActorContext, inflow_id: str) -> str:
        """Delete an inflow and debit its project."""
        existing = self.inflows.get_by_id(inflow_id)

        steps = StepTracker("delete_cash_inflow")
        steps.record_id = inflow_id
        self._adjust_step(
            steps, "project_aggregates",
            existing.project_id, income_delta=-existing.amount,
        )
        steps.run("inflow", self.inflows.delete, inflow_id)
        if existing.is_advance():
            self._refresh_advance_debt(steps)

        self.activity.log(
            actor, ActivityType.DELETE, EntityType.CASH_INFLOW, inflow_id, existing,
            f"Entrée supprimée: {existing.amount:.0f}", existing.project_id,
        )
        logger.info(f"Deleted cash inflow #{inflow_id}")
        return inflow_id

    # ── EXPENSES ──────────────────────────────────────────

    @returns_result
    @authorized_only
    def create_expense(
        self,
        actor: ActorContext,
        project_id: str,
        items: Iterable[ItemInput],
        expense_date: Union[date, str, None] = None,
        description: str = "",
        reference: Optional[str] = None,
    ) -> str:
        """
        Record an expense with its items and debit its project.

        A reference like DEP-202410-0007 is generated when none is given.
        """
        expense = Expense(
            project_id=require_text(project_id, "project_id"),
            date=require_date(expense_date),
            description=description or "",
            status=ExpenseStatus.PENDING,
            created_by=actor.user_id,
        )
        lines = self._validate_items(items, actor)
        expense.reference = reference or self._next_reference(expense.date or date.today())

        steps = StepTracker("create_expense")
        steps.run("expense", self.expenses.add, expense)
        steps.record_id = expense.id
        for index, item in enumerate(lines):
            steps.run(f"item[{index}]", self.expenses.add_item, expense.id, item)
        expense.items = lines
        self._adjust_step(
            steps, "project_aggregates",
            expense.project_id, expense_delta=expense.total,
        )

        self.activity.log(
            actor, ActivityType.CREATE, EntityType.EXPENSE, expense.id, expense,
            f"Nouvelle dépense créée: {expense.reference}", expense.project_id,
        )
        logger.info(
            f"Added expense #{expense.id} ({expense.reference}) of {expense.total:.0f} "
            f"with {len(lines)} item(s)"
        )
        return expense.id

    @returns_result
    @authorized_only
    def update_expense(
        self,
        actor: ActorContext,
        expense_id: str,
        items: Optional[Iterable[ItemInput]] = None,
        project_id: Optional[str] = None,
        expense_date: Union[date, str, None] = None,
        description: Optional[str] = None,
    ) -> str:
        """
        Edit an expense. When `items` is given, the whole item set is replaced.

        The old total is taken off the old project and the new total put on
        the new project, as for inflows.
        """
        existing = self.expenses.get_by_id(expense_id)
        new_lines = self._validate_items(items, actor) if items is not None else existing.items
        updated = replace(
            existing,
            project_id=(
                existing.project_id if project_id is None
                else require_text(project_id, "project_id")
            ),
            date=existing.date if expense_date is None else require_date(expense_date),
            description=existing.description if description is None else description,
            items=list(new_lines),
        )

        steps = StepTracker("update_expense")
        steps.record_id = expense_id
        self._adjust_step(
            steps, "old_project_aggregates",
            existing.project_id, expense_delta=-existing.total,
        )
        self._adjust_step(
            steps, "new_project_aggregates",
            updated.project_id, expense_delta=updated.total,
        )
        steps.run("expense", self.expenses.update, updated)
        if items is not None:
            self._replace_items(steps, expense_id, existing.items, new_lines)

        self.activity.log(
            actor, ActivityType.UPDATE, EntityType.EXPENSE, expense_id, updated,
            f"Dépense mise à jour: {updated.reference}", updated.project_id,
        )
        logger.info(f"Updated expense #{expense_id}: {existing.total:.0f} -> {updated.total:.0f}")
        return expense_id

    @returns_result
    @authorized_only
    def replace_items(self, actor: ActorContext, expense_id: str, items: Iterable[ItemInput]) -> str:
        """
        Swap the full item set of an expense.

        Existing items are deleted, then the new ones inserted; item ids are
        not preserved. The project is adjusted by the change in total.
        """
        existing = self.expenses.get_by_id(expense_id)
        new_lines = self._validate_items(items, actor)
        delta = expense_total(existing, new_lines) - existing.total

        steps = StepTracker("replace_items")
        steps.record_id = expense_id
        self._adjust_step(
            steps, "project_aggregates",
            existing.project_id, expense_delta=delta,
        )
        self._replace_items(steps, expense_id, existing.items, new_lines)

        self.activity.log(
            actor, ActivityType.UPDATE, EntityType.EXPENSE, expense_id,
            replace(existing, items=list(new_lines)),
            f"Articles remplacés ({len(existing.items)} -> {len(new_lines)})", existing.project_id,
        )
        return expense_id

    @returns_result
    @authorized_only
    def delete_expense(self, actor: ActorContext, expense_id: str) -> str:
        """Delete an expense and every item pointing to it; debit the project."""
        existing = self.expenses.get_by_id(expense_id)

        steps = StepTracker("delete_expense")
        steps.record_id = expense_id
        self._adjust_step(
            steps, "project_aggregates",
            existing.project_id, expense_delta=-existing.total,
        )
        for item in existing.items:
            steps.run(f"delete_item:{item.id}", self.expenses.delete_item, item.id)
        steps.run("expense", self.expenses.delete, expense_id)

        self.activity.log(
            actor, ActivityType.DELETE, EntityType.EXPENSE, expense_id, existing,
            f"Dépense supprimée: {existing.reference}", existing.project_id,
        )
        logger.info(f"Deleted expense #{expense_id} and {len(existing.items)} item(s)")
        return expense_id

    @returns_result
    @authorized_only
    def validate_expense(self, actor: ActorContext, expense_id: str) -> OperationResult:
        """Mark an expense validated. Validation is one-way."""
        expense = self.expenses.get_by_id(expense_id, with_items=False)
        if expense.is_validated():
            return OperationResult(True, record_id=expense_id, message="Expense already validated")
        self.expenses.set_status(expense_id, ExpenseStatus.VALIDATED)
        self.activity.log(
            actor, ActivityType.UPDATE, EntityType.EXPENSE, expense_id,
            {"status": ExpenseStatus.VALIDATED.value, "previous": expense.status.value},
            f"Dépense validée: {expense.reference}", expense.project_id,
        )
        logger.info(f"Validated expense #{expense_id}")
        return OperationResult(True, record_id=expense_id, message="Expense validated")

    @returns_result
    @authorized_only
    def flag_expense_as_debt(self, actor: ActorContext, expense_id: str) -> OperationResult:
        """
        Flag a pending expense as debt.

        Only pending expenses can be flagged; no operation flags expenses
        automatically.
        """
        expense = self.expenses.get_by_id(expense_id, with_items=False)
        if expense.status is ExpenseStatus.FLAGGED_AS_DEBT:
            return OperationResult(True, record_id=expense_id, message="Expense already flagged")
        if expense.status is not ExpenseStatus.PENDING:
            raise ValidationError(
                f"Expense {expense_id} is {expense.status.value}; only pending expenses can be flagged",
                "status",
            )
        self.expenses.set_status(expense_id, ExpenseStatus.FLAGGED_AS_DEBT)
        self.activity.log(
            actor, ActivityType.UPDATE, EntityType.EXPENSE, expense_id,
            {"status": ExpenseStatus.FLAGGED_AS_DEBT.value},
            f"Dépense signalée comme dette: {expense.reference}", expense.project_id,
        )
        logger.info(f"Flagged expense #{expense_id} as debt")
        return OperationResult(True, record_id=expense_id, message="Expense flagged as debt")

    @returns_result
    @authorized_only
    def update_item_amount_given(self, actor: ActorContext, item_id: str, amount_given) -> str:
        """
        Correct the cash actually handed over for one item.

        Expense totals do not depend on it, so no aggregate moves.
        """
        value = require_amount(amount_given, "amount_given")
        item = self.expenses.get_item(item_id)
        self.expenses.update_item(item_id, {"amountGiven": value})
        self.activity.log(
            actor, ActivityType.UPDATE, EntityType.EXPENSE_ITEM, item_id,
            replace(item, amount_given=value),
            f"Montant remis modifié: {item.amount_given:.0f} -> {value:.0f}",
        )
        return item_id

    # ── RECONCILIATION ────────────────────────────────────

    def recompute_project_aggregates(
        self, project_id: str, snapshot: Optional[LedgerSnapshot] = None
    ) -> ProjectTotals:
        """
        Rebuild a project's cached balance fields from raw records.

        Raises:
            NotFoundError: If the project does not exist.
        """
        project = self.projects.get_by_id(project_id)
        if snapshot is None:
            totals = LedgerSnapshot(
                inflows=tuple(self.inflows.list(project_id=project_id)),
                expenses=tuple(self.expenses.list_with_items(project_id)),
            ).project_totals(project_id)
        else:
            totals = snapshot.project_totals(project_id)

        if (project.total_income, project.total_expenses, project.balance) != (
            totals.total_income, totals.total_expenses, totals.balance
        ):
            logger.info(
                f"Project {project_id} cache corrected: balance "
                f"{project.balance:.0f} -> {totals.balance:.0f}"
            )
            project.total_income = totals.total_income
            project.total_expenses = totals.total_expenses
            project.balance = totals.balance
            self.projects.save_aggregates(project)
        return totals

    def reconcile_all_projects(
        self, snapshot: Optional[LedgerSnapshot] = None
    ) -> dict[str, ProjectTotals]:
        """Recompute every project's cache from a single read of the ledger."""
        if snapshot is None:
            snapshot = LedgerSnapshot(
                inflows=tuple(self.inflows.list()),
                expenses=tuple(self.expenses.list()),
                items=tuple(self.expenses.list_items()),
            )
        return {
            project.id: self.recompute_project_aggregates(project.id, snapshot)
            for project in self.projects.list()
        }

    # ── HELPERS ───────────────────────────────────────────

    def _adjust_project(
        self, project_id: str, income_delta: float = 0.0, expense_delta: float = 0.0
    ) -> bool:
        """
        Apply a delta to a project's cached aggregates.

        Totals never drop below zero; the balance moves by the full delta.
        Returns False when the project does not exist (nothing adjusted).
        """
        try:
            project = self.projects.get_by_id(project_id)
        except NotFoundError:
            logger.warning(f"Project {project_id} not found; aggregates not adjusted")
            return False
        project.total_income = max(0.0, project.total_income + income_delta)
        project.total_expenses = max(0.0, project.total_expenses + expense_delta)
        project.balance = project.balance + income_delta - expense_delta
        self.projects.save_aggregates(project)
        return True

    def _adjust_step(
        self, steps: StepTracker, step: str, project_id: str,
        income_delta: float = 0.0, expense_delta: float = 0.0,
    ) -> None:
        adjusted = steps.run(
            step, self._adjust_project, project_id,
            income_delta=income_delta, expense_delta=expense_delta,
        )
        if not adjusted:
            steps.mark_skipped(step)

    def _refresh_advance_debt(self, steps: StepTracker) -> None:
        self.advance_debt.mark_stale()
        steps.run("advance_debt", self.advance_debt.refresh)

    def _replace_items(
        self,
        steps: StepTracker,
        expense_id: str,
        old_items: list[ExpenseItem],
        new_items: list[ExpenseItem],
    ) -> None:
        for item in old_items:
            steps.run(f"delete_item:{item.id}", self.expenses.delete_item, item.id)
        for index, item in enumerate(new_items):
            item.id = None
            steps.run(f"item[{index}]", self.expenses.add_item, expense_id, item)

    def _validate_items(self, items: Iterable[ItemInput], actor: ActorContext) -> list[ExpenseItem]:
        lines = [self._coerce_item(raw, actor) for raw in (items or [])]
        if not lines:
            raise ValidationError("An expense needs at least one item", "items")
        return lines

    @staticmethod
    def _coerce_item(raw: ItemInput, actor: ActorContext) -> ExpenseItem:
        if isinstance(raw, ExpenseItem):
            item = replace(raw)
        elif isinstance(raw, dict):
            known = set(ExpenseItem.__dataclass_fields__)
            unknown = set(raw) - known
            if unknown:
                raise ValidationError(f"Unknown item field(s): {sorted(unknown)}", "items")
            try:
                item = ExpenseItem(**raw)
            except TypeError as e:
                raise ValidationError(f"Incomplete item: {e}", "items")
        else:
            raise ValidationError(f"Unsupported item: {raw!r}", "items")

        item.designation = require_text(item.designation, "designation")
        item.quantity = require_amount(item.quantity, "quantity")
        if item.quantity == 0:
            raise ValidationError("quantity must be greater than 0", "quantity")
        item.unit_price = require_amount(item.unit_price, "unit_price")
        item.amount_given = require_amount(item.amount_given or 0, "amount_given")
        item.created_by = item.created_by or actor.user_id
        item.created_at = None
        return item

    def _next_reference(self, when: date) -> str:
        """Next DEP-YYYYMM-NNNN reference for the month of `when`."""
        prefix = f"{EXPENSE_REFERENCE_PREFIX}-{when.year}{when.month:02d}"
        numbers = []
        for ref in self.expenses.references():
            if not ref.startswith(prefix):
                continue
            try:
                numbers.append(int(ref.split("-")[2]))
            except (IndexError, ValueError):
                numbers.append(0)
        return f"{prefix}-{max(numbers, default=0) + 1:04d}"
