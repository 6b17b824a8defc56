"""
services/advance_debt.py
------------------------
Outstanding debt of the advance account (the "PCA" account).

Debt = advance-tagged inflows - reimbursements, floored at zero. The value
is always recomputed by a full rescan; mutations only mark it stale.
"""

from datetime import date
from typing import Optional

from config import ADVANCE_REPAYMENT_PROJECT_ID, ADVANCE_SOURCE, DEFAULT_CURRENCY
from errors import ValidationError
from models.activity import ActivityType, EntityType
from models.expense import Expense, ExpenseItem
from models.reimbursement import Reimbursement
from repositories.cash_inflow_repo import CashInflowRepository
from repositories.expense_repo import ExpenseRepository
from repositories.record_store import RecordStore
from repositories.reimbursement_repo import ReimbursementRepository
from security.auth import ActorContext, authorized_only
from services.activity_service import ActivityService
from services.balance_calculator import advance_debt
from services.results import OperationResult, StepTracker, returns_result
from services.validation import require_amount
from utils.logger import get_logger

logger = get_logger(__name__)

REPAYMENT_DESIGNATION = "advance repayment"
REPAYMENT_REFERENCE = "PCA-RMB"
REPAYMENT_SUPPLIER = "PCA"
REPAYMENT_SUPPLIER_ID = "pca_internal"


class AdvanceDebtTracker:
    """
    Tracks and settles the advance-account debt.

    Workflow for a reimbursement:
        1. Validate the amount against the freshly recomputed debt.
        2. Record the reimbursement.
        3. Record a matching expense + item on the reserved repayment
           project so it shows in expense reporting.
        4. Log the activity and recompute the debt.
    """

    def __init__(self, store: RecordStore, activity: Optional[ActivityService] = None):
        self.inflows = CashInflowRepository(store)
        self.reimbursements = ReimbursementRepository(store)
        self.expenses = ExpenseRepository(store)
        self.activity = activity or ActivityService(store)
        self._debt: float = 0.0
        self._stale = True

    # ── READ ──────────────────────────────────────────────

    def refresh(self) -> float:
        """Recompute the debt from every advance inflow and reimbursement."""
        self._debt = advance_debt(
            self.inflows.list(source=ADVANCE_SOURCE),
            self.reimbursements.list(),
            ADVANCE_SOURCE,
        )
        self._stale = False
        logger.debug(f"Advance debt refreshed: {self._debt:.0f}")
        return self._debt

    def mark_stale(self) -> None:
        self._stale = True

    @property
    def is_stale(self) -> bool:
        return self._stale

    def current(self) -> float:
        """The debt, recomputed first if a mutation happened since the last read."""
        if self._stale:
            return self.refresh()
        return self._debt

    def reimbursement_history(self) -> list[Reimbursement]:
        """Reimbursements, newest first; undated ones last."""
        return sorted(
            self.reimbursements.list(),
            key=lambda r: (r.date is not None, r.date or date.min, r.created_at or ""),
            reverse=True,
        )

    # ── WRITE ─────────────────────────────────────────────

    @returns_result
    @authorized_only
    def record_reimbursement(
        self, amount, description: str, actor: ActorContext, on: Optional[date] = None
    ) -> OperationResult:
        """
        Repay part of the advance-account debt.

        Args:
            amount: Strictly positive, at most the current debt.
            description: Free-text note.
            actor: Acting user (needs the write capability).
            on: Date of the repayment (defaults to today).

        Returns:
            OperationResult whose `record_id` is the reimbursement id.
        """
        value = require_amount(amount)
        if value <= 0:
            raise ValidationError("Reimbursement amount must be greater than 0", "amount")
        outstanding = self.refresh()
        if value > outstanding:
            raise ValidationError(
                f"Reimbursement of {value:.0f} exceeds outstanding debt of {outstanding:.0f}",
                "amount",
            )

        when = on or date.today()
        steps = StepTracker("record_reimbursement")
        try:
            reimbursement = steps.run(
                "reimbursement",
                self.reimbursements.add,
                Reimbursement(
                    amount=value, description=description, date=when,
                    created_by=actor.user_id,
                ),
            )
            steps.record_id = reimbursement.id

            expense = steps.run(
                "repayment_expense",
                self.expenses.add,
                Expense(
                    project_id=ADVANCE_REPAYMENT_PROJECT_ID,
                    date=when,
                    description=f"Remboursement PCA: {description}",
                    created_by=actor.user_id,
                ),
            )
            steps.run(
                "repayment_item",
                self.expenses.add_item,
                expense.id,
                ExpenseItem(
                    designation=REPAYMENT_DESIGNATION,
                    reference=REPAYMENT_REFERENCE,
                    quantity=1,
                    unit=DEFAULT_CURRENCY,
                    unit_price=value,
                    amount_given=value,
                    supplier=REPAYMENT_SUPPLIER,
                    supplier_id=REPAYMENT_SUPPLIER_ID,
                    beneficiary=REPAYMENT_SUPPLIER,
                    created_by=actor.user_id,
                ),
            )
        finally:
            if steps.completed:
                self.mark_stale()

        self.activity.log(
            actor, ActivityType.CREATE, EntityType.REIMBURSEMENT, reimbursement.id,
            reimbursement, f"Remboursement PCA: {description}", ADVANCE_REPAYMENT_PROJECT_ID,
        )
        remaining = steps.run("advance_debt", self.refresh)
        logger.info(
            f"Recorded reimbursement #{reimbursement.id} of {value:.0f}; "
            f"remaining debt {remaining:.0f}"
        )
        return OperationResult(
            True, record_id=reimbursement.id,
            message=f"Reimbursement recorded, remaining debt {remaining:.0f}",
        )
