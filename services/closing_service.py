"""
services/closing_service.py
---------------------------
Period-end cash closings.

The opening balance of a closing is the final balance of the latest
previous closing; for the very first closing it is the total cash inflow.
"""

from datetime import date
from typing import Optional

from models.activity import ActivityType, EntityType
from models.closing import Closing
from repositories.cash_inflow_repo import CashInflowRepository
from repositories.closing_repo import ClosingRepository
from repositories.record_store import RecordStore
from security.auth import ActorContext, authorized_only
from services.activity_service import ActivityService
from services.balance_calculator import total_income
from services.results import returns_result
from services.validation import require_amount, require_date
from utils.logger import get_logger

logger = get_logger(__name__)


class ClosingService:
    """Records cash counts and the gap to the previous count."""

    def __init__(self, store: RecordStore, activity: Optional[ActivityService] = None):
        self.repo = ClosingRepository(store)
        self.inflows = CashInflowRepository(store)
        self.activity = activity or ActivityService(store)

    def list_closings(self) -> list[Closing]:
        """All closings, newest first; undated ones last."""
        return sorted(
            self.repo.list(),
            key=lambda c: (c.date is not None, c.date or date.min),
            reverse=True,
        )

    def last_closing(self) -> Optional[Closing]:
        closings = [c for c in self.list_closings() if c.date is not None]
        return closings[0] if closings else None

    def opening_balance(self) -> float:
        last = self.last_closing()
        if last is not None:
            return last.final_balance
        return total_income(self.inflows.list())

    @returns_result
    @authorized_only
    def record_closing(
        self, actor: ActorContext, final_balance, notes: str = "", on=None
    ) -> str:
        """
        Close the period with the counted cash.

        Args:
            actor: Acting user (needs the write capability).
            final_balance: Cash counted, non-negative.
            notes: Free text.
            on: Closing date (defaults to today).
        """
        final = require_amount(final_balance, "final_balance")
        when = require_date(on)
        initial = self.opening_balance()
        closing = self.repo.add(Closing(
            initial_balance=initial,
            final_balance=final,
            difference=final - initial,
            notes=notes or "",
            date=when,
            created_by=actor.user_id,
        ))
        self.activity.log(
            actor, ActivityType.CREATE, EntityType.CLOSING, closing.id, closing,
            f"Clôture: {initial:.0f} -> {final:.0f}",
        )
        logger.info(f"Recorded closing #{closing.id}: {initial:.0f} -> {final:.0f} ({closing.difference:+.0f})")
        return closing.id
