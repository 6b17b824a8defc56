"""
main.py
-------
Entry point for CashDesk maintenance runs.

Responsibilities:
    - Initialize the database connection pool and schema.
    - Reconcile every project's cached aggregates with the raw records.
    - Log the dashboard totals and the advance-account debt.
"""

from config import DEFAULT_CURRENCY, STORE_BACKEND
from db.connection import close_pool, init_pool
from db.init_db import create_tables
from repositories import build_store
from services.dashboard_service import DashboardService
from utils.logger import get_logger

logger = get_logger(__name__)


def main() -> None:
    """Initialize storage, reconcile, and report."""

    # ── 1. Database setup ─────────────────────────────────
    if STORE_BACKEND == "postgres":
        logger.info("Initializing database...")
        init_pool()
        create_tables()

    try:
        # ── 2. Reconcile and load figures ─────────────────
        store = build_store()
        dashboard = DashboardService(store).load(reconcile=True)
        totals = dashboard.totals

        # ── 3. Report ─────────────────────────────────────
        logger.info(f"Total income:      {totals.total_income:,.0f} {DEFAULT_CURRENCY}")
        logger.info(f"Total expenses:    {totals.total_expenses:,.0f} {DEFAULT_CURRENCY}")
        logger.info(f"Global balance:    {totals.global_balance:,.0f} {DEFAULT_CURRENCY}")
        logger.info(f"Effective balance: {totals.effective_balance:,.0f} {DEFAULT_CURRENCY}")
        logger.info(f"Advance debt:      {totals.advance_debt:,.0f} {DEFAULT_CURRENCY}")
        for project in dashboard.projects:
            logger.info(f"  {project.name}: {project.balance:,.0f} {DEFAULT_CURRENCY}")
    finally:
        # ── 4. Cleanup ────────────────────────────────────
        if STORE_BACKEND == "postgres":
            close_pool()
    logger.info("CashDesk reconciliation finished.")


if __name__ == "__main__":
    main()
