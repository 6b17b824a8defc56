"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "cashdesk")
DB_USER: str = os.getenv("DB_USER", "cashdesk_user")
DB_PASS: str = os.getenv("DB_PASS", "")

DATABASE_URL: str = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "5"))

# 'postgres' for the document tables, 'memory' for local runs
STORE_BACKEND: str = os.getenv("STORE_BACKEND", "postgres")

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE: str = os.getenv("LOG_FILE", "")  # empty: stdout only

# ── Ledger ────────────────────────────────────────────────
DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "FCFA")

# Cash inflow sources; the advance source feeds the advance-account debt
CASH_INFLOW_SOURCES: dict[str, str] = {
    "rebus": "Compte des rebus",
    "bank": "Compte bancaire",
    "pca": "Compte PCA",
    "granule": "Vente Granule",
    "espece": "Vente d'espèce client",
}
ADVANCE_SOURCE: str = os.getenv("ADVANCE_SOURCE", "pca")

# Reserved project that carries the expenses synthesized for reimbursements
ADVANCE_REPAYMENT_PROJECT_ID: str = os.getenv(
    "ADVANCE_REPAYMENT_PROJECT_ID", "pca_remboursement"
)

# When false, expenses on the reserved repayment project are left out of
# the global expense totals.
COUNT_ADVANCE_REPAYMENTS_AS_EXPENSES: bool = _as_bool(
    os.getenv("COUNT_ADVANCE_REPAYMENTS_AS_EXPENSES", "true")
)

# Prefix of the human-readable expense reference (DEP-YYYYMM-NNNN)
EXPENSE_REFERENCE_PREFIX: str = "DEP"
