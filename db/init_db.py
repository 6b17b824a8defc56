"""
db/init_db.py
-------------
Creates the document tables if they do not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db

Every collection is a flat table of JSONB documents keyed by an opaque id;
references between collections (projectId, expenseId) live inside the
documents and are resolved by filtering, not by joins.
"""

from db.connection import transaction
from utils.logger import get_logger

logger = get_logger(__name__)

COLLECTIONS: tuple[str, ...] = (
    "cash_inflow",
    "expenses",
    "expense_items",
    "pca_reimbursements",
    "projects",
    "closings",
    "activity_logs",
)

_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS {name} (
    id              TEXT PRIMARY KEY,
    data            JSONB NOT NULL DEFAULT '{{}}'::jsonb,
    created_at      TIMESTAMPTZ DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_{name}_data ON {name} USING GIN (data jsonb_path_ops);
"""


def schema_sql() -> str:
    """Full DDL for all collections."""
    return "\n".join(_TABLE_SQL.format(name=name) for name in COLLECTIONS)


def create_tables() -> None:
    """
    Execute the schema SQL to create all tables.
    Safe to call multiple times (uses IF NOT EXISTS).
    """
    try:
        with transaction() as conn:
            with conn.cursor() as cur:
                cur.execute(schema_sql())
        logger.info("Database schema initialized successfully.")
    except Exception as e:
        logger.error(f"Failed to initialize schema: {e}")
        raise


if __name__ == "__main__":
    from db.connection import init_pool
    init_pool()
    create_tables()
    print("Database schema created successfully.")
