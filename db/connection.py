"""
db/connection.py
----------------
PostgreSQL connection pool and the `transaction()` unit of work used by
PostgresRecordStore. Driver-level connection failures are translated to
StoreUnavailableError here so nothing above this layer sees psycopg2 errors
for an unreachable database.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg2
from psycopg2 import pool

from config import DATABASE_URL, DB_POOL_MAX, DB_POOL_MIN
from errors import StoreUnavailableError
from utils.logger import get_logger

logger = get_logger(__name__)

_pool: Optional[pool.SimpleConnectionPool] = None


def init_pool(
    min_conn: int = DB_POOL_MIN, max_conn: int = DB_POOL_MAX, dsn: str = DATABASE_URL
) -> None:
    """
    Open the pool once; later calls are no-ops.

    Args:
        min_conn: Minimum number of connections to keep open.
        max_conn: Maximum number of connections allowed.
        dsn: Connection string (defaults to DATABASE_URL).

    Raises:
        StoreUnavailableError: If the database is unreachable.
    """
    global _pool
    if _pool is not None:
        return
    try:
        _pool = pool.SimpleConnectionPool(min_conn, max_conn, dsn)
        logger.info(f"Connection pool ready ({min_conn}-{max_conn} connections)")
    except psycopg2.OperationalError as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise StoreUnavailableError(str(e)) from e


def get_connection():
    """
    Get a connection from the pool.

    Raises:
        StoreUnavailableError: If the pool has not been initialized or is exhausted.
    """
    if _pool is None:
        raise StoreUnavailableError("Database pool not initialized. Call init_pool() first.")
    try:
        return _pool.getconn()
    except pool.PoolError as e:
        raise StoreUnavailableError(str(e)) from e


def release_connection(conn) -> None:
    """Return a connection back to the pool."""
    if _pool is not None:
        _pool.putconn(conn)


@contextmanager
def transaction() -> Iterator:
    """
    Borrow a connection for one unit of work.

    Commits on success, rolls back on any error. Connection-level failures
    surface as StoreUnavailableError; other errors propagate unchanged.
    """
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
        _safe_rollback(conn)
        logger.error(f"Database unreachable: {e}")
        raise StoreUnavailableError(str(e)) from e
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        release_connection(conn)


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except psycopg2.Error as e:
        logger.warning(f"Rollback failed: {e}")


def close_pool() -> None:
    """Close all connections in the pool."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("Database connection pool closed.")
