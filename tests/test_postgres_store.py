"""
PostgreSQL backend, with the connection pool replaced by mocks.
"""

from contextlib import contextmanager
from unittest.mock import MagicMock

import psycopg2
import pytest

import db.connection as connection
from db.init_db import COLLECTIONS, schema_sql
from errors import NotFoundError, StoreUnavailableError
from repositories import postgres_store
from repositories.postgres_store import PostgresRecordStore


@pytest.fixture
def cursor(monkeypatch):
    """Cursor handed out by a fake transaction()."""
    cur = MagicMock()
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cur

    @contextmanager
    def fake_transaction():
        yield conn

    monkeypatch.setattr(postgres_store, "transaction", fake_transaction)
    return cur


@pytest.fixture
def pg():
    return PostgresRecordStore()


class TestPostgresRecordStore:

    def test_get_row(self, pg, cursor):
        cursor.fetchone.return_value = ("abc", {"name": "A"})

        assert pg.get("projects", "abc") == {"name": "A", "id": "abc"}

    def test_get_missing(self, pg, cursor):
        cursor.fetchone.return_value = None

        with pytest.raises(NotFoundError):
            pg.get("projects", "abc")

    def test_list_with_filters_uses_containment(self, pg, cursor):
        cursor.fetchall.return_value = [("a", {"source": "pca"}), ("b", None)]

        docs = pg.list("cash_inflow", {"source": "pca"})

        assert docs == [{"source": "pca", "id": "a"}, {"id": "b"}]
        _, params = cursor.execute.call_args.args
        assert params[0].adapted == {"source": "pca"}

    def test_create_strips_id(self, pg, cursor):
        record_id = pg.create("expenses", {"id": "x", "projectId": "P1"})

        rid, body = cursor.execute.call_args.args[1]
        assert rid == record_id
        assert body.adapted == {"projectId": "P1"}

    def test_update_missing(self, pg, cursor):
        cursor.rowcount = 0

        with pytest.raises(NotFoundError):
            pg.update("projects", "abc", {"balance": 1})

    def test_delete_missing(self, pg, cursor):
        cursor.rowcount = 0

        with pytest.raises(NotFoundError):
            pg.delete("expense_items", "abc")

    def test_unknown_collection(self, pg):
        with pytest.raises(ValueError):
            pg.list("users")


class TestTransaction:
    """Connection handling in db.connection"""

    @pytest.fixture
    def fake_pool(self, monkeypatch):
        pool = MagicMock()
        monkeypatch.setattr(connection, "_pool", pool)
        return pool

    def test_commit_and_release(self, fake_pool):
        conn = fake_pool.getconn.return_value

        with connection.transaction() as got:
            assert got is conn

        conn.commit.assert_called_once()
        fake_pool.putconn.assert_called_once_with(conn)

    def test_operational_error_becomes_store_unavailable(self, fake_pool):
        conn = fake_pool.getconn.return_value

        with pytest.raises(StoreUnavailableError):
            with connection.transaction():
                raise psycopg2.OperationalError("server closed the connection")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        fake_pool.putconn.assert_called_once_with(conn)

    def test_other_errors_propagate(self, fake_pool):
        conn = fake_pool.getconn.return_value

        with pytest.raises(KeyError):
            with connection.transaction():
                raise KeyError("boom")

        conn.rollback.assert_called_once()
        fake_pool.putconn.assert_called_once_with(conn)

    def test_no_pool(self, monkeypatch):
        monkeypatch.setattr(connection, "_pool", None)

        with pytest.raises(StoreUnavailableError):
            connection.get_connection()


def test_schema_covers_every_collection():
    ddl = schema_sql()
    for name in COLLECTIONS:
        assert f"CREATE TABLE IF NOT EXISTS {name}" in ddl
        assert f"idx_{name}_data" in ddl
