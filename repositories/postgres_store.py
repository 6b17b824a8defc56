"""
repositories/postgres_store.py
------------------------------
RecordStore backed by PostgreSQL document tables (see db/init_db.py).
All SQL touching the ledger collections lives here.
"""

from typing import Optional

from psycopg2 import sql
from psycopg2.extras import Json

from db.connection import transaction
from db.init_db import COLLECTIONS
from errors import NotFoundError
from repositories.record_store import Document, RecordStore
from utils.logger import get_logger

logger = get_logger(__name__)


class PostgresRecordStore(RecordStore):
    """One JSONB document per row; filters use JSONB containment."""

    def __init__(self, collections: tuple[str, ...] = COLLECTIONS):
        self._collections = set(collections)

    def _table(self, collection: str) -> sql.Identifier:
        if collection not in self._collections:
            raise ValueError(f"Unknown collection: {collection}")
        return sql.Identifier(collection)

    # ── READ ──────────────────────────────────────────────

    def list(self, collection: str, filters: Optional[dict] = None) -> list[Document]:
        query = sql.SQL("SELECT id, data FROM {}").format(self._table(collection))
        params: list = []
        if filters:
            query += sql.SQL(" WHERE data @> %s")
            params.append(Json(filters))
        query += sql.SQL(" ORDER BY created_at, id")
        with transaction() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return [self._row_to_document(r) for r in cur.fetchall()]

    def get(self, collection: str, record_id: str) -> Document:
        query = sql.SQL("SELECT id, data FROM {} WHERE id = %s").format(
            self._table(collection)
        )
        with transaction() as conn:
            with conn.cursor() as cur:
                cur.execute(query, (record_id,))
                row = cur.fetchone()
        if row is None:
            raise NotFoundError(collection, record_id)
        return self._row_to_document(row)

    # ── WRITE ─────────────────────────────────────────────

    def create(self, collection: str, fields: Document) -> str:
        record_id = self.new_id()
        query = sql.SQL("INSERT INTO {} (id, data) VALUES (%s, %s)").format(
            self._table(collection)
        )
        try:
            with transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, (record_id, Json(self._body(fields))))
        except Exception as e:
            logger.error(f"Failed to create document in {collection}: {e}")
            raise
        logger.info(f"Created {collection}/{record_id}")
        return record_id

    def update(self, collection: str, record_id: str, fields: Document) -> None:
        query = sql.SQL("UPDATE {} SET data = data || %s WHERE id = %s").format(
            self._table(collection)
        )
        try:
            with transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, (Json(self._body(fields)), record_id))
                    updated = cur.rowcount > 0
        except Exception as e:
            logger.error(f"Failed to update {collection}/{record_id}: {e}")
            raise
        if not updated:
            raise NotFoundError(collection, record_id)

    def delete(self, collection: str, record_id: str) -> None:
        query = sql.SQL("DELETE FROM {} WHERE id = %s").format(self._table(collection))
        try:
            with transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, (record_id,))
                    deleted = cur.rowcount > 0
        except Exception as e:
            logger.error(f"Failed to delete {collection}/{record_id}: {e}")
            raise
        if not deleted:
            raise NotFoundError(collection, record_id)
        logger.info(f"Deleted {collection}/{record_id}")

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_document(row: tuple) -> Document:
        """Convert a (id, data) row to a document dict."""
        return {**(row[1] or {}), "id": row[0]}
