"""
repositories/record_store.py
----------------------------
Collection-level CRUD over ledger documents, with no business logic.

A document is a plain dict. Every document returned by a store carries its
identifier under the ``id`` key; the identifier is never stored inside the
document body. No multi-document transaction is offered: callers that
write several documents must cope with partial completion themselves.
"""

import copy
import uuid
from abc import ABC, abstractmethod
from typing import Any, Optional

from errors import NotFoundError
from utils.logger import get_logger

logger = get_logger(__name__)

Document = dict[str, Any]


def as_amount(value) -> float:
    """Read a stored amount; missing or non-numeric values count as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class RecordStore(ABC):
    """Contract shared by every persistence backend."""

    @abstractmethod
    def list(self, collection: str, filters: Optional[dict] = None) -> list[Document]:
        """
        Fetch the documents of a collection.

        Args:
            collection: Collection name.
            filters: Optional field/value pairs; a document matches when every
                pair is equal. Nested fields are not supported.

        Returns:
            Documents in no particular order.
        """

    @abstractmethod
    def get(self, collection: str, record_id: str) -> Document:
        """Fetch one document. Raises NotFoundError if it does not exist."""

    @abstractmethod
    def create(self, collection: str, fields: Document) -> str:
        """Insert a document and return its store-assigned identifier."""

    @abstractmethod
    def update(self, collection: str, record_id: str, fields: Document) -> None:
        """Merge `fields` into an existing document. Raises NotFoundError."""

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> None:
        """Remove a document. Raises NotFoundError."""

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex[:20]

    @staticmethod
    def _body(fields: Document) -> Document:
        return {k: v for k, v in fields.items() if k != "id"}


class InMemoryRecordStore(RecordStore):
    """
    Dictionary-backed store.

    Used for local runs (STORE_BACKEND=memory) and by the test-suite.
    Documents are deep-copied in and out so callers never share state
    with the store.
    """

    def __init__(self):
        self._collections: dict[str, dict[str, Document]] = {}

    def _collection(self, name: str) -> dict[str, Document]:
        return self._collections.setdefault(name, {})

    def list(self, collection: str, filters: Optional[dict] = None) -> list[Document]:
        docs = []
        for record_id, body in self._collection(collection).items():
            if filters and any(body.get(k) != v for k, v in filters.items()):
                continue
            docs.append({**copy.deepcopy(body), "id": record_id})
        return docs

    def get(self, collection: str, record_id: str) -> Document:
        body = self._collection(collection).get(record_id)
        if body is None:
            raise NotFoundError(collection, record_id)
        return {**copy.deepcopy(body), "id": record_id}

    def create(self, collection: str, fields: Document) -> str:
        record_id = self.new_id()
        self._collection(collection)[record_id] = copy.deepcopy(self._body(fields))
        logger.debug(f"Created {collection}/{record_id}")
        return record_id

    def update(self, collection: str, record_id: str, fields: Document) -> None:
        docs = self._collection(collection)
        if record_id not in docs:
            raise NotFoundError(collection, record_id)
        docs[record_id].update(copy.deepcopy(self._body(fields)))

    def delete(self, collection: str, record_id: str) -> None:
        docs = self._collection(collection)
        if record_id not in docs:
            raise NotFoundError(collection, record_id)
        del docs[record_id]
        logger.debug(f"Deleted {collection}/{record_id}")

    def count(self, collection: str) -> int:
        return len(self._collection(collection))
