"""
repositories/ - Data Access Layer
==================================
A RecordStore gives collection-level CRUD over ledger documents
(PostgreSQL or in-memory). Each repository wraps the store for one domain
entity and converts raw documents into domain model objects.
"""

from config import STORE_BACKEND
from repositories.record_store import InMemoryRecordStore, RecordStore


def build_store(backend: str = STORE_BACKEND) -> RecordStore:
    """Create the RecordStore selected by configuration."""
    if backend == "memory":
        return InMemoryRecordStore()
    if backend == "postgres":
        from repositories.postgres_store import PostgresRecordStore
        return PostgresRecordStore()
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")
