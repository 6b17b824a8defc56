"""
repositories/cash_inflow_repo.py
--------------------------------
Data access layer for cash inflows (`cash_inflow` collection).
"""

from typing import Optional

from models.cash_inflow import CashInflow
from repositories.record_store import Document, RecordStore, as_amount
from utils.dates import now_iso, parse_date, to_iso

COLLECTION = "cash_inflow"


class CashInflowRepository:
    """Repository for CRUD operations on cash inflow documents."""

    def __init__(self, store: RecordStore):
        self.store = store

    def add(self, inflow: CashInflow) -> CashInflow:
        """Persist a new inflow and populate its `id` and `created_at`."""
        inflow.created_at = inflow.created_at or now_iso()
        inflow.id = self.store.create(COLLECTION, self._to_document(inflow))
        return inflow

    def get_by_id(self, inflow_id: str) -> CashInflow:
        """Raises NotFoundError if absent."""
        return self._document_to_inflow(self.store.get(COLLECTION, inflow_id))

    def list(
        self, project_id: Optional[str] = None, source: Optional[str] = None
    ) -> list[CashInflow]:
        filters = {}
        if project_id is not None:
            filters["projectId"] = project_id
        if source is not None:
            filters["source"] = source
        docs = self.store.list(COLLECTION, filters or None)
        return [self._document_to_inflow(d) for d in docs]

    def update(self, inflow: CashInflow) -> None:
        fields = self._to_document(inflow)
        fields.pop("createdAt", None)
        self.store.update(COLLECTION, inflow.id, fields)

    def delete(self, inflow_id: str) -> None:
        self.store.delete(COLLECTION, inflow_id)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _to_document(inflow: CashInflow) -> Document:
        return {
            "date": to_iso(inflow.date),
            "amount": inflow.amount,
            "source": inflow.source,
            "description": inflow.description,
            "projectId": inflow.project_id,
            "userId": inflow.created_by,
            "createdAt": inflow.created_at,
        }

    @staticmethod
    def _document_to_inflow(doc: Document) -> CashInflow:
        return CashInflow(
            id=doc["id"],
            project_id=doc.get("projectId", ""),
            amount=as_amount(doc.get("amount")),
            source=doc.get("source", ""),
            date=parse_date(doc.get("date")),
            description=doc.get("description") or "",
            created_by=doc.get("userId"),
            created_at=doc.get("createdAt"),
        )
