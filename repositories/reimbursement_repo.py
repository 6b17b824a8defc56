"""
repositories/reimbursement_repo.py
----------------------------------
Data access layer for advance-account reimbursements.
"""

from models.reimbursement import Reimbursement
from repositories.record_store import RecordStore, as_amount
from utils.dates import now_iso, parse_date, to_iso

COLLECTION = "pca_reimbursements"


class ReimbursementRepository:
    """Repository for reimbursement documents."""

    def __init__(self, store: RecordStore):
        self.store = store

    def add(self, reimbursement: Reimbursement) -> Reimbursement:
        reimbursement.created_at = reimbursement.created_at or now_iso()
        reimbursement.id = self.store.create(COLLECTION, {
            "amount": reimbursement.amount,
            "description": reimbursement.description,
            "userId": reimbursement.created_by,
            "date": to_iso(reimbursement.date),
            "createdAt": reimbursement.created_at,
        })
        return reimbursement

    def list(self) -> list[Reimbursement]:
        return [
            Reimbursement(
                id=d["id"],
                amount=as_amount(d.get("amount")),
                description=d.get("description") or "",
                date=parse_date(d.get("date")),
                created_by=d.get("userId"),
                created_at=d.get("createdAt"),
            )
            for d in self.store.list(COLLECTION)
        ]
