"""
repositories/closing_repo.py
----------------------------
Data access layer for period-end cash closings.
"""

from models.closing import Closing
from repositories.record_store import RecordStore, as_amount
from utils.dates import parse_date, to_iso

COLLECTION = "closings"


class ClosingRepository:
    """Repository for closing documents."""

    def __init__(self, store: RecordStore):
        self.store = store

    def add(self, closing: Closing) -> Closing:
        closing.id = self.store.create(COLLECTION, {
            "date": to_iso(closing.date),
            "initialBalance": closing.initial_balance,
            "finalBalance": closing.final_balance,
            "difference": closing.difference,
            "notes": closing.notes,
            "userId": closing.created_by,
        })
        return closing

    def list(self) -> list[Closing]:
        return [
            Closing(
                id=d["id"],
                date=parse_date(d.get("date")),
                initial_balance=as_amount(d.get("initialBalance")),
                final_balance=as_amount(d.get("finalBalance")),
                difference=as_amount(d.get("difference")),
                notes=d.get("notes") or "",
                created_by=d.get("userId"),
            )
            for d in self.store.list(COLLECTION)
        ]
