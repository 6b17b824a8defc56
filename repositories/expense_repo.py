"""
repositories/expense_repo.py
-----------------------------
Data access layer for expenses and their line items.
Expenses live in `expenses`; items live beside them in `expense_items`
and point back through `expenseId`. Joining is done here, client-side.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Optional

from models.expense import Expense, ExpenseItem, ExpenseStatus, normalize_status
from repositories.record_store import Document, RecordStore, as_amount
from utils.dates import now_iso, parse_date, to_iso

EXPENSES = "expenses"
ITEMS = "expense_items"


class ExpenseRepository:
    """Repository for CRUD operations on expense and expense item documents."""

    def __init__(self, store: RecordStore):
        self.store = store

    # ── CREATE ────────────────────────────────────────────

    def add(self, expense: Expense) -> Expense:
        """
        Insert the expense document only.

        Items are written separately with `add_item` so that the caller
        controls (and can report on) each write.
        """
        expense.created_at = expense.created_at or now_iso()
        expense.id = self.store.create(EXPENSES, self._expense_to_document(expense))
        return expense

    def add_item(self, expense_id: str, item: ExpenseItem) -> ExpenseItem:
        item.expense_id = expense_id
        item.created_at = item.created_at or now_iso()
        item.id = self.store.create(ITEMS, self._item_to_document(item))
        return item

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, expense_id: str, with_items: bool = True) -> Expense:
        """
        Fetch one expense.

        Raises:
            NotFoundError: If the expense does not exist.
        """
        expense = self._document_to_expense(self.store.get(EXPENSES, expense_id))
        if with_items:
            expense.items = self.list_items(expense_id)
        return expense

    def list(self, project_id: Optional[str] = None) -> list[Expense]:
        """Expenses without their items (see `list_with_items`)."""
        filters = {"projectId": project_id} if project_id is not None else None
        return [self._document_to_expense(d) for d in self.store.list(EXPENSES, filters)]

    def list_items(self, expense_id: Optional[str] = None) -> list[ExpenseItem]:
        filters = {"expenseId": expense_id} if expense_id is not None else None
        items = [self._document_to_item(d) for d in self.store.list(ITEMS, filters)]
        items.sort(key=lambda i: i.created_at or "")
        return items

    def list_with_items(self, project_id: Optional[str] = None) -> list[Expense]:
        """
        Expenses joined with their items.

        Reads the two collections one after the other; a concurrent edit
        between the reads can make the result transiently inconsistent.
        """
        expenses = self.list(project_id)
        by_expense = self.group_items(self.list_items())
        for expense in expenses:
            expense.items = by_expense.get(expense.id, [])
        return expenses

    def references(self) -> list[str]:
        return [d.get("reference") for d in self.store.list(EXPENSES) if d.get("reference")]

    @staticmethod
    def group_items(items: list[ExpenseItem]) -> dict[str, list[ExpenseItem]]:
        grouped: dict[str, list[ExpenseItem]] = defaultdict(list)
        for item in items:
            grouped[item.expense_id].append(item)
        return dict(grouped)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, expense: Expense) -> None:
        """Update the expense document (items are untouched)."""
        fields = self._expense_to_document(expense)
        fields.pop("createdAt", None)
        self.store.update(EXPENSES, expense.id, fields)

    def set_status(self, expense_id: str, status: ExpenseStatus) -> None:
        self.store.update(EXPENSES, expense_id, {"status": status.value})

    def update_item(self, item_id: str, fields: Document) -> None:
        self.store.update(ITEMS, item_id, fields)

    def get_item(self, item_id: str) -> ExpenseItem:
        return self._document_to_item(self.store.get(ITEMS, item_id))

    # ── DELETE ────────────────────────────────────────────

    def delete(self, expense_id: str) -> None:
        self.store.delete(EXPENSES, expense_id)

    def delete_item(self, item_id: str) -> None:
        self.store.delete(ITEMS, item_id)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _expense_to_document(expense: Expense) -> Document:
        doc = {
            "date": to_iso(expense.date),
            "description": expense.description,
            "projectId": expense.project_id,
            "status": expense.status.value,
            "userId": expense.created_by,
            "createdAt": expense.created_at,
        }
        if expense.reference:
            doc["reference"] = expense.reference
        return doc

    @staticmethod
    def _item_to_document(item: ExpenseItem) -> Document:
        return {
            "expenseId": item.expense_id,
            "articleId": item.article_id,
            "designation": item.designation,
            "reference": item.reference,
            "quantity": item.quantity,
            "unit": item.unit,
            "unitPrice": item.unit_price,
            "supplierId": item.supplier_id,
            "supplier": item.supplier,
            "amountGiven": item.amount_given,
            "beneficiary": item.beneficiary,
            "userId": item.created_by,
            "createdAt": item.created_at,
        }

    @staticmethod
    def _document_to_expense(doc: Document) -> Expense:
        return Expense(
            id=doc["id"],
            project_id=doc.get("projectId", ""),
            date=parse_date(doc.get("date")),
            description=doc.get("description") or "",
            status=normalize_status(doc.get("status")),
            reference=doc.get("reference"),
            created_by=doc.get("userId"),
            created_at=doc.get("createdAt"),
        )

    @staticmethod
    def _document_to_item(doc: Document) -> ExpenseItem:
        return ExpenseItem(
            id=doc["id"],
            expense_id=doc.get("expenseId"),
            article_id=doc.get("articleId"),
            designation=doc.get("designation") or "",
            reference=doc.get("reference") or "",
            quantity=as_amount(doc.get("quantity")),
            unit=doc.get("unit") or "",
            unit_price=as_amount(doc.get("unitPrice")),
            supplier_id=doc.get("supplierId"),
            supplier=doc.get("supplier") or "",
            amount_given=as_amount(doc.get("amountGiven")),
            beneficiary=doc.get("beneficiary"),
            created_by=doc.get("userId"),
            created_at=doc.get("createdAt"),
        )
