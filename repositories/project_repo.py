"""
repositories/project_repo.py
----------------------------
Data access layer for projects and their cached aggregate fields.
"""

from models.project import Project
from repositories.record_store import Document, RecordStore, as_amount
from utils.dates import now_iso, parse_date, to_iso

COLLECTION = "projects"


class ProjectRepository:
    """Repository for CRUD operations on project documents."""

    def __init__(self, store: RecordStore):
        self.store = store

    def add(self, project: Project) -> Project:
        project.updated_at = project.updated_at or now_iso()
        project.id = self.store.create(COLLECTION, self._to_document(project))
        return project

    def get_by_id(self, project_id: str) -> Project:
        """Raises NotFoundError if absent."""
        return self._document_to_project(self.store.get(COLLECTION, project_id))

    def list(self) -> list[Project]:
        return [self._document_to_project(d) for d in self.store.list(COLLECTION)]

    def update_details(self, project: Project) -> None:
        """Write name, description and dates; cached aggregates are left alone."""
        project.updated_at = now_iso()
        self.store.update(COLLECTION, project.id, {
            "name": project.name,
            "description": project.description,
            "startDate": to_iso(project.start_date),
            "endDate": to_iso(project.end_date),
            "updatedAt": project.updated_at,
        })

    def save_aggregates(self, project: Project) -> None:
        """Write back the cached balance fields with a fresh timestamp."""
        project.updated_at = now_iso()
        self.store.update(COLLECTION, project.id, {
            "balance": project.balance,
            "totalIncome": project.total_income,
            "totalExpenses": project.total_expenses,
            "updatedAt": project.updated_at,
        })

    def delete(self, project_id: str) -> None:
        self.store.delete(COLLECTION, project_id)

    @staticmethod
    def _to_document(project: Project) -> Document:
        return {
            "name": project.name,
            "description": project.description,
            "startDate": to_iso(project.start_date),
            "endDate": to_iso(project.end_date),
            "balance": project.balance,
            "totalIncome": project.total_income,
            "totalExpenses": project.total_expenses,
            "updatedAt": project.updated_at,
            "userId": project.created_by,
        }

    @staticmethod
    def _document_to_project(doc: Document) -> Project:
        return Project(
            id=doc["id"],
            name=doc.get("name") or "",
            description=doc.get("description") or "",
            start_date=parse_date(doc.get("startDate")),
            end_date=parse_date(doc.get("endDate")),
            balance=as_amount(doc.get("balance")),
            total_income=as_amount(doc.get("totalIncome")),
            total_expenses=as_amount(doc.get("totalExpenses")),
            updated_at=doc.get("updatedAt"),
            created_by=doc.get("userId"),
        )
