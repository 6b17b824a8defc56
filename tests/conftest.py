"""
Shared fixtures: an in-memory store (optionally failing on demand), actors,
and the services wired on top of it.
"""

import pytest

from errors import StoreUnavailableError
from models.project import Project
from repositories.project_repo import ProjectRepository
from repositories.record_store import InMemoryRecordStore
from security.auth import ActorContext
from services.activity_service import ActivityService
from services.advance_debt import AdvanceDebtTracker
from services.ledger_coordinator import LedgerCoordinator


class FlakyStore(InMemoryRecordStore):
    """In-memory store that can be told to fail the next N calls of one kind."""

    def __init__(self):
        super().__init__()
        self._failures: dict[tuple[str, str], list[int]] = {}
        self.calls: list[tuple[str, str]] = []

    def fail_next(self, operation: str, collection: str, times: int = 1, after: int = 0) -> None:
        """Fail `times` calls, once `after` matching calls have gone through."""
        self._failures[(operation, collection)] = [after, times]

    def _maybe_fail(self, operation: str, collection: str) -> None:
        self.calls.append((operation, collection))
        pending = self._failures.get((operation, collection))
        if not pending:
            return
        if pending[0]:
            pending[0] -= 1
            return
        if pending[1]:
            pending[1] -= 1
            raise StoreUnavailableError(f"{operation} on {collection} unavailable")

    def list(self, collection, filters=None):
        self._maybe_fail("list", collection)
        return super().list(collection, filters)

    def get(self, collection, record_id):
        self._maybe_fail("get", collection)
        return super().get(collection, record_id)

    def create(self, collection, fields):
        self._maybe_fail("create", collection)
        return super().create(collection, fields)

    def update(self, collection, record_id, fields):
        self._maybe_fail("update", collection)
        return super().update(collection, record_id, fields)

    def delete(self, collection, record_id):
        self._maybe_fail("delete", collection)
        return super().delete(collection, record_id)


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def actor():
    return ActorContext.writer("user-1", "Awa")


@pytest.fixture
def reader():
    return ActorContext.reader("user-2", "Visiteur")


@pytest.fixture
def activity(store):
    return ActivityService(store)


@pytest.fixture
def tracker(store, activity):
    return AdvanceDebtTracker(store, activity)


@pytest.fixture
def coordinator(store, tracker, activity):
    return LedgerCoordinator(store, advance_debt=tracker, activity=activity)


@pytest.fixture
def projects(store):
    return ProjectRepository(store)


@pytest.fixture
def make_project(projects):
    def _make(name: str = "Chantier A", **cached) -> Project:
        return projects.add(Project(name=name, **cached))
    return _make
