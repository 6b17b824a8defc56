"""
Cash inflow protocols: create / update / delete and their project effects.
"""

from datetime import date

import pytest

from errors import NotFoundError, PermissionDeniedError, ValidationError
from repositories.cash_inflow_repo import CashInflowRepository


@pytest.fixture
def inflows(store):
    return CashInflowRepository(store)


class TestCreateCashInflow:
    """Creating an inflow credits its project"""

    def test_credits_project(self, coordinator, actor, make_project, projects):
        p1 = make_project()

        result = coordinator.create_cash_inflow(actor, 1000, "bank", p1.id, date(2024, 10, 1))

        assert result.success
        project = projects.get_by_id(p1.id)
        assert project.balance == 1000
        assert project.total_income == 1000
        assert project.updated_at is not None

    def test_record_is_stored(self, coordinator, actor, make_project, inflows):
        p1 = make_project()

        result = coordinator.create_cash_inflow(
            actor, "250", "granule", p1.id, "2024-10-03", description="Vente"
        )

        stored = inflows.get_by_id(result.record_id)
        assert stored.amount == 250
        assert stored.source == "granule"
        assert stored.date == date(2024, 10, 3)
        assert stored.created_by == actor.user_id

    @pytest.mark.parametrize(
        "amount, source, project_id, field",
        [
            (-1, "bank", "P1", "amount"),
            ("abc", "bank", "P1", "amount"),
            (None, "bank", "P1", "amount"),
            (100, "lottery", "P1", "source"),
            (100, "bank", "", "project_id"),
            (100, "bank", None, "project_id"),
        ],
    )
    def test_rejects_invalid_input_without_writing(
        self, coordinator, actor, store, amount, source, project_id, field
    ):
        result = coordinator.create_cash_inflow(actor, amount, source, project_id)

        assert not result.success
        assert isinstance(result.error, ValidationError)
        assert result.error.field == field
        assert store.count("cash_inflow") == 0

    def test_missing_project_is_tolerated(self, coordinator, actor, inflows):
        result = coordinator.create_cash_inflow(actor, 500, "bank", "ghost-project")

        assert result.success
        assert inflows.get_by_id(result.record_id).project_id == "ghost-project"

    def test_reader_cannot_create(self, coordinator, reader, make_project, store):
        p1 = make_project()

        result = coordinator.create_cash_inflow(reader, 100, "bank", p1.id)

        assert not result.success
        assert isinstance(result.error, PermissionDeniedError)
        assert store.count("cash_inflow") == 0

    def test_advance_inflow_refreshes_debt(self, coordinator, actor, make_project, tracker):
        p1 = make_project()
        assert tracker.current() == 0

        coordinator.create_cash_inflow(actor, 800, "pca", p1.id)

        assert not tracker.is_stale
        assert tracker.current() == 800

    def test_non_advance_inflow_leaves_debt_alone(self, coordinator, actor, make_project, tracker):
        p1 = make_project()
        tracker.refresh()

        coordinator.create_cash_inflow(actor, 800, "bank", p1.id)

        assert tracker.current() == 0


class TestUpdateCashInflow:
    """Editing an inflow moves its amount between projects"""

    def test_amount_change_applies_delta(self, coordinator, actor, make_project, projects):
        p1 = make_project()
        created = coordinator.create_cash_inflow(actor, 1000, "bank", p1.id)

        result = coordinator.update_cash_inflow(actor, created.record_id, amount=400)

        assert result.success
        project = projects.get_by_id(p1.id)
        assert project.balance == 400
        assert project.total_income == 400

    def test_project_change_moves_amount(self, coordinator, actor, make_project, projects, inflows):
        p1 = make_project("P1")
        p2 = make_project("P2")
        created = coordinator.create_cash_inflow(actor, 700, "bank", p1.id)

        coordinator.update_cash_inflow(actor, created.record_id, amount=650, project_id=p2.id)

        assert projects.get_by_id(p1.id).total_income == 0
        assert projects.get_by_id(p1.id).balance == 0
        assert projects.get_by_id(p2.id).total_income == 650
        assert inflows.get_by_id(created.record_id).project_id == p2.id

    def test_untouched_fields_are_kept(self, coordinator, actor, make_project, inflows):
        p1 = make_project()
        created = coordinator.create_cash_inflow(
            actor, 100, "rebus", p1.id, date(2024, 1, 2), description="Ferraille"
        )

        coordinator.update_cash_inflow(actor, created.record_id, description="Ferraille triée")

        stored = inflows.get_by_id(created.record_id)
        assert (stored.amount, stored.source, stored.date) == (100, "rebus", date(2024, 1, 2))
        assert stored.description == "Ferraille triée"

    def test_switching_to_advance_source_refreshes_debt(
        self, coordinator, actor, make_project, tracker
    ):
        p1 = make_project()
        created = coordinator.create_cash_inflow(actor, 300, "bank", p1.id)

        coordinator.update_cash_inflow(actor, created.record_id, source="pca")
        assert tracker.current() == 300

        coordinator.update_cash_inflow(actor, created.record_id, source="bank")
        assert tracker.current() == 0

    def test_unknown_inflow(self, coordinator, actor):
        result = coordinator.update_cash_inflow(actor, "missing", amount=10)

        assert not result.success
        assert isinstance(result.error, NotFoundError)

    def test_invalid_amount_changes_nothing(self, coordinator, actor, make_project, projects):
        p1 = make_project()
        created = coordinator.create_cash_inflow(actor, 1000, "bank", p1.id)

        result = coordinator.update_cash_inflow(actor, created.record_id, amount=-5)

        assert isinstance(result.error, ValidationError)
        assert projects.get_by_id(p1.id).balance == 1000


class TestDeleteCashInflow:
    """Deleting an inflow debits its project"""

    def test_debits_project(self, coordinator, actor, make_project, projects, store):
        p1 = make_project()
        keep = coordinator.create_cash_inflow(actor, 300, "bank", p1.id)
        gone = coordinator.create_cash_inflow(actor, 1000, "bank", p1.id)

        result = coordinator.delete_cash_inflow(actor, gone.record_id)

        assert result.success
        assert store.count("cash_inflow") == 1
        project = projects.get_by_id(p1.id)
        assert project.balance == 300
        assert project.total_income == 300
        assert keep.record_id != gone.record_id

    def test_total_income_never_negative(self, coordinator, actor, make_project, projects, inflows):
        """A stale cache smaller than the deleted amount floors at zero"""
        p1 = make_project()
        created = coordinator.create_cash_inflow(actor, 1000, "bank", p1.id)
        project = projects.get_by_id(p1.id)
        project.total_income = 200
        project.balance = 200
        projects.save_aggregates(project)

        coordinator.delete_cash_inflow(actor, created.record_id)

        project = projects.get_by_id(p1.id)
        assert project.total_income == 0
        assert project.balance == -800

    def test_unknown_inflow(self, coordinator, actor):
        result = coordinator.delete_cash_inflow(actor, "missing")

        assert isinstance(result.error, NotFoundError)

    def test_advance_inflow_delete_refreshes_debt(self, coordinator, actor, make_project, tracker):
        p1 = make_project()
        created = coordinator.create_cash_inflow(actor, 900, "pca", p1.id)
        assert tracker.current() == 900

        coordinator.delete_cash_inflow(actor, created.record_id)

        assert tracker.current() == 0
