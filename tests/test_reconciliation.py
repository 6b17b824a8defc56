"""
Partial failures, cache reconciliation and the dashboard read side.
"""

from datetime import date

import pytest

from errors import NotFoundError, PartialFailureError, StoreUnavailableError
from repositories.cash_inflow_repo import CashInflowRepository
from services.dashboard_service import DashboardService


def line(quantity, unit_price, amount_given=0):
    return {"designation": "Gravier", "quantity": quantity, "unit_price": unit_price,
            "amount_given": amount_given}


@pytest.fixture
def dashboard(store, coordinator):
    return DashboardService(store, coordinator)


class TestPartialFailure:
    """Failures after the first write are reported, not hidden"""

    def test_project_update_fails_after_inflow_written(
        self, coordinator, actor, store, make_project, projects
    ):
        p1 = make_project()
        store.fail_next("update", "projects")

        result = coordinator.create_cash_inflow(actor, 1000, "bank", p1.id)

        assert not result.success
        assert isinstance(result.error, PartialFailureError)
        assert result.failed_step == "project_aggregates"
        assert result.error.completed == ["inflow"]
        assert isinstance(result.error.cause, StoreUnavailableError)
        inflow = CashInflowRepository(store).get_by_id(result.record_id)
        assert inflow.amount == 1000
        assert projects.get_by_id(p1.id).balance == 0

        totals = coordinator.recompute_project_aggregates(p1.id)

        assert totals.balance == 1000
        project = projects.get_by_id(p1.id)
        assert (project.total_income, project.balance) == (1000, 1000)

    def test_first_write_failure_is_clean(self, coordinator, actor, store, make_project):
        p1 = make_project()
        store.fail_next("create", "cash_inflow")

        result = coordinator.create_cash_inflow(actor, 1000, "bank", p1.id)

        assert isinstance(result.error, StoreUnavailableError)
        assert result.failed_step is None
        assert store.count("cash_inflow") == 0

    def test_item_write_failure_names_the_item(self, coordinator, actor, store, make_project):
        p1 = make_project()
        store.fail_next("create", "expense_items")

        result = coordinator.create_expense(actor, p1.id, [line(1, 10), line(2, 5)])

        assert result.failed_step == "item[0]"
        assert result.error.completed == ["expense"]
        assert store.count("expenses") == 1

    def test_delete_expense_stops_at_failed_item(self, coordinator, actor, store, make_project):
        p1 = make_project()
        created = coordinator.create_expense(actor, p1.id, [line(1, 10), line(2, 5)])
        store.fail_next("delete", "expense_items")

        result = coordinator.delete_expense(actor, created.record_id)

        assert result.failed_step.startswith("delete_item:")
        assert result.error.completed == ["project_aggregates"]
        assert store.count("expenses") == 1

    def test_missing_project_is_reported_as_skipped(self, coordinator, actor, store):
        store.fail_next("list", "cash_inflow")

        result = coordinator.create_cash_inflow(actor, 400, "pca", "ghost-project")

        assert result.failed_step == "advance_debt"
        assert result.error.completed == ["inflow", "project_aggregates(skipped)"]

    def test_skipped_adjustment_is_not_a_write(self, coordinator, actor, store):
        created = coordinator.create_cash_inflow(actor, 400, "bank", "ghost-project")
        store.fail_next("delete", "cash_inflow")

        result = coordinator.delete_cash_inflow(actor, created.record_id)

        assert isinstance(result.error, StoreUnavailableError)
        assert result.failed_step is None
        assert store.count("cash_inflow") == 1

    def test_failing_activity_log_does_not_fail_operation(
        self, coordinator, actor, store, make_project
    ):
        p1 = make_project()
        store.fail_next("create", "activity_logs")

        result = coordinator.create_cash_inflow(actor, 10, "espece", p1.id)

        assert result.success
        assert store.count("activity_logs") == 0


class TestRecompute:
    """Cached project aggregates rebuilt from raw records"""

    def test_repairs_corrupted_cache(self, coordinator, actor, make_project, projects):
        p1 = make_project()
        coordinator.create_cash_inflow(actor, 1000, "bank", p1.id)
        coordinator.create_expense(actor, p1.id, [line(2, 100)])
        project = projects.get_by_id(p1.id)
        project.balance, project.total_income, project.total_expenses = 5, 5, 0
        projects.save_aggregates(project)

        totals = coordinator.recompute_project_aggregates(p1.id)

        assert (totals.total_income, totals.total_expenses, totals.balance) == (1000, 200, 800)
        project = projects.get_by_id(p1.id)
        assert project.cache_is_consistent()
        assert project.balance == 800

    def test_consistent_cache_is_not_rewritten(self, coordinator, actor, store, make_project):
        p1 = make_project()
        coordinator.create_cash_inflow(actor, 1000, "bank", p1.id)
        store.calls.clear()

        coordinator.recompute_project_aggregates(p1.id)

        assert ("update", "projects") not in store.calls

    def test_correct_cache_with_expenses_is_kept(
        self, coordinator, actor, store, make_project, projects
    ):
        p1 = make_project()
        coordinator.create_cash_inflow(actor, 1000, "bank", p1.id)
        coordinator.create_expense(actor, p1.id, [line(2, 100)])
        store.calls.clear()

        totals = coordinator.recompute_project_aggregates(p1.id)

        assert (totals.total_income, totals.total_expenses, totals.balance) == (1000, 200, 800)
        assert ("update", "projects") not in store.calls
        project = projects.get_by_id(p1.id)
        assert (project.total_expenses, project.balance) == (200, 800)

    def test_unknown_project(self, coordinator):
        with pytest.raises(NotFoundError):
            coordinator.recompute_project_aggregates("ghost")

    def test_reconcile_all(self, coordinator, actor, make_project, projects):
        p1, p2 = make_project("A"), make_project("B", balance=99, total_income=99)
        coordinator.create_cash_inflow(actor, 300, "bank", p1.id)

        result = coordinator.reconcile_all_projects()

        assert result[p1.id].balance == 300
        assert result[p2.id].balance == 0
        assert projects.get_by_id(p2.id).total_income == 0


class TestDashboard:
    """Dashboard totals"""

    @pytest.fixture
    def ledger(self, coordinator, actor, make_project):
        p1 = make_project()
        coordinator.create_cash_inflow(actor, 600, "bank", p1.id, date(2024, 10, 1))
        coordinator.create_cash_inflow(actor, 400, "pca", p1.id, date(2024, 11, 3))
        validated = coordinator.create_expense(actor, p1.id, [line(1, 300, 350)], date(2024, 10, 5))
        coordinator.validate_expense(actor, validated.record_id)
        coordinator.create_expense(actor, p1.id, [line(1, 200, 150)], date(2024, 11, 8))
        return p1

    def test_global_and_effective_balance(self, dashboard, ledger):
        board = dashboard.load()

        assert board.totals.total_income == 1000
        assert board.totals.global_balance == 500
        assert board.totals.effective_balance == 700
        assert board.totals.advance_debt == 400
        assert board.project_totals[ledger.id].balance == 500

    def test_remainders(self, dashboard, ledger):
        board = dashboard.load()

        assert board.remainders.to_recover == 50
        assert board.remainders.to_pay == 50

    def test_load_repairs_cache(self, dashboard, ledger, projects):
        project = projects.get_by_id(ledger.id)
        project.balance = 0
        projects.save_aggregates(project)

        board = dashboard.load()

        assert projects.get_by_id(ledger.id).balance == 500
        assert [p.balance for p in board.projects] == [500]

    def test_load_without_reconcile_leaves_cache(self, dashboard, ledger, projects):
        project = projects.get_by_id(ledger.id)
        project.balance = 0
        projects.save_aggregates(project)

        board = dashboard.load(reconcile=False)

        assert board.project_totals[ledger.id].balance == 500
        assert projects.get_by_id(ledger.id).balance == 0

    def test_period_totals(self, dashboard, ledger):
        october = dashboard.period_totals(date(2024, 10, 1), date(2024, 10, 31))

        assert october.total_income == 600
        assert october.total_expenses == 300
        assert october.validated_expenses == 300
        assert october.advance_debt == 0

    def test_snapshot_drop_after_delete(self, dashboard, coordinator, actor, ledger):
        snapshot = dashboard.load_snapshot()
        gone = next(i for i in snapshot.inflows if i.source == "bank")

        assert coordinator.delete_cash_inflow(actor, gone.id).success

        assert snapshot.drop_inflow(gone.id).totals() == dashboard.load_snapshot().totals()
