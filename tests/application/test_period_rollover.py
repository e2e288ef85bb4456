"""Tests for the PeriodRolloverCoordinator use case."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from budget_ledger.application.use_cases.account_ledger import AccountLedger
from budget_ledger.application.use_cases.budget_tracker import BudgetTracker
from budget_ledger.application.use_cases.commands import RecordExpenseCommand
from budget_ledger.application.use_cases.period_rollover import (
    PeriodRolloverCoordinator,
)
from budget_ledger.application.use_cases.transaction_engine import (
    TransactionEngine,
)
from budget_ledger.domain.errors import StateError, ValidationError
from budget_ledger.domain.models import (
    AccountType,
    Budget,
    BudgetCategory,
    BudgetFilter,
)
from budget_ledger.infrastructure.memory_store import InMemoryLedgerStore


TODAY = date(2024, 3, 15)


@pytest.fixture
def env():
    store = InMemoryLedgerStore()
    tracker = BudgetTracker(store, logger=MagicMock(), audit_logger=MagicMock())
    engine = TransactionEngine(
        store,
        logger=MagicMock(),
        audit_logger=MagicMock(),
        today=lambda: TODAY,
    )
    audit = MagicMock()
    coordinator = PeriodRolloverCoordinator(
        store,
        tracker,
        logger=MagicMock(),
        audit_logger=audit,
        today=lambda: TODAY,
    )
    account = AccountLedger(store, logger=MagicMock()).create(
        "Checking", AccountType.CHECKING, "10000"
    )
    return {
        "store": store,
        "tracker": tracker,
        "engine": engine,
        "coordinator": coordinator,
        "audit": audit,
        "account_id": account.id,
    }


def _spend(env, amount, category, day) -> None:
    env["engine"].record_expense(
        RecordExpenseCommand(env["account_id"], amount, category, day)
    )


@pytest.mark.parametrize(
    "year, month",
    [(1899, 1), (2101, 1), (2024, 0), (2024, 13)],
)
def test_close_period_rejects_out_of_range(env, year, month) -> None:
    with pytest.raises(ValidationError):
        env["coordinator"].close_period(year, month)


def test_close_period_rejects_future_month(env) -> None:
    with pytest.raises(StateError):
        env["coordinator"].close_period(2024, 4)


def test_close_period_closes_overlapping_budgets_once(env) -> None:
    tracker = env["tracker"]
    tracker.create(BudgetCategory.GROCERIES, "400", date(2024, 1, 1), date(2024, 1, 31))
    tracker.create(BudgetCategory.HOUSING, "1200", date(2023, 12, 15), date(2024, 1, 14))
    february = tracker.create(BudgetCategory.UTILITIES, "90", date(2024, 2, 1), date(2024, 2, 29))

    assert env["coordinator"].close_period(2024, 1) == 2
    assert env["coordinator"].close_period(2024, 1) == 0
    assert tracker.get(february.id).active is True
    assert tracker.list(BudgetFilter(active=True)) == [tracker.get(february.id)]
    env["audit"].info.assert_called()


def test_current_month_can_be_closed(env) -> None:
    env["tracker"].create(BudgetCategory.GROCERIES, "400", date(2024, 3, 1), date(2024, 3, 31))

    assert env["coordinator"].close_period(2024, 3) == 1


def test_initialize_period_copies_source_month(env) -> None:
    tracker = env["tracker"]
    tracker.create(BudgetCategory.GROCERIES, "400", date(2024, 1, 1), date(2024, 1, 31))
    tracker.create(BudgetCategory.HOUSING, "1200", date(2024, 1, 1), date(2024, 1, 31))

    created = env["coordinator"].initialize_period(2024, 2, 2024, 1)

    assert len(created) == 2
    assert {budget.period_end for budget in created} == {date(2024, 2, 29)}
    assert {budget.allocated_amount for budget in created} == {Decimal("400"), Decimal("1200")}


def test_initialize_period_requires_source_budgets(env) -> None:
    with pytest.raises(StateError):
        env["coordinator"].initialize_period(2024, 2, 2024, 1)


def test_initialize_period_refuses_populated_target(env) -> None:
    tracker = env["tracker"]
    tracker.create(BudgetCategory.GROCERIES, "400", date(2024, 1, 1), date(2024, 1, 31))
    tracker.create(BudgetCategory.DINING_OUT, "100", date(2024, 2, 1), date(2024, 2, 29))

    with pytest.raises(StateError):
        env["coordinator"].initialize_period(2024, 2, 2024, 1)

    february = tracker.list(BudgetFilter(period_start=date(2024, 2, 1), period_end=date(2024, 2, 29)))
    assert [budget.category for budget in february] == [BudgetCategory.DINING_OUT]


def test_initialize_period_validates_months(env) -> None:
    with pytest.raises(ValidationError):
        env["coordinator"].initialize_period(2024, 13, 2024, 1)


def test_summarize_reports_utilization_and_over_budget_items(env) -> None:
    """700 allocated and 670 spent is 95.71% with one item over budget."""
    tracker = env["tracker"]
    tracker.create(BudgetCategory.GROCERIES, "400", date(2024, 1, 1), date(2024, 1, 31))
    housing = tracker.create(BudgetCategory.HOUSING, "300", date(2024, 1, 1), date(2024, 1, 31))
    _spend(env, "450", BudgetCategory.GROCERIES, date(2024, 1, 10))
    _spend(env, "220", BudgetCategory.HOUSING, date(2024, 1, 2))
    _spend(env, "999", BudgetCategory.ENTERTAINMENT, date(2024, 1, 2))
    tracker.close(housing.id)

    summary = env["coordinator"].summarize(2024, 1)

    assert summary.total_allocated == Decimal("700")
    assert summary.total_spent == Decimal("670")
    assert summary.utilization == Decimal("95.71")
    assert summary.over_budget_count == 1
    assert summary.total_budgets == 2
    assert summary.period_start == date(2024, 1, 1)
    assert summary.period_end == date(2024, 1, 31)


def test_summarize_zero_allocation_is_zero_percent(env) -> None:
    with env["store"].unit_of_work() as uow:
        uow.budgets.add(
            Budget(BudgetCategory.SAVINGS, Decimal("0"), date(2024, 1, 1), date(2024, 1, 31))
        )
    _spend(env, "10", BudgetCategory.SAVINGS, date(2024, 1, 5))

    summary = env["coordinator"].summarize(2024, 1)

    assert summary.utilization == Decimal("0")
    assert summary.over_budget_count == 1


def test_summarize_without_budgets_is_a_state_error(env) -> None:
    with pytest.raises(StateError):
        env["coordinator"].summarize(2024, 1)
