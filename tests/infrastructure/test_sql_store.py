"""Tests for the SQLAlchemy ledger store against in-memory SQLite."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from budget_ledger.application.use_cases.account_ledger import AccountLedger
from budget_ledger.application.use_cases.budget_tracker import BudgetTracker
from budget_ledger.application.use_cases.commands import (
    RecordExpenseCommand,
    RecordRefundCommand,
    RecordTransferCommand,
)
from budget_ledger.application.use_cases.period_rollover import (
    PeriodRolloverCoordinator,
)
from budget_ledger.application.use_cases.recurring_scheduler import (
    RecurringScheduler,
)
from budget_ledger.application.use_cases.transaction_engine import (
    TransactionEngine,
)
from budget_ledger.domain.errors import (
    BudgetOverlapError,
    DuplicateReversalError,
    InsufficientFundsError,
)
from budget_ledger.domain.models import (
    Account,
    AccountFilter,
    AccountType,
    BudgetCategory,
    Frequency,
    Transaction,
    TransactionFilter,
)
from budget_ledger.infrastructure.db import SqlAlchemyDatabaseEngineAdapter
from budget_ledger.infrastructure.sql_store import SqlAlchemyLedgerStore


TODAY = date(2024, 12, 31)


@pytest.fixture
def store():
    adapter = SqlAlchemyDatabaseEngineAdapter("sqlite://")
    ledger_store = SqlAlchemyLedgerStore(adapter, logger=MagicMock())
    ledger_store.create_schema()
    yield ledger_store
    adapter.get_ledger_engine().dispose()


@pytest.fixture
def services(store):
    engine = TransactionEngine(
        store, logger=MagicMock(), audit_logger=MagicMock(), today=lambda: TODAY
    )
    budgets = BudgetTracker(store, logger=MagicMock(), audit_logger=MagicMock())
    return {
        "accounts": AccountLedger(store, logger=MagicMock()),
        "engine": engine,
        "budgets": budgets,
        "recurring": RecurringScheduler(
            store, engine, logger=MagicMock(), today=lambda: TODAY
        ),
        "periods": PeriodRolloverCoordinator(
            store,
            budgets,
            logger=MagicMock(),
            audit_logger=MagicMock(),
            today=lambda: TODAY,
        ),
    }


def test_create_schema_builds_every_table(store) -> None:
    engine = store._db_port.get_ledger_engine()

    tables = set(inspect(engine).get_table_names())

    assert tables == {"accounts", "transactions", "budgets", "recurring_expenses"}


def test_unit_of_work_rolls_back_on_error(store) -> None:
    with pytest.raises(RuntimeError):
        with store.unit_of_work() as uow:
            uow.accounts.add(
                Account("Scratch", AccountType.CASH, Decimal("10"))
            )
            raise RuntimeError("abort")

    with store.unit_of_work() as uow:
        assert uow.accounts.list() == []


def test_money_round_trips_as_decimal(store) -> None:
    with store.unit_of_work() as uow:
        saved = uow.accounts.add(
            Account("Checking", AccountType.CHECKING, Decimal("1000.1234"))
        )

    assert saved.current_balance == Decimal("1000.1234")
    assert isinstance(saved.current_balance, Decimal)
    assert saved.account_type is AccountType.CHECKING


def test_large_amounts_keep_every_digit(store) -> None:
    balance = Decimal("12345678901234.5678")
    with store.unit_of_work() as uow:
        saved = uow.accounts.add(
            Account("Reserve", AccountType.INVESTMENT, balance)
        )
        uow.transactions.add(
            Transaction.expense(
                saved.id,
                Decimal("98765432109876.5432"),
                BudgetCategory.HOUSING,
                date(2024, 1, 10),
            )
        )
        uow.transactions.add(
            Transaction.refund(
                saved.id,
                Decimal("0.0001"),
                date(2024, 1, 12),
                category=BudgetCategory.HOUSING,
            )
        )

    with store.unit_of_work() as uow:
        reloaded = uow.accounts.get(saved.id)
        matching = uow.accounts.list(AccountFilter(min_balance=balance))
        above = uow.accounts.list(
            AccountFilter(min_balance=balance + Decimal("0.0001"))
        )
        spend = uow.transactions.sum_category_spend(
            BudgetCategory.HOUSING, date(2024, 1, 1), date(2024, 1, 31)
        )
        empty = uow.transactions.sum_category_spend(
            BudgetCategory.GROCERIES, date(2024, 1, 1), date(2024, 1, 31)
        )

    assert reloaded.current_balance == balance
    assert str(reloaded.starting_balance) == "12345678901234.5678"
    assert [account.name for account in matching] == ["Reserve"]
    assert above == []
    assert spend == Decimal("98765432109876.5431")
    assert empty == Decimal("0")


def test_recurring_occurrence_is_unique_in_the_database(store) -> None:
    with store.unit_of_work() as uow:
        account = uow.accounts.add(
            Account("Checking", AccountType.CHECKING, Decimal("100"))
        )
    expense = Transaction.expense(
        account.id,
        Decimal("5"),
        BudgetCategory.UTILITIES,
        date(2024, 1, 1),
        recurring_expense_id=9,
    )
    with store.unit_of_work() as uow:
        uow.transactions.add(expense)

    with pytest.raises(IntegrityError):
        with store.unit_of_work() as uow:
            uow.transactions.add(expense)


def test_ledger_flow_end_to_end(services) -> None:
    accounts = services["accounts"]
    engine = services["engine"]
    budgets = services["budgets"]
    checking = accounts.create("Checking", AccountType.CHECKING, "1000.00")
    savings = accounts.create("Savings", AccountType.SAVINGS, "400")
    groceries = budgets.create(
        BudgetCategory.GROCERIES, "300", date(2024, 1, 1), date(2024, 1, 31)
    )

    expense = engine.record_expense(
        RecordExpenseCommand(checking.id, "87.50", BudgetCategory.GROCERIES, date(2024, 1, 12))
    )
    engine.record_refund(
        RecordRefundCommand(checking.id, "7.50", date(2024, 1, 14), BudgetCategory.GROCERIES)
    )
    engine.record_transfer(
        RecordTransferCommand(checking.id, savings.id, "100", date(2024, 1, 15))
    )

    assert accounts.get(checking.id).current_balance == Decimal("820.00")
    assert accounts.get(savings.id).current_balance == Decimal("500")
    assert budgets.calculate_spent(groceries.id) == Decimal("80.00")
    assert budgets.calculate_utilization(groceries.id) == Decimal("26.67")

    engine.reverse(expense.id, date(2024, 1, 20), "wrong card")
    with pytest.raises(DuplicateReversalError):
        engine.reverse(expense.id, date(2024, 1, 21), "again")

    assert budgets.calculate_spent(groceries.id) == Decimal("-7.50")
    assert accounts.verify_balance(checking.id).is_consistent
    assert accounts.verify_balance(savings.id).is_consistent
    listed = engine.list(TransactionFilter(account_id=savings.id))
    assert [tx.destination_account_id for tx in listed] == [savings.id]


def test_failed_transfer_changes_nothing(services) -> None:
    accounts = services["accounts"]
    a = accounts.create("A", AccountType.CHECKING, "400")
    b = accounts.create("B", AccountType.CHECKING, "0")

    with pytest.raises(InsufficientFundsError):
        services["engine"].record_transfer(
            RecordTransferCommand(a.id, b.id, "500", date(2024, 1, 2))
        )

    assert accounts.get(a.id).current_balance == Decimal("400")
    assert accounts.get(b.id).current_balance == Decimal("0")
    assert services["engine"].list() == []


def test_budget_overlap_and_rollover(services) -> None:
    budgets = services["budgets"]
    budgets.create(BudgetCategory.GROCERIES, "400", date(2024, 1, 1), date(2024, 1, 31))
    budgets.create(BudgetCategory.GROCERIES, "400", date(2024, 2, 1), date(2024, 2, 28))

    with pytest.raises(BudgetOverlapError):
        budgets.create(BudgetCategory.GROCERIES, "400", date(2024, 1, 15), date(2024, 2, 15))

    budgets.create(BudgetCategory.HOUSING, "1200", date(2024, 3, 1), date(2024, 3, 31))
    created = services["periods"].initialize_period(2024, 4, 2024, 3)
    assert [budget.category for budget in created] == [BudgetCategory.HOUSING]
    assert services["periods"].close_period(2024, 3) == 1


def test_recurring_generation_is_idempotent(services) -> None:
    accounts = services["accounts"]
    recurring = services["recurring"]
    checking = accounts.create("Checking", AccountType.CHECKING, "1000")
    template = recurring.create(
        Frequency.MONTHLY,
        date(2024, 1, 31),
        "100",
        BudgetCategory.HOUSING,
        "Rent",
        checking.id,
    )

    first = recurring.process_due(date(2024, 1, 31))
    recurring.update(template.id, next_date=date(2024, 1, 31))
    second = recurring.process_due(date(2024, 1, 31))

    assert first.generated_count == 1
    assert second.skipped_count == 1
    assert len(services["engine"].list()) == 1
    assert accounts.get(checking.id).current_balance == Decimal("900")


def test_summarize_over_sql(services) -> None:
    accounts = services["accounts"]
    budgets = services["budgets"]
    engine = services["engine"]
    checking = accounts.create("Checking", AccountType.CHECKING, "5000")
    budgets.create(BudgetCategory.GROCERIES, "400", date(2024, 1, 1), date(2024, 1, 31))
    budgets.create(BudgetCategory.HOUSING, "300", date(2024, 1, 1), date(2024, 1, 31))
    engine.record_expense(
        RecordExpenseCommand(checking.id, "450", BudgetCategory.GROCERIES, date(2024, 1, 5))
    )
    engine.record_expense(
        RecordExpenseCommand(checking.id, "220", BudgetCategory.HOUSING, date(2024, 1, 6))
    )

    summary = services["periods"].summarize(2024, 1)

    assert summary.utilization == Decimal("95.71")
    assert summary.over_budget_count == 1
