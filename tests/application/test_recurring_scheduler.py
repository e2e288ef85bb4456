"""Tests for the RecurringScheduler use case."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from budget_ledger.application.use_cases.account_ledger import AccountLedger
from budget_ledger.application.use_cases.recurring_scheduler import (
    RecurringScheduler,
)
from budget_ledger.application.use_cases.transaction_engine import (
    TransactionEngine,
)
from budget_ledger.domain.errors import (
    AccountNotFoundError,
    InactiveAccountError,
    InsufficientFundsError,
    RecurringExpenseNotFoundError,
    StateError,
    ValidationError,
)
from budget_ledger.domain.models import (
    AccountType,
    BudgetCategory,
    Frequency,
    RecurringExpenseFilter,
    TransactionFilter,
)
from budget_ledger.infrastructure.memory_store import InMemoryLedgerStore


class Harness:
    def __init__(self, today: date = date(2024, 1, 1)) -> None:
        self.store = InMemoryLedgerStore()
        self.logger = MagicMock()
        self.accounts = AccountLedger(self.store, logger=MagicMock())
        self.engine = TransactionEngine(
            self.store,
            logger=MagicMock(),
            audit_logger=MagicMock(),
            today=lambda: today,
        )
        self.scheduler = RecurringScheduler(
            self.store,
            self.engine,
            logger=self.logger,
            today=lambda: today,
        )
        self.checking = self.accounts.create(
            "Checking", AccountType.CHECKING, "1000"
        )

    def template(self, next_date=date(2024, 1, 31), amount="100", **overrides):
        fields = {
            "frequency": Frequency.MONTHLY,
            "next_date": next_date,
            "amount": amount,
            "category": BudgetCategory.HOUSING,
            "description": "Rent",
            "source_account_id": self.checking.id,
        }
        fields.update(overrides)
        return self.scheduler.create(**fields)


@pytest.fixture
def harness() -> Harness:
    return Harness()


def test_create_validates_fields(harness) -> None:
    with pytest.raises(ValidationError):
        harness.template(amount="0")
    with pytest.raises(ValidationError):
        harness.template(next_date=None)
    with pytest.raises(ValidationError):
        harness.template(description="  ")
    with pytest.raises(ValidationError):
        harness.template(frequency="fortnightly")
    with pytest.raises(ValidationError):
        harness.template(source_account_id=None)
    with pytest.raises(AccountNotFoundError):
        harness.template(source_account_id=999)

    template = harness.template(frequency="biweekly", category="utilities")

    assert template.frequency is Frequency.BIWEEKLY
    assert template.category is BudgetCategory.UTILITIES
    assert template.amount == Decimal("100")
    assert template.active is True


def test_create_rejects_inactive_source_account(harness) -> None:
    closed = harness.accounts.create("Closed", AccountType.SAVINGS, "0")
    harness.accounts.update(closed.id, active=False)

    with pytest.raises(InactiveAccountError):
        harness.template(source_account_id=closed.id)


def test_create_in_the_past_only_warns() -> None:
    harness = Harness(today=date(2024, 6, 1))

    template = harness.template(next_date=date(2024, 1, 31))

    assert template.id is not None
    harness.logger.warning.assert_called_once()


def test_monthly_generation_clamps_to_end_of_february(harness) -> None:
    """Jan 31 monthly moves to Feb 29 in a leap year."""
    template = harness.template(next_date=date(2024, 1, 31))

    transaction = harness.scheduler.generate(template.id)

    assert transaction.transaction_date == date(2024, 1, 31)
    assert transaction.recurring_expense_id == template.id
    assert transaction.category is BudgetCategory.HOUSING
    assert transaction.description == "Rent"
    refreshed = harness.scheduler.get(template.id)
    assert refreshed.next_scheduled_date == date(2024, 2, 29)
    assert refreshed.last_generated_date == date(2024, 1, 31)
    assert harness.accounts.get(harness.checking.id).current_balance == Decimal("900")


def test_monthly_generation_in_common_year(harness) -> None:
    template = harness.template(next_date=date(2023, 1, 31))

    harness.scheduler.generate(template.id)

    assert harness.scheduler.get(template.id).next_scheduled_date == date(2023, 2, 28)


def test_generate_twice_for_same_occurrence_emits_once(harness) -> None:
    template = harness.template(next_date=date(2024, 1, 15))
    first = harness.scheduler.generate(template.id)
    harness.scheduler.update(template.id, next_date=date(2024, 1, 15))

    second = harness.scheduler.generate(template.id)

    assert first is not None
    assert second is None
    assert len(harness.engine.list()) == 1
    assert harness.accounts.get(harness.checking.id).current_balance == Decimal("900")
    assert harness.scheduler.get(template.id).next_scheduled_date == date(2024, 1, 15)


def test_deleted_occurrence_is_not_regenerated(harness) -> None:
    template = harness.template(next_date=date(2024, 1, 15))
    generated = harness.scheduler.generate(template.id)
    harness.engine.delete(generated.id)
    harness.scheduler.update(template.id, next_date=date(2024, 1, 15))

    assert harness.scheduler.generate(template.id) is None


def test_generate_inactive_or_missing_template(harness) -> None:
    template = harness.template()
    harness.scheduler.deactivate(template.id)

    with pytest.raises(StateError):
        harness.scheduler.generate(template.id)
    with pytest.raises(RecurringExpenseNotFoundError):
        harness.scheduler.generate(12345)


def test_failed_generation_does_not_advance_schedule(harness) -> None:
    template = harness.template(amount="5000")

    with pytest.raises(InsufficientFundsError):
        harness.scheduler.generate(template.id)

    assert harness.scheduler.get(template.id).next_scheduled_date == date(2024, 1, 31)
    assert harness.engine.list() == []


def test_activate_and_deactivate_report_changes(harness) -> None:
    template = harness.template()

    assert harness.scheduler.activate(template.id) is False
    assert harness.scheduler.deactivate(template.id) is True
    assert harness.scheduler.deactivate(template.id) is False
    assert harness.scheduler.get(template.id).next_scheduled_date == date(2024, 1, 31)
    assert harness.scheduler.activate(template.id) is True


def test_activate_without_schedule_is_a_state_error(harness) -> None:
    template = harness.template()
    harness.scheduler.deactivate(template.id)
    with harness.store.unit_of_work() as uow:
        stored = uow.recurring_expenses.get(template.id)
        stored.next_scheduled_date = None
        uow.recurring_expenses.save(stored)

    with pytest.raises(StateError):
        harness.scheduler.activate(template.id)


def test_update_and_list(harness) -> None:
    savings = harness.accounts.create("Savings", AccountType.SAVINGS, "10")
    rent = harness.template()
    gym = harness.template(
        next_date=date(2024, 1, 5),
        amount="30",
        category=BudgetCategory.PERSONAL_CARE,
        description="Gym",
        frequency=Frequency.WEEKLY,
    )

    updated = harness.scheduler.update(
        gym.id, amount="35", source_account_id=savings.id, description="Gym plus"
    )

    assert updated.amount == Decimal("35")
    assert updated.source_account_id == savings.id
    assert [t.id for t in harness.scheduler.list()] == [gym.id, rent.id]
    by_account = harness.scheduler.list(
        RecurringExpenseFilter(source_account_id=harness.checking.id)
    )
    assert [t.id for t in by_account] == [rent.id]
    with pytest.raises(ValidationError):
        harness.scheduler.update(rent.id, amount="-3")
    with pytest.raises(AccountNotFoundError):
        harness.scheduler.update(rent.id, source_account_id=77)


def test_delete_keeps_generated_transactions(harness) -> None:
    template = harness.template()
    generated = harness.scheduler.generate(template.id)

    harness.scheduler.delete(template.id)

    with pytest.raises(RecurringExpenseNotFoundError):
        harness.scheduler.get(template.id)
    kept = harness.engine.get(generated.id)
    assert kept.recurring_expense_id == template.id
    assert kept.deleted is False


def test_process_due_isolates_failures(harness) -> None:
    wallet = harness.accounts.create("Wallet", AccountType.CASH, "5")
    rent = harness.template(next_date=date(2024, 1, 1))
    coffee = harness.template(
        next_date=date(2024, 1, 2),
        amount="50",
        description="Coffee",
        category=BudgetCategory.DINING_OUT,
        source_account_id=wallet.id,
    )
    phone = harness.template(
        next_date=date(2024, 1, 3),
        amount="40",
        description="Phone",
        category=BudgetCategory.UTILITIES,
    )
    later = harness.template(next_date=date(2024, 2, 1), description="Later")

    result = harness.scheduler.process_due(date(2024, 1, 3))

    assert result.due_count == 3
    assert result.generated_count == 2
    assert result.skipped_count == 0
    assert result.failed_count == 1
    assert [failure.recurring_expense_id for failure in result.failures] == [coffee.id]
    assert harness.scheduler.get(coffee.id).next_scheduled_date == date(2024, 1, 2)
    assert harness.scheduler.get(rent.id).next_scheduled_date == date(2024, 2, 1)
    assert harness.scheduler.get(phone.id).next_scheduled_date == date(2024, 2, 3)
    assert harness.scheduler.get(later.id).last_generated_date is None
    assert harness.accounts.get(wallet.id).current_balance == Decimal("5")
    harness.logger.error.assert_called()


def test_process_due_catches_up_one_occurrence_per_run(harness) -> None:
    template = harness.template(next_date=date(2024, 1, 1))

    first = harness.scheduler.process_due(date(2024, 3, 15))
    second = harness.scheduler.process_due(date(2024, 3, 15))

    assert first.generated_count == 1
    assert second.generated_count == 1
    generated = harness.engine.list(TransactionFilter(category=BudgetCategory.HOUSING))
    assert [tx.transaction_date for tx in generated] == [date(2024, 2, 1), date(2024, 1, 1)]
    assert harness.scheduler.get(template.id).next_scheduled_date == date(2024, 3, 1)


def test_process_due_ignores_inactive_templates(harness) -> None:
    template = harness.template(next_date=date(2024, 1, 1))
    harness.scheduler.deactivate(template.id)

    result = harness.scheduler.process_due(date(2024, 1, 31))

    assert result.due_count == 0
    assert result.failures == []


def test_process_due_records_unexpected_errors() -> None:
    harness = Harness()
    template = harness.template(next_date=date(2024, 1, 1))
    engine = MagicMock()
    engine.record_expense.side_effect = RuntimeError("store offline")
    scheduler = RecurringScheduler(harness.store, engine, logger=MagicMock())

    result = scheduler.process_due(date(2024, 1, 1))

    assert result.failed_count == 1
    assert result.failures[0].recurring_expense_id == template.id
    assert result.failures[0].error == "RuntimeError: store offline"
    assert harness.scheduler.get(template.id).next_scheduled_date == date(2024, 1, 1)


@pytest.mark.parametrize("current_date", [None, "2024-01-31"])
def test_process_due_requires_a_date(harness, current_date) -> None:
    template = harness.template(next_date=date(2024, 1, 1))

    with pytest.raises(ValidationError):
        harness.scheduler.process_due(current_date)

    assert harness.scheduler.get(template.id).next_scheduled_date == date(2024, 1, 1)
