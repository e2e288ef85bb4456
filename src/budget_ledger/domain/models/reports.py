"""Read-only result records returned by ledger operations."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from budget_ledger.domain.models.accounts import Account
from budget_ledger.domain.models.enums import (
    AccountType,
    BudgetCategory,
    UtilizationStatus,
)


@dataclass(frozen=True)
class AccountSummary:
    """Totals across active accounts.

    Attributes:
        total_balance: Sum of current balances.
        total_by_type: Sum of current balances per account type.
        account_count: Number of active accounts.
        low_balance_accounts: Active accounts below the low-balance threshold.
    """

    total_balance: Decimal
    total_by_type: dict[AccountType, Decimal]
    account_count: int
    low_balance_accounts: list[Account]


@dataclass(frozen=True)
class BalanceCheck:
    """Stored balance compared with the balance rebuilt from history."""

    account_id: int
    stored_balance: Decimal
    derived_balance: Decimal

    @property
    def drift(self) -> Decimal:
        return self.stored_balance - self.derived_balance

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0


@dataclass(frozen=True)
class BudgetUtilization:
    budget_id: int
    category: BudgetCategory
    allocated: Decimal
    spent: Decimal
    remaining: Decimal
    utilization_percent: Decimal
    status: UtilizationStatus


@dataclass(frozen=True)
class RecurringFailure:
    recurring_expense_id: int
    error: str


@dataclass(frozen=True)
class ProcessDueResult:
    """Outcome of one due-processing batch.

    Attributes:
        run_date: Date the batch was processed for.
        due_count: Templates that were due.
        generated_count: Templates that produced a transaction.
        skipped_count: Templates whose occurrence already existed.
        failed_count: Templates that raised; see ``failures``.
    """

    run_date: date
    due_count: int
    generated_count: int
    skipped_count: int
    failed_count: int
    failures: list[RecurringFailure] = field(default_factory=list)


@dataclass(frozen=True)
class PeriodSummary:
    year: int
    month: int
    period_start: date
    period_end: date
    total_allocated: Decimal
    total_spent: Decimal
    utilization: Decimal
    over_budget_count: int
    total_budgets: int


__all__ = [
    "AccountSummary",
    "BalanceCheck",
    "BudgetUtilization",
    "RecurringFailure",
    "ProcessDueResult",
    "PeriodSummary",
]
