"""Domain models."""

from .accounts import DEFAULT_LOW_BALANCE_THRESHOLD, Account
from .budgets import Budget
from .enums import (
    AccountCloseOutcome,
    AccountType,
    BudgetCategory,
    Frequency,
    TransactionKind,
    UtilizationStatus,
)
from .filters import (
    AccountFilter,
    BudgetFilter,
    RecurringExpenseFilter,
    TransactionFilter,
)
from .recurring import RecurringExpense
from .reports import (
    AccountSummary,
    BalanceCheck,
    BudgetUtilization,
    PeriodSummary,
    ProcessDueResult,
    RecurringFailure,
)
from .transactions import DEFAULT_CURRENCY, Transaction

__all__ = [
    "Account",
    "AccountCloseOutcome",
    "AccountFilter",
    "AccountSummary",
    "AccountType",
    "BalanceCheck",
    "Budget",
    "BudgetCategory",
    "BudgetFilter",
    "BudgetUtilization",
    "DEFAULT_CURRENCY",
    "DEFAULT_LOW_BALANCE_THRESHOLD",
    "Frequency",
    "PeriodSummary",
    "ProcessDueResult",
    "RecurringExpense",
    "RecurringExpenseFilter",
    "RecurringFailure",
    "Transaction",
    "TransactionFilter",
    "TransactionKind",
    "UtilizationStatus",
]
