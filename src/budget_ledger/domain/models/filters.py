"""Query filters accepted by the list operations.

Every field is optional; ``None`` means "do not filter on this".
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from budget_ledger.domain.models.enums import (
    AccountType,
    BudgetCategory,
    Frequency,
    TransactionKind,
)


@dataclass(frozen=True)
class AccountFilter:
    active: bool | None = None
    account_type: AccountType | None = None
    min_balance: Decimal | None = None
    max_balance: Decimal | None = None
    name_contains: str | None = None


@dataclass(frozen=True)
class TransactionFilter:
    date_from: date | None = None
    date_to: date | None = None
    category: BudgetCategory | None = None
    account_id: int | None = None
    kind: TransactionKind | None = None


@dataclass(frozen=True)
class BudgetFilter:
    """Budget query.

    ``period_start``/``period_end`` select budgets overlapping that range;
    either bound may be given alone.
    """

    category: BudgetCategory | None = None
    active: bool | None = None
    period_start: date | None = None
    period_end: date | None = None


@dataclass(frozen=True)
class RecurringExpenseFilter:
    active: bool | None = None
    source_account_id: int | None = None
    frequency: Frequency | None = None


__all__ = [
    "AccountFilter",
    "TransactionFilter",
    "BudgetFilter",
    "RecurringExpenseFilter",
]
