"""Command objects accepted by the transaction engine.

Commands validate their own shape on construction, so a command that exists
is well formed; whether it can be applied depends on ledger state and is
decided by the engine.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from budget_ledger.domain.errors import ValidationError
from budget_ledger.domain.models import BudgetCategory
from budget_ledger.utils.decimal_utils import quantize_money


def _require_positive(amount) -> Decimal:
    if amount is None:
        raise ValidationError("Amount is required")
    try:
        value = quantize_money(amount)
    except ValueError as exc:
        raise ValidationError(f"Amount is not a number: {amount!r}") from exc
    if value <= 0:
        raise ValidationError("Amount must be positive")
    return value


def _require_id(value, label: str) -> None:
    if value is None:
        raise ValidationError(f"{label} is required")


def _require_date(value) -> None:
    if not isinstance(value, date):
        raise ValidationError("Transaction date is required")


@dataclass(frozen=True)
class RecordIncomeCommand:
    destination_account_id: int
    amount: Decimal
    transaction_date: date
    description: str = ""

    def __post_init__(self) -> None:
        _require_id(self.destination_account_id, "Destination account")
        object.__setattr__(self, "amount", _require_positive(self.amount))
        _require_date(self.transaction_date)


@dataclass(frozen=True)
class RecordExpenseCommand:
    """Expense against one account.

    ``recurring_expense_id`` is set only when a recurring template generates
    the expense; the engine then refuses a second transaction for the same
    template and date.
    """

    source_account_id: int
    amount: Decimal
    category: BudgetCategory
    transaction_date: date
    description: str = ""
    recurring_expense_id: int | None = None

    def __post_init__(self) -> None:
        _require_id(self.source_account_id, "Source account")
        object.__setattr__(self, "amount", _require_positive(self.amount))
        object.__setattr__(self, "category", BudgetCategory.parse(self.category))
        _require_date(self.transaction_date)


@dataclass(frozen=True)
class RecordTransferCommand:
    source_account_id: int
    destination_account_id: int
    amount: Decimal
    transaction_date: date
    description: str = ""

    def __post_init__(self) -> None:
        _require_id(self.source_account_id, "Source account")
        _require_id(self.destination_account_id, "Destination account")
        if self.source_account_id == self.destination_account_id:
            raise ValidationError(
                "Source and destination accounts must be different"
            )
        object.__setattr__(self, "amount", _require_positive(self.amount))
        _require_date(self.transaction_date)


@dataclass(frozen=True)
class RecordRefundCommand:
    source_account_id: int
    amount: Decimal
    transaction_date: date
    category: BudgetCategory | None = None
    description: str = ""

    def __post_init__(self) -> None:
        _require_id(self.source_account_id, "Source account")
        object.__setattr__(self, "amount", _require_positive(self.amount))
        if self.category is not None:
            object.__setattr__(
                self, "category", BudgetCategory.parse(self.category)
            )
        _require_date(self.transaction_date)


__all__ = [
    "RecordIncomeCommand",
    "RecordExpenseCommand",
    "RecordTransferCommand",
    "RecordRefundCommand",
]
