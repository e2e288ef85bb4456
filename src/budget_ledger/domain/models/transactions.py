"""Transaction entity and its per-kind constructors."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal

from budget_ledger.domain.errors import ValidationError
from budget_ledger.domain.models.enums import BudgetCategory, TransactionKind
from budget_ledger.utils.decimal_utils import quantize_money


DEFAULT_CURRENCY = "USD"


@dataclass(frozen=True)
class Transaction:
    """One financial movement.

    Build instances through :meth:`income`, :meth:`expense`,
    :meth:`transfer` or :meth:`refund`. Every instance, including those
    rebuilt by a store or by :func:`dataclasses.replace`, re-checks the
    rules for its kind:

    ========  =========  ====================  =========
    kind      source     destination           category
    ========  =========  ====================  =========
    INCOME    forbidden  required              forbidden
    EXPENSE   required   forbidden             required
    TRANSFER  required   required, not source  forbidden
    REFUND    required   forbidden             optional
    ========  =========  ====================  =========

    Amount is always a positive magnitude; direction comes from the kind and
    which account slot is populated.
    """

    kind: TransactionKind
    amount: Decimal
    transaction_date: date
    source_account_id: int | None = None
    destination_account_id: int | None = None
    category: BudgetCategory | None = None
    description: str = ""
    currency: str = DEFAULT_CURRENCY
    recurring_expense_id: int | None = None
    reverses_transaction_id: int | None = None
    deleted: bool = False
    id: int | None = None
    created_at: datetime | None = field(default=None, compare=False)
    updated_at: datetime | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError("Transaction amount must be a Decimal")
        if self.amount <= 0:
            raise ValidationError("Transaction amount must be positive")
        if self.transaction_date is None:
            raise ValidationError("Transaction date is required")
        self._check_kind_rules()

    def _check_kind_rules(self) -> None:
        source = self.source_account_id
        destination = self.destination_account_id
        if self.kind is TransactionKind.INCOME:
            if destination is None:
                raise ValidationError("Income requires a destination account")
            if source is not None:
                raise ValidationError("Income cannot have a source account")
            if self.category is not None:
                raise ValidationError("Income cannot have a budget category")
        elif self.kind is TransactionKind.EXPENSE:
            if source is None:
                raise ValidationError("Expense requires a source account")
            if destination is not None:
                raise ValidationError("Expense cannot have a destination account")
            if self.category is None:
                raise ValidationError("Expense requires a budget category")
        elif self.kind is TransactionKind.TRANSFER:
            if source is None or destination is None:
                raise ValidationError(
                    "Transfer requires source and destination accounts"
                )
            if source == destination:
                raise ValidationError(
                    "Source and destination accounts must be different"
                )
            if self.category is not None:
                raise ValidationError("Transfer cannot have a budget category")
        elif self.kind is TransactionKind.REFUND:
            if source is None:
                raise ValidationError("Refund requires a source account")
            if destination is not None:
                raise ValidationError("Refund cannot have a destination account")
        else:
            raise ValidationError(f"Unknown transaction kind: {self.kind!r}")

    @property
    def is_recurring(self) -> bool:
        return self.recurring_expense_id is not None

    @property
    def is_reversal(self) -> bool:
        return self.reverses_transaction_id is not None

    @classmethod
    def income(
        cls,
        destination_account_id: int,
        amount,
        transaction_date: date,
        description: str = "",
        **extra,
    ) -> "Transaction":
        return cls(
            kind=TransactionKind.INCOME,
            amount=_positive_money(amount),
            transaction_date=transaction_date,
            destination_account_id=destination_account_id,
            description=description or "",
            **extra,
        )

    @classmethod
    def expense(
        cls,
        source_account_id: int,
        amount,
        category: BudgetCategory,
        transaction_date: date,
        description: str = "",
        **extra,
    ) -> "Transaction":
        return cls(
            kind=TransactionKind.EXPENSE,
            amount=_positive_money(amount),
            transaction_date=transaction_date,
            source_account_id=source_account_id,
            category=BudgetCategory.parse(category),
            description=description or "",
            **extra,
        )

    @classmethod
    def transfer(
        cls,
        source_account_id: int,
        destination_account_id: int,
        amount,
        transaction_date: date,
        description: str = "",
        **extra,
    ) -> "Transaction":
        return cls(
            kind=TransactionKind.TRANSFER,
            amount=_positive_money(amount),
            transaction_date=transaction_date,
            source_account_id=source_account_id,
            destination_account_id=destination_account_id,
            description=description or "",
            **extra,
        )

    @classmethod
    def refund(
        cls,
        source_account_id: int,
        amount,
        transaction_date: date,
        category: BudgetCategory | None = None,
        description: str = "",
        **extra,
    ) -> "Transaction":
        return cls(
            kind=TransactionKind.REFUND,
            amount=_positive_money(amount),
            transaction_date=transaction_date,
            source_account_id=source_account_id,
            category=None if category is None else BudgetCategory.parse(category),
            description=description or "",
            **extra,
        )

    def with_metadata(
        self,
        transaction_date: date | None = None,
        category: BudgetCategory | None = None,
        description: str | None = None,
    ) -> "Transaction":
        """Return a copy with the editable fields changed.

        Only date, category and description can change after creation.
        """
        changes = {}
        if transaction_date is not None:
            changes["transaction_date"] = transaction_date
        if category is not None:
            if self.kind not in (TransactionKind.EXPENSE, TransactionKind.REFUND):
                raise ValidationError(
                    "Budget category can only be updated for EXPENSE and "
                    "REFUND transactions"
                )
            changes["category"] = BudgetCategory.parse(category)
        if description is not None:
            changes["description"] = description
        return replace(self, **changes)


def _positive_money(amount) -> Decimal:
    try:
        value = quantize_money(amount) if amount is not None else None
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if value is None or value <= 0:
        raise ValidationError("Transaction amount must be positive")
    return value


__all__ = ["DEFAULT_CURRENCY", "Transaction"]
