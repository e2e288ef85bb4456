"""Enumerations shared by the ledger entities."""

from enum import Enum

from budget_ledger.domain.errors import ValidationError


class _ParsableEnum(str, Enum):
    """String enum that turns unknown values into ``ValidationError``."""

    @classmethod
    def parse(cls, value):
        if value is None:
            raise ValidationError(f"{cls.__name__} is required")
        if isinstance(value, cls):
            return value
        raw = str(value).strip().upper().replace("-", "_")
        try:
            return cls(raw)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown {cls.__name__}: {value!r}"
            ) from exc


class AccountType(_ParsableEnum):
    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"
    CREDIT_CARD = "CREDIT_CARD"
    INVESTMENT = "INVESTMENT"
    CASH = "CASH"


class TransactionKind(_ParsableEnum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"
    REFUND = "REFUND"


class BudgetCategory(_ParsableEnum):
    HOUSING = "HOUSING"
    UTILITIES = "UTILITIES"
    TRANSPORTATION = "TRANSPORTATION"
    GROCERIES = "GROCERIES"
    DINING_OUT = "DINING_OUT"
    ENTERTAINMENT = "ENTERTAINMENT"
    HEALTHCARE = "HEALTHCARE"
    PERSONAL_CARE = "PERSONAL_CARE"
    DEBT_PAYMENT = "DEBT_PAYMENT"
    SAVINGS = "SAVINGS"
    MISCELLANEOUS = "MISCELLANEOUS"


class Frequency(_ParsableEnum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class UtilizationStatus(_ParsableEnum):
    ON_TRACK = "ON_TRACK"
    WARNING = "WARNING"
    OVER_BUDGET = "OVER_BUDGET"


class AccountCloseOutcome(_ParsableEnum):
    DEACTIVATED = "DEACTIVATED"
    DELETED = "DELETED"
    ALREADY_INACTIVE = "ALREADY_INACTIVE"


__all__ = [
    "AccountType",
    "TransactionKind",
    "BudgetCategory",
    "Frequency",
    "UtilizationStatus",
    "AccountCloseOutcome",
]
