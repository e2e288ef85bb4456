"""Domain error hierarchy.

Every error carries a ``kind`` that a calling layer can map onto a response
class without knowing the concrete exception:

========== =====================================================
kind       typical mapping
========== =====================================================
not_found  404
validation 400
conflict   409
state      409 or 400, depending on the caller
arithmetic 422
========== =====================================================
"""


class LedgerError(Exception):
    """Base class for every error raised by the ledger core."""

    kind = "ledger"


class NotFoundError(LedgerError):
    """An identifier did not resolve to an entity."""

    kind = "not_found"
    entity = "Entity"

    def __init__(self, entity_id) -> None:
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found with id: {entity_id}")


class AccountNotFoundError(NotFoundError):
    entity = "Account"


class TransactionNotFoundError(NotFoundError):
    entity = "Transaction"


class BudgetNotFoundError(NotFoundError):
    entity = "Budget"


class RecurringExpenseNotFoundError(NotFoundError):
    entity = "Recurring expense"


class ValidationError(LedgerError, ValueError):
    """Malformed input. Never partially applied."""

    kind = "validation"


class DuplicateAccountNameError(ValidationError):
    """An account with the requested name already exists."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Account name already exists: {name}")


class ConflictError(LedgerError):
    """The request is well formed but clashes with current ledger state."""

    kind = "conflict"


class InsufficientFundsError(ConflictError):
    def __init__(self, account_id, balance, amount) -> None:
        self.account_id = account_id
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient funds in account {account_id}: "
            f"balance={balance}, requested={amount}"
        )


class InactiveAccountError(ConflictError):
    def __init__(self, account_id) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id} is inactive")


class BudgetOverlapError(ConflictError):
    def __init__(self, category, period_start, period_end) -> None:
        self.category = category
        self.period_start = period_start
        self.period_end = period_end
        category_name = getattr(category, "value", category)
        super().__init__(
            f"An active {category_name} budget already overlaps "
            f"{period_start} to {period_end}"
        )


class DuplicateGenerationError(ConflictError):
    """A recurring occurrence was already materialised."""

    def __init__(self, recurring_expense_id, scheduled_date) -> None:
        self.recurring_expense_id = recurring_expense_id
        self.scheduled_date = scheduled_date
        super().__init__(
            f"Recurring expense {recurring_expense_id} already generated "
            f"a transaction for {scheduled_date}"
        )


class DuplicateReversalError(ValidationError, ConflictError):
    """The transaction already has a reversal.

    Catchable both as a validation error and as a conflict; reported as a
    conflict.
    """

    kind = "conflict"

    def __init__(self, transaction_id) -> None:
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} has already been reversed")


class StateError(LedgerError):
    """The operation is not allowed in the entity's or period's current state."""

    kind = "state"


class ZeroAllocationError(LedgerError, ArithmeticError):
    """Utilization was requested for a budget with nothing allocated."""

    kind = "arithmetic"

    def __init__(self, budget_id) -> None:
        self.budget_id = budget_id
        super().__init__(
            f"Cannot calculate utilization for budget {budget_id}: "
            "allocated amount is zero"
        )


__all__ = [
    "LedgerError",
    "NotFoundError",
    "AccountNotFoundError",
    "TransactionNotFoundError",
    "BudgetNotFoundError",
    "RecurringExpenseNotFoundError",
    "ValidationError",
    "DuplicateAccountNameError",
    "ConflictError",
    "InsufficientFundsError",
    "InactiveAccountError",
    "BudgetOverlapError",
    "DuplicateGenerationError",
    "DuplicateReversalError",
    "StateError",
    "ZeroAllocationError",
]
