"""Balance mutation rules for accounts.

These functions mutate the ``Account`` object they are given and never
persist anything; the caller saves the account inside its unit of work.
"""

from decimal import Decimal

from budget_ledger.domain.errors import InactiveAccountError, ValidationError
from budget_ledger.domain.models.accounts import Account
from budget_ledger.utils.decimal_utils import coerce_decimal


def _checked_amount(account: Account, amount) -> Decimal:
    try:
        value = coerce_decimal(amount)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if amount is None or value <= 0:
        raise ValidationError("Amount must be positive")
    if not account.active:
        raise InactiveAccountError(account.id)
    return value


def debit(account: Account, amount) -> Account:
    """Subtract ``amount`` from the account's current balance.

    Args:
        account: Account to mutate.
        amount: Positive amount.

    Returns:
        Account: The same account, for chaining.

    Raises:
        ValidationError: If the amount is not positive.
        InactiveAccountError: If the account is closed.
    """
    value = _checked_amount(account, amount)
    account.current_balance = account.current_balance - value
    return account


def credit(account: Account, amount) -> Account:
    """Add ``amount`` to the account's current balance.

    Raises:
        ValidationError: If the amount is not positive.
        InactiveAccountError: If the account is closed.
    """
    value = _checked_amount(account, amount)
    account.current_balance = account.current_balance + value
    return account


def net_change(account: Account) -> Decimal:
    """Return current minus starting balance."""
    return account.current_balance - account.starting_balance


def has_sufficient_balance(account: Account, amount) -> bool:
    """Return True when a debit of ``amount`` keeps the balance non-negative.

    Credit cards always qualify since a negative balance is debt.
    """
    if account.is_credit_card:
        return True
    return account.current_balance >= coerce_decimal(amount)


__all__ = ["debit", "credit", "net_change", "has_sufficient_balance"]
