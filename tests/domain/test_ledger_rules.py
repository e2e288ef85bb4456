"""Tests for the debit/credit rules."""

from decimal import Decimal

import pytest

from budget_ledger.domain.errors import InactiveAccountError, ValidationError
from budget_ledger.domain.models import Account, AccountType
from budget_ledger.domain.services import ledger


def _account(balance: str = "100", account_type=AccountType.CHECKING, active=True):
    return Account(
        name="Checking",
        account_type=account_type,
        starting_balance=Decimal(balance),
        active=active,
        id=1,
    )


def test_new_account_starts_at_starting_balance() -> None:
    account = _account("1000.00")
    assert account.current_balance == Decimal("1000.00")
    assert ledger.net_change(account) == Decimal("0")


def test_debit_and_credit_move_current_balance() -> None:
    """Debits subtract, credits add, starting balance stays put."""
    account = _account("100")

    ledger.debit(account, Decimal("30"))
    ledger.credit(account, "5.25")

    assert account.current_balance == Decimal("75.25")
    assert account.starting_balance == Decimal("100")
    assert ledger.net_change(account) == Decimal("-24.75")


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1"), None])
def test_non_positive_amount_is_rejected_without_mutation(amount) -> None:
    account = _account("100")

    with pytest.raises(ValidationError):
        ledger.debit(account, amount)

    assert account.current_balance == Decimal("100")


def test_inactive_account_cannot_move() -> None:
    account = _account("100", active=False)

    with pytest.raises(InactiveAccountError):
        ledger.credit(account, Decimal("1"))

    assert account.current_balance == Decimal("100")


def test_sufficient_balance_exempts_credit_cards() -> None:
    """Credit cards may go negative, other accounts may not."""
    checking = _account("400")
    card = _account("0", account_type=AccountType.CREDIT_CARD)

    assert ledger.has_sufficient_balance(checking, Decimal("400")) is True
    assert ledger.has_sufficient_balance(checking, Decimal("500")) is False
    assert ledger.has_sufficient_balance(card, Decimal("500")) is True
