"""Account entity."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from budget_ledger.domain.models.enums import AccountType


DEFAULT_LOW_BALANCE_THRESHOLD = Decimal("100")


@dataclass
class Account:
    """A named financial container.

    ``current_balance`` starts equal to ``starting_balance`` and afterwards
    changes only through the debit/credit rules in
    :mod:`budget_ledger.domain.services.ledger`.

    Attributes:
        name: Unique display name.
        account_type: Kind of account; credit cards may go negative.
        starting_balance: Opening balance.
        current_balance: Balance after every applied debit and credit.
        description: Free text.
        active: False once the account is closed.
        id: Store-assigned identifier, None until persisted.
    """

    name: str
    account_type: AccountType
    starting_balance: Decimal = Decimal("0")
    current_balance: Decimal | None = None
    description: str = ""
    active: bool = True
    id: int | None = None
    created_at: datetime | None = field(default=None, compare=False)
    updated_at: datetime | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.current_balance is None:
            self.current_balance = self.starting_balance

    @property
    def is_credit_card(self) -> bool:
        return self.account_type is AccountType.CREDIT_CARD


__all__ = ["Account", "DEFAULT_LOW_BALANCE_THRESHOLD"]
