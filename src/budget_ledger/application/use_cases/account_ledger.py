"""Use case for managing accounts and reading balance aggregates.

Balances themselves only move through the debit/credit rules applied by the
transaction engine; this module covers the account lifecycle (create, edit,
close) and read-side totals.
"""

from __future__ import annotations

from decimal import Decimal

from budget_ledger.application.ports.ledger_store import LedgerStorePort
from budget_ledger.domain.errors import (
    AccountNotFoundError,
    DuplicateAccountNameError,
    ValidationError,
)
from budget_ledger.domain.models import (
    DEFAULT_LOW_BALANCE_THRESHOLD,
    Account,
    AccountCloseOutcome,
    AccountFilter,
    AccountSummary,
    AccountType,
    BalanceCheck,
    RecurringExpenseFilter,
    TransactionFilter,
    TransactionKind,
)
from budget_ledger.domain.services import ledger
from budget_ledger.infrastructure.logging.logger import get_app_logger
from budget_ledger.utils.decimal_utils import coerce_decimal, quantize_money


class AccountLedger:
    """Create, edit, close and summarise accounts."""

    def __init__(
        self,
        store: LedgerStorePort,
        logger=None,
        low_balance_threshold: Decimal = DEFAULT_LOW_BALANCE_THRESHOLD,
    ) -> None:
        """Initialize the use case.

        Args:
            store: Transactional ledger store.
            logger: Optional logger compatible with logging.Logger-like API.
            low_balance_threshold: Default threshold used by :meth:`summary`.
        """
        self._store = store
        self._logger = logger or get_app_logger()
        self._low_balance_threshold = low_balance_threshold

    def create(
        self,
        name: str,
        account_type: AccountType | str,
        starting_balance=Decimal("0"),
        description: str = "",
    ) -> Account:
        """Open a new account.

        Args:
            name: Unique, non-blank display name.
            account_type: Account type; only credit cards may start negative.
            starting_balance: Opening balance, which becomes the current one.
            description: Free text.

        Returns:
            Account: The persisted account.

        Raises:
            ValidationError: On a blank name, missing type or a negative
                opening balance for a non credit card account.
            DuplicateAccountNameError: If the name is taken.
        """
        clean_name = self._clean_name(name)
        resolved_type = AccountType.parse(account_type)
        opening = self._parse_amount(starting_balance, "Starting balance")
        if opening < 0 and resolved_type is not AccountType.CREDIT_CARD:
            raise ValidationError(
                "Starting balance cannot be negative for "
                f"{resolved_type.value} accounts"
            )

        with self._store.unit_of_work() as uow:
            if uow.accounts.get_by_name(clean_name) is not None:
                raise DuplicateAccountNameError(clean_name)
            account = uow.accounts.add(
                Account(
                    name=clean_name,
                    account_type=resolved_type,
                    starting_balance=opening,
                    description=description or "",
                )
            )

        self._logger.info(
            f"Created account {account.id} ({account.name}, "
            f"{account.account_type.value}) with balance {opening}"
        )
        return account

    def update(
        self,
        account_id: int,
        name: str | None = None,
        description: str | None = None,
        account_type: AccountType | str | None = None,
        active: bool | None = None,
    ) -> Account:
        """Edit account metadata.

        Balances are never edited here. Reactivating a closed account is only
        allowed while it has no transaction history.

        Raises:
            AccountNotFoundError: If the account does not exist.
            ValidationError: On a blank name, a negative balance moved to a
                non credit card type, or reactivation of an account that has
                history.
            DuplicateAccountNameError: If the new name is taken.
        """
        with self._store.unit_of_work() as uow:
            account = self._load(uow, account_id, for_update=True)

            if name is not None:
                clean_name = self._clean_name(name)
                if clean_name != account.name:
                    existing = uow.accounts.get_by_name(clean_name)
                    if existing is not None and existing.id != account.id:
                        raise DuplicateAccountNameError(clean_name)
                    account.name = clean_name

            if description is not None:
                account.description = description

            if account_type is not None:
                resolved_type = AccountType.parse(account_type)
                if (
                    resolved_type is not AccountType.CREDIT_CARD
                    and account.current_balance < 0
                ):
                    raise ValidationError(
                        f"Account {account.id} has a negative balance and "
                        f"cannot become {resolved_type.value}"
                    )
                account.account_type = resolved_type

            if active is not None and active != account.active:
                if active and uow.transactions.exists_for_account(account.id):
                    raise ValidationError(
                        f"Account {account.id} has transaction history and "
                        "cannot be reactivated"
                    )
                account.active = active

            account = uow.accounts.save(account)

        self._logger.info(f"Updated account {account.id}")
        return account

    def close(self, account_id: int) -> AccountCloseOutcome:
        """Close an account.

        Accounts with transaction history (or recurring templates drawing on
        them) are soft-deleted so the history stays resolvable; unused
        accounts are removed outright.

        Returns:
            AccountCloseOutcome: What happened to the account.

        Raises:
            AccountNotFoundError: If the account does not exist.
        """
        with self._store.unit_of_work() as uow:
            account = self._load(uow, account_id, for_update=True)
            in_use = uow.transactions.exists_for_account(account.id) or bool(
                uow.recurring_expenses.list(
                    RecurringExpenseFilter(source_account_id=account.id)
                )
            )
            if not in_use:
                uow.accounts.remove(account.id)
                outcome = AccountCloseOutcome.DELETED
            elif not account.active:
                outcome = AccountCloseOutcome.ALREADY_INACTIVE
            else:
                account.active = False
                uow.accounts.save(account)
                outcome = AccountCloseOutcome.DEACTIVATED

        self._logger.info(f"Closed account {account_id}: {outcome.value}")
        return outcome

    def get(self, account_id: int) -> Account:
        with self._store.unit_of_work() as uow:
            return self._load(uow, account_id)

    def list(self, account_filter: AccountFilter | None = None) -> list[Account]:
        with self._store.unit_of_work() as uow:
            return uow.accounts.list(account_filter)

    def net_change(self, account_id: int) -> Decimal:
        """Return current minus starting balance for an account."""
        return ledger.net_change(self.get(account_id))

    def total_balance(self) -> Decimal:
        """Return the sum of current balances over active accounts."""
        return self._sum_balances(self.list(AccountFilter(active=True)))

    def total_balance_by_type(self, account_type: AccountType | str) -> Decimal:
        resolved_type = AccountType.parse(account_type)
        accounts = self.list(
            AccountFilter(active=True, account_type=resolved_type)
        )
        return self._sum_balances(accounts)

    def balances_below_threshold(self, threshold) -> list[Account]:
        """Return active accounts whose balance is strictly below ``threshold``."""
        limit = self._parse_amount(threshold, "Threshold")
        return [
            account
            for account in self.list(AccountFilter(active=True))
            if account.current_balance < limit
        ]

    def sum_balances_below_threshold(self, threshold) -> Decimal:
        return self._sum_balances(self.balances_below_threshold(threshold))

    def summary(self, low_balance_threshold=None) -> AccountSummary:
        """Summarise active accounts.

        Args:
            low_balance_threshold: Optional override for the configured
                low-balance threshold.

        Returns:
            AccountSummary: Totals overall and per type, plus low accounts.
        """
        threshold = (
            self._low_balance_threshold
            if low_balance_threshold is None
            else self._parse_amount(low_balance_threshold, "Threshold")
        )
        accounts = self.list(AccountFilter(active=True))
        by_type: dict[AccountType, Decimal] = {}
        for account in accounts:
            by_type[account.account_type] = (
                by_type.get(account.account_type, Decimal("0"))
                + account.current_balance
            )
        return AccountSummary(
            total_balance=self._sum_balances(accounts),
            total_by_type=by_type,
            account_count=len(accounts),
            low_balance_accounts=[
                account
                for account in accounts
                if account.current_balance < threshold
            ],
        )

    def verify_balance(self, account_id: int) -> BalanceCheck:
        """Rebuild an account's balance from its non-deleted transactions.

        Soft-deleting a transaction keeps its balance effect, so deletions
        show up here as drift until they are reversed.
        """
        with self._store.unit_of_work() as uow:
            account = self._load(uow, account_id)
            history = uow.transactions.list(
                TransactionFilter(account_id=account.id)
            )

        derived = account.starting_balance
        for tx in history:
            if tx.destination_account_id == account.id:
                derived += tx.amount
            if tx.source_account_id == account.id:
                if tx.kind is TransactionKind.REFUND:
                    derived += tx.amount
                else:
                    derived -= tx.amount

        check = BalanceCheck(
            account_id=account.id,
            stored_balance=account.current_balance,
            derived_balance=derived,
        )
        if not check.is_consistent:
            self._logger.warning(
                f"Balance drift on account {account.id}: "
                f"stored={check.stored_balance}, derived={derived}"
            )
        return check

    @staticmethod
    def _load(uow, account_id: int, for_update: bool = False) -> Account:
        account = uow.accounts.get(account_id, for_update=for_update)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    @staticmethod
    def _clean_name(name: str | None) -> str:
        clean_name = (name or "").strip()
        if not clean_name:
            raise ValidationError("Account name must not be blank")
        return clean_name

    @staticmethod
    def _parse_amount(value, label: str) -> Decimal:
        if value is None:
            raise ValidationError(f"{label} is required")
        try:
            return quantize_money(value)
        except ValueError as exc:
            raise ValidationError(f"{label} is not a number: {value!r}") from exc

    @staticmethod
    def _sum_balances(accounts: list[Account]) -> Decimal:
        return sum(
            (coerce_decimal(account.current_balance) for account in accounts),
            Decimal("0"),
        )


__all__ = ["AccountLedger"]
