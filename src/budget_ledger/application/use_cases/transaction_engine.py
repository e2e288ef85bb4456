"""Use case recording financial movements against accounts.

Each public entry point runs in exactly one unit of work: the transaction
row and every balance it moves are committed together, or not at all.
Accounts are loaded for update (in ascending id order when two are involved)
so concurrent writers to one account are serialised by the store.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Callable

from budget_ledger.application.ports.ledger_store import LedgerStorePort
from budget_ledger.application.use_cases.commands import (
    RecordExpenseCommand,
    RecordIncomeCommand,
    RecordRefundCommand,
    RecordTransferCommand,
)
from budget_ledger.domain.errors import (
    AccountNotFoundError,
    DuplicateGenerationError,
    DuplicateReversalError,
    InactiveAccountError,
    InsufficientFundsError,
    TransactionNotFoundError,
    ValidationError,
)
from budget_ledger.domain.models import (
    DEFAULT_CURRENCY,
    Account,
    BudgetCategory,
    Transaction,
    TransactionFilter,
    TransactionKind,
)
from budget_ledger.domain.services import ledger
from budget_ledger.infrastructure.logging.logger import (
    get_app_logger,
    get_audit_logger,
)


REVERSAL_DESCRIPTION = "REVERSAL: {reason} (Original: {original_id})"


class TransactionEngine:
    """Record, edit, delete, reverse and list transactions."""

    def __init__(
        self,
        store: LedgerStorePort,
        logger=None,
        audit_logger=None,
        today: Callable[[], date] = date.today,
        currency: str = DEFAULT_CURRENCY,
    ) -> None:
        """Initialize the use case.

        Args:
            store: Transactional ledger store.
            logger: Optional logger compatible with logging.Logger-like API.
            audit_logger: Optional logger receiving one line per committed
                financial event.
            today: Clock used to reject future-dated edits.
            currency: Currency code stamped on new transactions.
        """
        self._store = store
        self._logger = logger or get_app_logger()
        self._audit = audit_logger or get_audit_logger()
        self._today = today
        self._currency = currency

    def record_income(self, command: RecordIncomeCommand) -> Transaction:
        """Credit the destination account.

        Raises:
            AccountNotFoundError: If the account does not exist.
            InactiveAccountError: If the account is closed.
        """
        transaction = Transaction.income(
            destination_account_id=command.destination_account_id,
            amount=command.amount,
            transaction_date=command.transaction_date,
            description=command.description,
            currency=self._currency,
        )
        with self._store.unit_of_work() as uow:
            destination = self._load_account(
                uow, command.destination_account_id
            )
            ledger.credit(destination, command.amount)
            saved = uow.transactions.add(transaction)
            uow.accounts.save(destination)

        self._record_event(saved)
        return saved

    def record_expense(self, command: RecordExpenseCommand) -> Transaction:
        """Debit the source account.

        Raises:
            AccountNotFoundError: If the account does not exist.
            InactiveAccountError: If the account is closed.
            InsufficientFundsError: If a non credit card account would go
                negative.
            DuplicateGenerationError: If the command comes from a recurring
                template whose occurrence already has a transaction.
        """
        transaction = Transaction.expense(
            source_account_id=command.source_account_id,
            amount=command.amount,
            category=command.category,
            transaction_date=command.transaction_date,
            description=command.description,
            currency=self._currency,
            recurring_expense_id=command.recurring_expense_id,
        )
        with self._store.unit_of_work() as uow:
            if command.recurring_expense_id is not None and (
                uow.transactions.exists_for_occurrence(
                    command.recurring_expense_id,
                    command.transaction_date,
                )
            ):
                raise DuplicateGenerationError(
                    command.recurring_expense_id,
                    command.transaction_date,
                )
            source = self._load_account(uow, command.source_account_id)
            self._require_funds(source, command.amount)
            ledger.debit(source, command.amount)
            saved = uow.transactions.add(transaction)
            uow.accounts.save(source)

        self._record_event(saved)
        return saved

    def record_transfer(self, command: RecordTransferCommand) -> Transaction:
        """Move money between two distinct accounts.

        Raises:
            AccountNotFoundError: If either account does not exist.
            InactiveAccountError: If either account is closed.
            InsufficientFundsError: If a non credit card source would go
                negative.
        """
        transaction = Transaction.transfer(
            source_account_id=command.source_account_id,
            destination_account_id=command.destination_account_id,
            amount=command.amount,
            transaction_date=command.transaction_date,
            description=command.description,
            currency=self._currency,
        )
        with self._store.unit_of_work() as uow:
            source, destination = self._load_pair(
                uow,
                command.source_account_id,
                command.destination_account_id,
            )
            self._require_funds(source, command.amount)
            ledger.debit(source, command.amount)
            ledger.credit(destination, command.amount)
            saved = uow.transactions.add(transaction)
            uow.accounts.save(source)
            uow.accounts.save(destination)

        self._record_event(saved)
        return saved

    def record_refund(self, command: RecordRefundCommand) -> Transaction:
        """Credit the source account for money coming back.

        A refund carrying a category lowers the derived spend of budgets for
        that category and date; without a matching budget it affects balances
        only.

        Raises:
            AccountNotFoundError: If the account does not exist.
            InactiveAccountError: If the account is closed.
        """
        transaction = Transaction.refund(
            source_account_id=command.source_account_id,
            amount=command.amount,
            transaction_date=command.transaction_date,
            category=command.category,
            description=command.description,
            currency=self._currency,
        )
        with self._store.unit_of_work() as uow:
            source = self._load_account(uow, command.source_account_id)
            ledger.credit(source, command.amount)
            saved = uow.transactions.add(transaction)
            uow.accounts.save(source)

        self._record_event(saved)
        return saved

    def update_metadata(
        self,
        transaction_id: int,
        new_date: date | None = None,
        new_category: BudgetCategory | str | None = None,
        new_description: str | None = None,
    ) -> Transaction:
        """Change date, category or description of a transaction.

        Amount, kind and accounts never change; use :meth:`reverse` to undo a
        movement.

        Raises:
            TransactionNotFoundError: If the transaction does not exist.
            ValidationError: On a future date or a category change on an
                income or transfer.
        """
        if new_date is not None and new_date > self._today():
            raise ValidationError("Transaction date cannot be in the future")

        with self._store.unit_of_work() as uow:
            original = self._load_transaction(uow, transaction_id)
            updated = original.with_metadata(
                transaction_date=new_date,
                category=new_category,
                description=new_description,
            )
            if (
                updated.is_recurring
                and updated.transaction_date != original.transaction_date
                and uow.transactions.exists_for_occurrence(
                    updated.recurring_expense_id,
                    updated.transaction_date,
                )
            ):
                raise DuplicateGenerationError(
                    updated.recurring_expense_id,
                    updated.transaction_date,
                )
            saved = uow.transactions.save(updated)

        self._logger.info(f"Updated metadata of transaction {saved.id}")
        return saved

    def delete(self, transaction_id: int) -> bool:
        """Soft-delete a transaction.

        Balances are left as they are; only a reversal undoes the movement.

        Returns:
            bool: False if the transaction was already deleted.

        Raises:
            TransactionNotFoundError: If the transaction does not exist.
        """
        with self._store.unit_of_work() as uow:
            transaction = self._load_transaction(uow, transaction_id)
            if transaction.deleted:
                return False
            uow.transactions.save(replace(transaction, deleted=True))

        self._audit.info(f"DELETE transaction={transaction_id}")
        return True

    def reverse(
        self,
        transaction_id: int,
        reversal_date: date,
        reason: str,
    ) -> Transaction:
        """Record the inverse of a transaction.

        ============  ==================================================
        original      reversal
        ============  ==================================================
        income        expense from the credited account (MISCELLANEOUS)
        expense       refund to the debited account, same category
        transfer      transfer back from destination to source
        refund        expense from the account, original category or
                      MISCELLANEOUS
        ============  ==================================================

        The reversal skips the funds check, since a correction must always be
        recordable, but the accounts involved must still be active.

        Args:
            transaction_id: Transaction to reverse.
            reversal_date: Date of the reversal.
            reason: Free-text reason embedded in the description.

        Returns:
            Transaction: The persisted reversal.

        Raises:
            TransactionNotFoundError: If the transaction does not exist.
            DuplicateReversalError: If it was already reversed.
            InactiveAccountError: If an involved account is closed.
        """
        if not isinstance(reversal_date, date):
            raise ValidationError("Reversal date is required")

        with self._store.unit_of_work() as uow:
            original = self._load_transaction(uow, transaction_id)
            if uow.transactions.find_reversal_of(original.id) is not None:
                raise DuplicateReversalError(original.id)

            reversal = self._build_reversal(original, reversal_date, reason)
            touched = self._apply_reversal(uow, original)
            saved = uow.transactions.add(reversal)
            for account in touched:
                uow.accounts.save(account)

        self._audit.info(
            f"REVERSE transaction={original.id} reversal={saved.id} "
            f"reason={reason!r}"
        )
        self._record_event(saved)
        return saved

    def get(self, transaction_id: int) -> Transaction:
        """Return a transaction, including soft-deleted ones."""
        with self._store.unit_of_work() as uow:
            return self._load_transaction(uow, transaction_id)

    def list(
        self,
        transaction_filter: TransactionFilter | None = None,
    ) -> list[Transaction]:
        """Return non-deleted transactions, newest date then newest id first."""
        with self._store.unit_of_work() as uow:
            return uow.transactions.list(transaction_filter)

    def _build_reversal(
        self,
        original: Transaction,
        reversal_date: date,
        reason: str,
    ) -> Transaction:
        description = REVERSAL_DESCRIPTION.format(
            reason=reason or "",
            original_id=original.id,
        )
        common = {
            "amount": original.amount,
            "transaction_date": reversal_date,
            "description": description,
            "currency": original.currency,
            "reverses_transaction_id": original.id,
        }
        if original.kind is TransactionKind.INCOME:
            return Transaction.expense(
                source_account_id=original.destination_account_id,
                category=BudgetCategory.MISCELLANEOUS,
                **common,
            )
        if original.kind is TransactionKind.EXPENSE:
            return Transaction.refund(
                source_account_id=original.source_account_id,
                category=original.category,
                **common,
            )
        if original.kind is TransactionKind.TRANSFER:
            return Transaction.transfer(
                source_account_id=original.destination_account_id,
                destination_account_id=original.source_account_id,
                **common,
            )
        return Transaction.expense(
            source_account_id=original.source_account_id,
            category=original.category or BudgetCategory.MISCELLANEOUS,
            **common,
        )

    def _apply_reversal(self, uow, original: Transaction) -> list[Account]:
        amount = original.amount
        if original.kind is TransactionKind.INCOME:
            account = self._load_account(uow, original.destination_account_id)
            return [ledger.debit(account, amount)]
        if original.kind is TransactionKind.EXPENSE:
            account = self._load_account(uow, original.source_account_id)
            return [ledger.credit(account, amount)]
        if original.kind is TransactionKind.TRANSFER:
            source, destination = self._load_pair(
                uow,
                original.source_account_id,
                original.destination_account_id,
            )
            ledger.debit(destination, amount)
            ledger.credit(source, amount)
            return [source, destination]
        account = self._load_account(uow, original.source_account_id)
        return [ledger.debit(account, amount)]

    def _load_account(self, uow, account_id: int) -> Account:
        account = uow.accounts.get(account_id, for_update=True)
        if account is None:
            raise AccountNotFoundError(account_id)
        if not account.active:
            raise InactiveAccountError(account.id)
        return account

    def _load_pair(
        self,
        uow,
        source_id: int,
        destination_id: int,
    ) -> tuple[Account, Account]:
        loaded = {
            account_id: self._load_account(uow, account_id)
            for account_id in sorted((source_id, destination_id))
        }
        return loaded[source_id], loaded[destination_id]

    @staticmethod
    def _load_transaction(uow, transaction_id: int) -> Transaction:
        transaction = uow.transactions.get(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction

    @staticmethod
    def _require_funds(account: Account, amount) -> None:
        if not ledger.has_sufficient_balance(account, amount):
            raise InsufficientFundsError(
                account.id,
                account.current_balance,
                amount,
            )

    def _record_event(self, transaction: Transaction) -> None:
        self._audit.info(
            f"{transaction.kind.value} transaction={transaction.id} "
            f"amount={transaction.amount} {transaction.currency} "
            f"source={transaction.source_account_id} "
            f"destination={transaction.destination_account_id} "
            f"category={getattr(transaction.category, 'value', None)} "
            f"date={transaction.transaction_date.isoformat()}"
        )
        self._logger.info(
            f"Recorded {transaction.kind.value.lower()} {transaction.id} "
            f"of {transaction.amount}"
        )


__all__ = ["TransactionEngine", "REVERSAL_DESCRIPTION"]
