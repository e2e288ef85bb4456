"""Persistence ports for the ledger core.

A store hands out units of work. Each unit of work exposes one repository per
entity, all bound to the same underlying transaction: everything done through
them becomes visible together when the unit exits normally, and nothing does
when it exits with an exception.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import ContextManager, Protocol

from budget_ledger.domain.models import (
    Account,
    AccountFilter,
    Budget,
    BudgetCategory,
    BudgetFilter,
    RecurringExpense,
    RecurringExpenseFilter,
    Transaction,
    TransactionFilter,
)


class AccountRepositoryPort(Protocol):
    """Account persistence."""

    def get(self, account_id: int, for_update: bool = False) -> Account | None:
        """Return the account, locking its row when ``for_update`` is set."""

    def get_by_name(self, name: str) -> Account | None:
        """Return the account with this exact name."""

    def add(self, account: Account) -> Account:
        """Insert a new account and return it with its id assigned."""

    def save(self, account: Account) -> Account:
        """Persist changes to an existing account."""

    def remove(self, account_id: int) -> None:
        """Hard-delete an account."""

    def list(self, account_filter: AccountFilter | None = None) -> list[Account]:
        """Return matching accounts ordered by name."""


class TransactionRepositoryPort(Protocol):
    """Transaction persistence and the aggregate queries budgets rely on."""

    def get(self, transaction_id: int) -> Transaction | None:
        """Return the transaction, deleted or not."""

    def add(self, transaction: Transaction) -> Transaction:
        """Insert a new transaction and return it with its id assigned."""

    def save(self, transaction: Transaction) -> Transaction:
        """Persist metadata or deletion changes."""

    def list(
        self,
        transaction_filter: TransactionFilter | None = None,
    ) -> list[Transaction]:
        """Return non-deleted matches, newest date first, then newest id."""

    def exists_for_account(self, account_id: int) -> bool:
        """Return True if any transaction, deleted or not, touches the account."""

    def exists_for_occurrence(
        self,
        recurring_expense_id: int,
        scheduled_date: date,
    ) -> bool:
        """Return True if a transaction was generated for this occurrence."""

    def find_reversal_of(self, transaction_id: int) -> Transaction | None:
        """Return the transaction reversing ``transaction_id``, if any."""

    def sum_category_spend(
        self,
        category: BudgetCategory,
        period_start: date,
        period_end: date,
    ) -> Decimal:
        """Return non-deleted expenses minus refunds for a category and range."""


class BudgetRepositoryPort(Protocol):
    """Budget persistence."""

    def get(self, budget_id: int) -> Budget | None:
        """Return the budget."""

    def add(self, budget: Budget) -> Budget:
        """Insert a new budget and return it with its id assigned."""

    def save(self, budget: Budget) -> Budget:
        """Persist changes to an existing budget."""

    def list(self, budget_filter: BudgetFilter | None = None) -> list[Budget]:
        """Return matching budgets, latest period start first."""

    def find_overlapping(
        self,
        category: BudgetCategory,
        period_start: date,
        period_end: date,
        exclude_id: int | None = None,
    ) -> list[Budget]:
        """Return active budgets of ``category`` overlapping the range."""


class RecurringExpenseRepositoryPort(Protocol):
    """Recurring expense template persistence."""

    def get(
        self,
        recurring_expense_id: int,
        for_update: bool = False,
    ) -> RecurringExpense | None:
        """Return the template, locking its row when ``for_update`` is set."""

    def add(self, recurring_expense: RecurringExpense) -> RecurringExpense:
        """Insert a new template and return it with its id assigned."""

    def save(self, recurring_expense: RecurringExpense) -> RecurringExpense:
        """Persist changes to an existing template."""

    def remove(self, recurring_expense_id: int) -> None:
        """Hard-delete a template; generated transactions are kept."""

    def list(
        self,
        recurring_filter: RecurringExpenseFilter | None = None,
    ) -> list[RecurringExpense]:
        """Return matching templates, earliest next date first."""

    def find_due(self, on_date: date) -> list[RecurringExpense]:
        """Return active templates scheduled on or before ``on_date``."""


class LedgerUnitOfWork(Protocol):
    """Repositories sharing one transaction."""

    accounts: AccountRepositoryPort
    transactions: TransactionRepositoryPort
    budgets: BudgetRepositoryPort
    recurring_expenses: RecurringExpenseRepositoryPort


class LedgerStorePort(Protocol):
    """Transactional store backing every ledger use case."""

    def unit_of_work(self) -> ContextManager[LedgerUnitOfWork]:
        """Open a unit of work.

        Returns:
            ContextManager[LedgerUnitOfWork]: Commits on normal exit and rolls
            back when the block raises.
        """


__all__ = [
    "AccountRepositoryPort",
    "TransactionRepositoryPort",
    "BudgetRepositoryPort",
    "RecurringExpenseRepositoryPort",
    "LedgerUnitOfWork",
    "LedgerStorePort",
]
