"""In-process ledger store.

Tables are plain dicts keyed by id. One re-entrant lock is held for the
whole of a unit of work, which serialises writers the way row locks do in
the SQL store, and a deep snapshot taken on entry is restored if the unit
raises.
"""

from __future__ import annotations

from contextlib import contextmanager
import copy
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
import threading
from typing import Iterator

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
    TransactionKind,
)
from budget_ledger.domain.services.periods import periods_overlap
from budget_ledger.utils.utils import utc_now


@dataclass
class _Tables:
    accounts: dict[int, Account] = field(default_factory=dict)
    transactions: dict[int, Transaction] = field(default_factory=dict)
    budgets: dict[int, Budget] = field(default_factory=dict)
    recurring_expenses: dict[int, RecurringExpense] = field(default_factory=dict)
    sequences: dict[str, int] = field(default_factory=dict)

    def next_id(self, table: str) -> int:
        value = self.sequences.get(table, 0) + 1
        self.sequences[table] = value
        return value


class InMemoryAccountRepository:
    def __init__(self, tables: _Tables) -> None:
        self._tables = tables

    def get(self, account_id: int, for_update: bool = False) -> Account | None:
        account = self._tables.accounts.get(account_id)
        return copy.copy(account) if account else None

    def get_by_name(self, name: str) -> Account | None:
        for account in self._tables.accounts.values():
            if account.name == name:
                return copy.copy(account)
        return None

    def add(self, account: Account) -> Account:
        now = utc_now()
        stored = replace(
            account,
            id=self._tables.next_id("accounts"),
            created_at=now,
            updated_at=now,
        )
        self._tables.accounts[stored.id] = stored
        return copy.copy(stored)

    def save(self, account: Account) -> Account:
        stored = replace(account, updated_at=utc_now())
        self._tables.accounts[stored.id] = stored
        return copy.copy(stored)

    def remove(self, account_id: int) -> None:
        self._tables.accounts.pop(account_id, None)

    def list(self, account_filter: AccountFilter | None = None) -> list[Account]:
        criteria = account_filter or AccountFilter()
        matches = [
            copy.copy(account)
            for account in self._tables.accounts.values()
            if _account_matches(account, criteria)
        ]
        return sorted(matches, key=lambda account: (account.name, account.id))


def _account_matches(account: Account, criteria: AccountFilter) -> bool:
    if criteria.active is not None and account.active != criteria.active:
        return False
    if (
        criteria.account_type is not None
        and account.account_type is not criteria.account_type
    ):
        return False
    if (
        criteria.min_balance is not None
        and account.current_balance < criteria.min_balance
    ):
        return False
    if (
        criteria.max_balance is not None
        and account.current_balance > criteria.max_balance
    ):
        return False
    if criteria.name_contains:
        if criteria.name_contains.lower() not in account.name.lower():
            return False
    return True


class InMemoryTransactionRepository:
    def __init__(self, tables: _Tables) -> None:
        self._tables = tables

    def get(self, transaction_id: int) -> Transaction | None:
        return self._tables.transactions.get(transaction_id)

    def add(self, transaction: Transaction) -> Transaction:
        now = utc_now()
        stored = replace(
            transaction,
            id=self._tables.next_id("transactions"),
            created_at=now,
            updated_at=now,
        )
        self._tables.transactions[stored.id] = stored
        return stored

    def save(self, transaction: Transaction) -> Transaction:
        stored = replace(transaction, updated_at=utc_now())
        self._tables.transactions[stored.id] = stored
        return stored

    def list(
        self,
        transaction_filter: TransactionFilter | None = None,
    ) -> list[Transaction]:
        criteria = transaction_filter or TransactionFilter()
        matches = [
            transaction
            for transaction in self._tables.transactions.values()
            if not transaction.deleted
            and _transaction_matches(transaction, criteria)
        ]
        return sorted(
            matches,
            key=lambda tx: (tx.transaction_date, tx.id),
            reverse=True,
        )

    def exists_for_account(self, account_id: int) -> bool:
        return any(
            account_id in (tx.source_account_id, tx.destination_account_id)
            for tx in self._tables.transactions.values()
        )

    def exists_for_occurrence(
        self,
        recurring_expense_id: int,
        scheduled_date: date,
    ) -> bool:
        return any(
            tx.recurring_expense_id == recurring_expense_id
            and tx.transaction_date == scheduled_date
            for tx in self._tables.transactions.values()
        )

    def find_reversal_of(self, transaction_id: int) -> Transaction | None:
        for tx in self._tables.transactions.values():
            if tx.reverses_transaction_id == transaction_id:
                return tx
        return None

    def sum_category_spend(
        self,
        category: BudgetCategory,
        period_start: date,
        period_end: date,
    ) -> Decimal:
        total = Decimal("0")
        for tx in self._tables.transactions.values():
            if tx.deleted or tx.category is not category:
                continue
            if not period_start <= tx.transaction_date <= period_end:
                continue
            if tx.kind is TransactionKind.EXPENSE:
                total += tx.amount
            elif tx.kind is TransactionKind.REFUND:
                total -= tx.amount
        return total


def _transaction_matches(tx: Transaction, criteria: TransactionFilter) -> bool:
    if criteria.date_from is not None and tx.transaction_date < criteria.date_from:
        return False
    if criteria.date_to is not None and tx.transaction_date > criteria.date_to:
        return False
    if criteria.category is not None and tx.category is not criteria.category:
        return False
    if criteria.kind is not None and tx.kind is not criteria.kind:
        return False
    if criteria.account_id is not None and criteria.account_id not in (
        tx.source_account_id,
        tx.destination_account_id,
    ):
        return False
    return True


class InMemoryBudgetRepository:
    def __init__(self, tables: _Tables) -> None:
        self._tables = tables

    def get(self, budget_id: int) -> Budget | None:
        budget = self._tables.budgets.get(budget_id)
        return copy.copy(budget) if budget else None

    def add(self, budget: Budget) -> Budget:
        now = utc_now()
        stored = replace(
            budget,
            id=self._tables.next_id("budgets"),
            created_at=now,
            updated_at=now,
        )
        self._tables.budgets[stored.id] = stored
        return copy.copy(stored)

    def save(self, budget: Budget) -> Budget:
        stored = replace(budget, updated_at=utc_now())
        self._tables.budgets[stored.id] = stored
        return copy.copy(stored)

    def list(self, budget_filter: BudgetFilter | None = None) -> list[Budget]:
        criteria = budget_filter or BudgetFilter()
        matches = [
            copy.copy(budget)
            for budget in self._tables.budgets.values()
            if _budget_matches(budget, criteria)
        ]
        matches.sort(key=lambda budget: budget.id)
        matches.sort(key=lambda budget: budget.period_start, reverse=True)
        return matches

    def find_overlapping(
        self,
        category: BudgetCategory,
        period_start: date,
        period_end: date,
        exclude_id: int | None = None,
    ) -> list[Budget]:
        return [
            copy.copy(budget)
            for budget in self._tables.budgets.values()
            if budget.active
            and budget.category is category
            and budget.id != exclude_id
            and budget.overlaps(period_start, period_end)
        ]


def _budget_matches(budget: Budget, criteria: BudgetFilter) -> bool:
    if criteria.category is not None and budget.category is not criteria.category:
        return False
    if criteria.active is not None and budget.active != criteria.active:
        return False
    start = criteria.period_start or date.min
    end = criteria.period_end or date.max
    return periods_overlap(budget.period_start, budget.period_end, start, end)


class InMemoryRecurringExpenseRepository:
    def __init__(self, tables: _Tables) -> None:
        self._tables = tables

    def get(
        self,
        recurring_expense_id: int,
        for_update: bool = False,
    ) -> RecurringExpense | None:
        template = self._tables.recurring_expenses.get(recurring_expense_id)
        return copy.copy(template) if template else None

    def add(self, recurring_expense: RecurringExpense) -> RecurringExpense:
        now = utc_now()
        stored = replace(
            recurring_expense,
            id=self._tables.next_id("recurring_expenses"),
            created_at=now,
            updated_at=now,
        )
        self._tables.recurring_expenses[stored.id] = stored
        return copy.copy(stored)

    def save(self, recurring_expense: RecurringExpense) -> RecurringExpense:
        stored = replace(recurring_expense, updated_at=utc_now())
        self._tables.recurring_expenses[stored.id] = stored
        return copy.copy(stored)

    def remove(self, recurring_expense_id: int) -> None:
        self._tables.recurring_expenses.pop(recurring_expense_id, None)

    def list(
        self,
        recurring_filter: RecurringExpenseFilter | None = None,
    ) -> list[RecurringExpense]:
        criteria = recurring_filter or RecurringExpenseFilter()
        matches = [
            copy.copy(template)
            for template in self._tables.recurring_expenses.values()
            if _recurring_matches(template, criteria)
        ]
        return sorted(
            matches,
            key=lambda template: (
                template.next_scheduled_date or date.max,
                template.id,
            ),
        )

    def find_due(self, on_date: date) -> list[RecurringExpense]:
        due = [
            copy.copy(template)
            for template in self._tables.recurring_expenses.values()
            if template.active
            and template.next_scheduled_date is not None
            and template.next_scheduled_date <= on_date
        ]
        return sorted(
            due,
            key=lambda template: (template.next_scheduled_date, template.id),
        )


def _recurring_matches(
    template: RecurringExpense,
    criteria: RecurringExpenseFilter,
) -> bool:
    if criteria.active is not None and template.active != criteria.active:
        return False
    if (
        criteria.source_account_id is not None
        and template.source_account_id != criteria.source_account_id
    ):
        return False
    if (
        criteria.frequency is not None
        and template.frequency is not criteria.frequency
    ):
        return False
    return True


class InMemoryUnitOfWork:
    """Repositories bound to the store's live tables."""

    def __init__(self, tables: _Tables) -> None:
        self.accounts = InMemoryAccountRepository(tables)
        self.transactions = InMemoryTransactionRepository(tables)
        self.budgets = InMemoryBudgetRepository(tables)
        self.recurring_expenses = InMemoryRecurringExpenseRepository(tables)


class InMemoryLedgerStore:
    """LedgerStorePort kept entirely in process memory."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables = _Tables()

    @contextmanager
    def unit_of_work(self) -> Iterator[InMemoryUnitOfWork]:
        with self._lock:
            snapshot = copy.deepcopy(self._tables)
            try:
                yield InMemoryUnitOfWork(self._tables)
            except Exception:
                self._tables = snapshot
                raise


__all__ = ["InMemoryLedgerStore", "InMemoryUnitOfWork"]
