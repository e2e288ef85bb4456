"""SQLAlchemy-backed ledger store.

A unit of work is one ``engine.begin()`` block: every repository in it
shares the connection, so all writes commit together or roll back together.
Account and template rows read for update use ``SELECT ... FOR UPDATE``
(compiled away on SQLite, which locks the whole database per write).
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Any, Iterator

from sqlalchemy import (
    and_,
    case,
    delete,
    func,
    insert,
    or_,
    select,
    type_coerce,
    update,
)
from sqlalchemy.engine import Connection

from budget_ledger.application.ports.database import DatabaseEnginePort
from budget_ledger.domain.models import (
    Account,
    AccountFilter,
    AccountType,
    Budget,
    BudgetCategory,
    BudgetFilter,
    Frequency,
    RecurringExpense,
    RecurringExpenseFilter,
    Transaction,
    TransactionFilter,
    TransactionKind,
)
from budget_ledger.infrastructure.logging.logger import get_app_logger
from budget_ledger.infrastructure.schema import (
    MONEY,
    accounts_table,
    budgets_table,
    metadata,
    recurring_expenses_table,
    transactions_table,
)
from budget_ledger.utils.decimal_utils import coerce_decimal, quantize_money
from budget_ledger.utils.utils import utc_now


def _category_value(category: BudgetCategory | None) -> str | None:
    return category.value if category is not None else None


def _category(raw: str | None) -> BudgetCategory | None:
    return BudgetCategory(raw) if raw else None


class SqlAlchemyAccountRepository:
    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get(self, account_id: int, for_update: bool = False) -> Account | None:
        query = select(accounts_table).where(accounts_table.c.id == account_id)
        if for_update:
            query = query.with_for_update()
        row = self._conn.execute(query).first()
        return self._to_account(row) if row else None

    def get_by_name(self, name: str) -> Account | None:
        query = select(accounts_table).where(accounts_table.c.name == name)
        row = self._conn.execute(query).first()
        return self._to_account(row) if row else None

    def add(self, account: Account) -> Account:
        now = utc_now()
        values = self._to_values(account)
        values.update(created_at=now, updated_at=now)
        result = self._conn.execute(insert(accounts_table).values(**values))
        return self.get(result.inserted_primary_key[0])

    def save(self, account: Account) -> Account:
        values = self._to_values(account)
        values["updated_at"] = utc_now()
        self._conn.execute(
            update(accounts_table)
            .where(accounts_table.c.id == account.id)
            .values(**values)
        )
        return self.get(account.id)

    def remove(self, account_id: int) -> None:
        self._conn.execute(
            delete(accounts_table).where(accounts_table.c.id == account_id)
        )

    def list(self, account_filter: AccountFilter | None = None) -> list[Account]:
        criteria = account_filter or AccountFilter()
        table = accounts_table
        query = select(table)
        if criteria.active is not None:
            query = query.where(table.c.active == criteria.active)
        if criteria.account_type is not None:
            query = query.where(
                table.c.account_type == criteria.account_type.value
            )
        if criteria.min_balance is not None:
            query = query.where(table.c.current_balance >= criteria.min_balance)
        if criteria.max_balance is not None:
            query = query.where(table.c.current_balance <= criteria.max_balance)
        if criteria.name_contains:
            pattern = f"%{criteria.name_contains.lower()}%"
            query = query.where(func.lower(table.c.name).like(pattern))
        query = query.order_by(table.c.name, table.c.id)
        return [self._to_account(row) for row in self._conn.execute(query)]

    @staticmethod
    def _to_values(account: Account) -> dict[str, Any]:
        return {
            "name": account.name,
            "account_type": account.account_type.value,
            "starting_balance": quantize_money(account.starting_balance),
            "current_balance": quantize_money(account.current_balance),
            "description": account.description or "",
            "active": account.active,
        }

    @staticmethod
    def _to_account(row) -> Account:
        data = row._mapping
        return Account(
            id=data["id"],
            name=data["name"],
            account_type=AccountType(data["account_type"]),
            starting_balance=coerce_decimal(data["starting_balance"]),
            current_balance=coerce_decimal(data["current_balance"]),
            description=data["description"] or "",
            active=bool(data["active"]),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
        )


class SqlAlchemyTransactionRepository:
    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get(self, transaction_id: int) -> Transaction | None:
        query = select(transactions_table).where(
            transactions_table.c.id == transaction_id
        )
        row = self._conn.execute(query).first()
        return self._to_transaction(row) if row else None

    def add(self, transaction: Transaction) -> Transaction:
        now = utc_now()
        values = self._to_values(transaction)
        values.update(created_at=now, updated_at=now)
        result = self._conn.execute(insert(transactions_table).values(**values))
        return self.get(result.inserted_primary_key[0])

    def save(self, transaction: Transaction) -> Transaction:
        values = self._to_values(transaction)
        values["updated_at"] = utc_now()
        self._conn.execute(
            update(transactions_table)
            .where(transactions_table.c.id == transaction.id)
            .values(**values)
        )
        return self.get(transaction.id)

    def list(
        self,
        transaction_filter: TransactionFilter | None = None,
    ) -> list[Transaction]:
        criteria = transaction_filter or TransactionFilter()
        table = transactions_table
        query = select(table).where(table.c.is_deleted.is_(False))
        if criteria.date_from is not None:
            query = query.where(table.c.transaction_date >= criteria.date_from)
        if criteria.date_to is not None:
            query = query.where(table.c.transaction_date <= criteria.date_to)
        if criteria.category is not None:
            query = query.where(
                table.c.budget_category == criteria.category.value
            )
        if criteria.kind is not None:
            query = query.where(table.c.transaction_type == criteria.kind.value)
        if criteria.account_id is not None:
            query = query.where(
                or_(
                    table.c.source_account_id == criteria.account_id,
                    table.c.destination_account_id == criteria.account_id,
                )
            )
        query = query.order_by(table.c.transaction_date.desc(), table.c.id.desc())
        return [self._to_transaction(row) for row in self._conn.execute(query)]

    def exists_for_account(self, account_id: int) -> bool:
        table = transactions_table
        query = (
            select(table.c.id)
            .where(
                or_(
                    table.c.source_account_id == account_id,
                    table.c.destination_account_id == account_id,
                )
            )
            .limit(1)
        )
        return self._conn.execute(query).first() is not None

    def exists_for_occurrence(
        self,
        recurring_expense_id: int,
        scheduled_date: date,
    ) -> bool:
        table = transactions_table
        query = (
            select(table.c.id)
            .where(
                and_(
                    table.c.recurring_expense_id == recurring_expense_id,
                    table.c.transaction_date == scheduled_date,
                )
            )
            .limit(1)
        )
        return self._conn.execute(query).first() is not None

    def find_reversal_of(self, transaction_id: int) -> Transaction | None:
        query = select(transactions_table).where(
            transactions_table.c.reverses_transaction_id == transaction_id
        )
        row = self._conn.execute(query).first()
        return self._to_transaction(row) if row else None

    def sum_category_spend(
        self,
        category: BudgetCategory,
        period_start: date,
        period_end: date,
    ) -> Decimal:
        table = transactions_table
        signed_amount = case(
            (table.c.transaction_type == TransactionKind.REFUND.value, -table.c.amount),
            else_=table.c.amount,
        )
        total = type_coerce(func.sum(signed_amount), MONEY)
        query = select(total).where(
            table.c.is_deleted.is_(False),
            table.c.budget_category == category.value,
            table.c.transaction_date >= period_start,
            table.c.transaction_date <= period_end,
            table.c.transaction_type.in_(
                [TransactionKind.EXPENSE.value, TransactionKind.REFUND.value]
            ),
        )
        return quantize_money(self._conn.execute(query).scalar() or 0)

    @staticmethod
    def _to_values(transaction: Transaction) -> dict[str, Any]:
        return {
            "transaction_type": transaction.kind.value,
            "source_account_id": transaction.source_account_id,
            "destination_account_id": transaction.destination_account_id,
            "amount": quantize_money(transaction.amount),
            "budget_category": _category_value(transaction.category),
            "transaction_date": transaction.transaction_date,
            "description": transaction.description or "",
            "currency": transaction.currency,
            "is_recurring": transaction.is_recurring,
            "recurring_expense_id": transaction.recurring_expense_id,
            "reverses_transaction_id": transaction.reverses_transaction_id,
            "is_deleted": transaction.deleted,
        }

    @staticmethod
    def _to_transaction(row) -> Transaction:
        data = row._mapping
        return Transaction(
            id=data["id"],
            kind=TransactionKind(data["transaction_type"]),
            source_account_id=data["source_account_id"],
            destination_account_id=data["destination_account_id"],
            amount=coerce_decimal(data["amount"]),
            category=_category(data["budget_category"]),
            transaction_date=data["transaction_date"],
            description=data["description"] or "",
            currency=data["currency"],
            recurring_expense_id=data["recurring_expense_id"],
            reverses_transaction_id=data["reverses_transaction_id"],
            deleted=bool(data["is_deleted"]),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
        )


class SqlAlchemyBudgetRepository:
    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get(self, budget_id: int) -> Budget | None:
        query = select(budgets_table).where(budgets_table.c.id == budget_id)
        row = self._conn.execute(query).first()
        return self._to_budget(row) if row else None

    def add(self, budget: Budget) -> Budget:
        now = utc_now()
        values = self._to_values(budget)
        values.update(created_at=now, updated_at=now)
        result = self._conn.execute(insert(budgets_table).values(**values))
        return self.get(result.inserted_primary_key[0])

    def save(self, budget: Budget) -> Budget:
        values = self._to_values(budget)
        values["updated_at"] = utc_now()
        self._conn.execute(
            update(budgets_table)
            .where(budgets_table.c.id == budget.id)
            .values(**values)
        )
        return self.get(budget.id)

    def list(self, budget_filter: BudgetFilter | None = None) -> list[Budget]:
        criteria = budget_filter or BudgetFilter()
        table = budgets_table
        query = select(table)
        if criteria.category is not None:
            query = query.where(
                table.c.budget_category == criteria.category.value
            )
        if criteria.active is not None:
            query = query.where(table.c.active == criteria.active)
        if criteria.period_end is not None:
            query = query.where(table.c.period_start <= criteria.period_end)
        if criteria.period_start is not None:
            query = query.where(table.c.period_end >= criteria.period_start)
        query = query.order_by(table.c.period_start.desc(), table.c.id)
        return [self._to_budget(row) for row in self._conn.execute(query)]

    def find_overlapping(
        self,
        category: BudgetCategory,
        period_start: date,
        period_end: date,
        exclude_id: int | None = None,
    ) -> list[Budget]:
        table = budgets_table
        query = select(table).where(
            table.c.active.is_(True),
            table.c.budget_category == category.value,
            table.c.period_start <= period_end,
            table.c.period_end >= period_start,
        )
        if exclude_id is not None:
            query = query.where(table.c.id != exclude_id)
        return [self._to_budget(row) for row in self._conn.execute(query)]

    @staticmethod
    def _to_values(budget: Budget) -> dict[str, Any]:
        return {
            "budget_category": budget.category.value,
            "allocated_amount": quantize_money(budget.allocated_amount),
            "period_start": budget.period_start,
            "period_end": budget.period_end,
            "active": budget.active,
        }

    @staticmethod
    def _to_budget(row) -> Budget:
        data = row._mapping
        return Budget(
            id=data["id"],
            category=BudgetCategory(data["budget_category"]),
            allocated_amount=coerce_decimal(data["allocated_amount"]),
            period_start=data["period_start"],
            period_end=data["period_end"],
            active=bool(data["active"]),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
        )


class SqlAlchemyRecurringExpenseRepository:
    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get(
        self,
        recurring_expense_id: int,
        for_update: bool = False,
    ) -> RecurringExpense | None:
        query = select(recurring_expenses_table).where(
            recurring_expenses_table.c.id == recurring_expense_id
        )
        if for_update:
            query = query.with_for_update()
        row = self._conn.execute(query).first()
        return self._to_template(row) if row else None

    def add(self, recurring_expense: RecurringExpense) -> RecurringExpense:
        now = utc_now()
        values = self._to_values(recurring_expense)
        values.update(created_at=now, updated_at=now)
        result = self._conn.execute(
            insert(recurring_expenses_table).values(**values)
        )
        return self.get(result.inserted_primary_key[0])

    def save(self, recurring_expense: RecurringExpense) -> RecurringExpense:
        values = self._to_values(recurring_expense)
        values["updated_at"] = utc_now()
        self._conn.execute(
            update(recurring_expenses_table)
            .where(recurring_expenses_table.c.id == recurring_expense.id)
            .values(**values)
        )
        return self.get(recurring_expense.id)

    def remove(self, recurring_expense_id: int) -> None:
        self._conn.execute(
            delete(recurring_expenses_table).where(
                recurring_expenses_table.c.id == recurring_expense_id
            )
        )

    def list(
        self,
        recurring_filter: RecurringExpenseFilter | None = None,
    ) -> list[RecurringExpense]:
        criteria = recurring_filter or RecurringExpenseFilter()
        table = recurring_expenses_table
        query = select(table)
        if criteria.active is not None:
            query = query.where(table.c.active == criteria.active)
        if criteria.source_account_id is not None:
            query = query.where(
                table.c.source_account_id == criteria.source_account_id
            )
        if criteria.frequency is not None:
            query = query.where(table.c.frequency == criteria.frequency.value)
        query = query.order_by(
            table.c.next_scheduled_date.is_(None),
            table.c.next_scheduled_date,
            table.c.id,
        )
        return [self._to_template(row) for row in self._conn.execute(query)]

    def find_due(self, on_date: date) -> list[RecurringExpense]:
        table = recurring_expenses_table
        query = (
            select(table)
            .where(
                table.c.active.is_(True),
                table.c.next_scheduled_date.is_not(None),
                table.c.next_scheduled_date <= on_date,
            )
            .order_by(table.c.next_scheduled_date, table.c.id)
        )
        return [self._to_template(row) for row in self._conn.execute(query)]

    @staticmethod
    def _to_values(template: RecurringExpense) -> dict[str, Any]:
        return {
            "frequency": template.frequency.value,
            "next_scheduled_date": template.next_scheduled_date,
            "amount": quantize_money(template.amount),
            "budget_category": template.category.value,
            "description": template.description,
            "active": template.active,
            "source_account_id": template.source_account_id,
            "last_generated_date": template.last_generated_date,
        }

    @staticmethod
    def _to_template(row) -> RecurringExpense:
        data = row._mapping
        return RecurringExpense(
            id=data["id"],
            frequency=Frequency(data["frequency"]),
            next_scheduled_date=data["next_scheduled_date"],
            amount=coerce_decimal(data["amount"]),
            category=BudgetCategory(data["budget_category"]),
            description=data["description"],
            active=bool(data["active"]),
            source_account_id=data["source_account_id"],
            last_generated_date=data["last_generated_date"],
            created_at=data["created_at"],
            updated_at=data["updated_at"],
        )


class SqlAlchemyUnitOfWork:
    """Repositories sharing one SQLAlchemy connection and transaction."""

    def __init__(self, conn: Connection) -> None:
        self.connection = conn
        self.accounts = SqlAlchemyAccountRepository(conn)
        self.transactions = SqlAlchemyTransactionRepository(conn)
        self.budgets = SqlAlchemyBudgetRepository(conn)
        self.recurring_expenses = SqlAlchemyRecurringExpenseRepository(conn)


class SqlAlchemyLedgerStore:
    """LedgerStorePort backed by a SQLAlchemy engine."""

    def __init__(self, db_port: DatabaseEnginePort, logger=None) -> None:
        """Initialize the store.

        Args:
            db_port: Port providing access to the ledger engine.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._db_port = db_port
        self._logger = logger or get_app_logger()

    @contextmanager
    def unit_of_work(self) -> Iterator[SqlAlchemyUnitOfWork]:
        engine = self._db_port.get_ledger_engine()
        with engine.begin() as conn:
            yield SqlAlchemyUnitOfWork(conn)

    def create_schema(self) -> None:
        """Create any missing ledger tables."""
        engine = self._db_port.get_ledger_engine()
        metadata.create_all(engine)
        self._logger.info(
            f"Ledger schema ensured: {', '.join(sorted(metadata.tables))}"
        )


__all__ = [
    "SqlAlchemyLedgerStore",
    "SqlAlchemyUnitOfWork",
    "SqlAlchemyAccountRepository",
    "SqlAlchemyTransactionRepository",
    "SqlAlchemyBudgetRepository",
    "SqlAlchemyRecurringExpenseRepository",
]
