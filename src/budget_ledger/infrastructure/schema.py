"""Table definitions for the SQL ledger store.

Money columns are ``NUMERIC(19, 4)``. SQLite has no exact decimal storage,
so there they hold the amount in ten-thousandths as a ``BIGINT``.
``transactions.recurring_expense_id`` is a plain integer with no foreign
key: deleting a template leaves the generated transactions in place with a
dangling reference.
"""

from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.types import TypeDecorator

from budget_ledger.utils.decimal_utils import quantize_money


MONEY_SCALE = 4


class Money(TypeDecorator):
    """Exact four-place money column on every backend."""

    impl = Numeric(19, MONEY_SCALE, asdecimal=True)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(BigInteger())
        return dialect.type_descriptor(Numeric(19, MONEY_SCALE, asdecimal=True))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        amount = quantize_money(value)
        if dialect.name == "sqlite":
            return int(amount.scaleb(MONEY_SCALE))
        return amount

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return quantize_money(Decimal(int(value)).scaleb(-MONEY_SCALE))
        return quantize_money(value)


MONEY = Money()

metadata = MetaData()

accounts_table = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("account_type", String(20), nullable=False),
    Column("starting_balance", MONEY, nullable=False),
    Column("current_balance", MONEY, nullable=False),
    Column("description", String(500), nullable=False, default=""),
    Column("active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index("idx_accounts_active", "active"),
    Index("idx_accounts_type", "account_type"),
)

transactions_table = Table(
    "transactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("transaction_type", String(20), nullable=False),
    Column("source_account_id", Integer, ForeignKey("accounts.id")),
    Column("destination_account_id", Integer, ForeignKey("accounts.id")),
    Column("amount", MONEY, nullable=False),
    Column("budget_category", String(30)),
    Column("transaction_date", Date, nullable=False),
    Column("description", String(500), nullable=False, default=""),
    Column("currency", String(3), nullable=False, default="USD"),
    Column("is_recurring", Boolean, nullable=False, default=False),
    Column("recurring_expense_id", Integer),
    Column(
        "reverses_transaction_id",
        Integer,
        ForeignKey("transactions.id"),
        unique=True,
    ),
    Column("is_deleted", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    UniqueConstraint(
        "recurring_expense_id",
        "transaction_date",
        name="uq_transactions_recurring_occurrence",
    ),
    Index("idx_transactions_date", "transaction_date"),
    Index("idx_transactions_category_date", "budget_category", "transaction_date"),
    Index("idx_transactions_source", "source_account_id"),
    Index("idx_transactions_destination", "destination_account_id"),
)

budgets_table = Table(
    "budgets",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("budget_category", String(30), nullable=False),
    Column("allocated_amount", MONEY, nullable=False),
    Column("period_start", Date, nullable=False),
    Column("period_end", Date, nullable=False),
    Column("active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("period_end >= period_start", name="ck_budgets_period"),
    Index("idx_budgets_category_period", "budget_category", "period_start"),
)

# Ids are never reused, so a dangling recurring_expense_id on an old
# transaction cannot start pointing at a newer template.
recurring_expenses_table = Table(
    "recurring_expenses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("frequency", String(20), nullable=False),
    Column("next_scheduled_date", Date),
    Column("amount", MONEY, nullable=False),
    Column("budget_category", String(30), nullable=False),
    Column("description", String(500), nullable=False),
    Column("active", Boolean, nullable=False, default=True),
    Column("source_account_id", Integer, ForeignKey("accounts.id"), nullable=False),
    Column("last_generated_date", Date),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index("idx_recurring_due", "active", "next_scheduled_date"),
    sqlite_autoincrement=True,
)


__all__ = [
    "MONEY",
    "Money",
    "metadata",
    "accounts_table",
    "transactions_table",
    "budgets_table",
    "recurring_expenses_table",
]
