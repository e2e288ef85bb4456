"""Composition root for wiring the ledger use cases."""

from dataclasses import dataclass

from budget_ledger.application.ports.database import DatabaseEnginePort
from budget_ledger.application.ports.ledger_store import LedgerStorePort
from budget_ledger.application.use_cases.account_ledger import AccountLedger
from budget_ledger.application.use_cases.budget_tracker import BudgetTracker
from budget_ledger.application.use_cases.period_rollover import (
    PeriodRolloverCoordinator,
)
from budget_ledger.application.use_cases.recurring_scheduler import (
    RecurringScheduler,
)
from budget_ledger.application.use_cases.transaction_engine import (
    TransactionEngine,
)
from budget_ledger.infrastructure.db import SqlAlchemyDatabaseEngineAdapter
from budget_ledger.infrastructure.ledger_store_factory import create_ledger_store
from budget_ledger.infrastructure.logging.logger import (
    get_app_logger,
    get_audit_logger,
)
from budget_ledger.infrastructure.settings import LedgerSettings


@dataclass(frozen=True)
class LedgerServices:
    """Every ledger use case, sharing one store."""

    store: LedgerStorePort
    accounts: AccountLedger
    transactions: TransactionEngine
    budgets: BudgetTracker
    recurring: RecurringScheduler
    periods: PeriodRolloverCoordinator


def build_database_adapter(
    settings: LedgerSettings | None = None,
) -> DatabaseEnginePort:
    """Return the database adapter instance."""
    resolved = settings or LedgerSettings.from_env()
    return SqlAlchemyDatabaseEngineAdapter(resolved.db_url)


def build_ledger_store(
    settings: LedgerSettings | None = None,
    db_port: DatabaseEnginePort | None = None,
) -> LedgerStorePort:
    """Return the configured ledger store."""
    resolved = settings or LedgerSettings.from_env()
    return create_ledger_store(
        db_port,
        logger=get_app_logger(),
        settings=resolved,
    )


def build_ledger_services(
    settings: LedgerSettings | None = None,
    store: LedgerStorePort | None = None,
) -> LedgerServices:
    """Return all use cases wired to one store."""
    resolved = settings or LedgerSettings.from_env()
    resolved_store = store or build_ledger_store(resolved)
    logger = get_app_logger()
    audit_logger = get_audit_logger()

    transactions = TransactionEngine(
        resolved_store,
        logger=logger,
        audit_logger=audit_logger,
        currency=resolved.currency,
    )
    budgets = BudgetTracker(
        resolved_store,
        logger=logger,
        audit_logger=audit_logger,
    )
    return LedgerServices(
        store=resolved_store,
        accounts=AccountLedger(
            resolved_store,
            logger=logger,
            low_balance_threshold=resolved.low_balance_threshold,
        ),
        transactions=transactions,
        budgets=budgets,
        recurring=RecurringScheduler(
            resolved_store,
            transactions,
            logger=logger,
        ),
        periods=PeriodRolloverCoordinator(
            resolved_store,
            budgets,
            logger=logger,
            audit_logger=audit_logger,
        ),
    )


__all__ = [
    "LedgerServices",
    "build_database_adapter",
    "build_ledger_store",
    "build_ledger_services",
]
