"""Application ports package."""

from .database import DatabaseEnginePort
from .ledger_store import (
    AccountRepositoryPort,
    BudgetRepositoryPort,
    LedgerStorePort,
    LedgerUnitOfWork,
    RecurringExpenseRepositoryPort,
    TransactionRepositoryPort,
)

__all__ = [
    "DatabaseEnginePort",
    "AccountRepositoryPort",
    "BudgetRepositoryPort",
    "LedgerStorePort",
    "LedgerUnitOfWork",
    "RecurringExpenseRepositoryPort",
    "TransactionRepositoryPort",
]
