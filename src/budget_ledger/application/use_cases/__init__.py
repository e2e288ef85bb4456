"""Ledger use cases."""

from .account_ledger import AccountLedger
from .budget_tracker import BudgetTracker
from .commands import (
    RecordExpenseCommand,
    RecordIncomeCommand,
    RecordRefundCommand,
    RecordTransferCommand,
)
from .period_rollover import PeriodRolloverCoordinator
from .recurring_scheduler import RecurringScheduler
from .transaction_engine import TransactionEngine

__all__ = [
    "AccountLedger",
    "BudgetTracker",
    "PeriodRolloverCoordinator",
    "RecordExpenseCommand",
    "RecordIncomeCommand",
    "RecordRefundCommand",
    "RecordTransferCommand",
    "RecurringScheduler",
    "TransactionEngine",
]
