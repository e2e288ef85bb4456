"""Recurring expense template."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from budget_ledger.domain.models.enums import BudgetCategory, Frequency


@dataclass
class RecurringExpense:
    """Template that manufactures expense transactions on a schedule.

    An active template always has a ``next_scheduled_date``. Deactivation
    keeps the schedule so it can resume where it stopped.
    """

    frequency: Frequency
    next_scheduled_date: date | None
    amount: Decimal
    category: BudgetCategory
    description: str
    source_account_id: int
    active: bool = True
    last_generated_date: date | None = None
    id: int | None = None
    created_at: datetime | None = field(default=None, compare=False)
    updated_at: datetime | None = field(default=None, compare=False)


__all__ = ["RecurringExpense"]
