"""Budget entity."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from budget_ledger.domain.models.enums import BudgetCategory
from budget_ledger.domain.services.periods import periods_overlap


@dataclass
class Budget:
    """Planned spending for one category over an inclusive date range.

    Spend is never stored on the budget; it is derived from transactions.
    """

    category: BudgetCategory
    allocated_amount: Decimal
    period_start: date
    period_end: date
    active: bool = True
    id: int | None = None
    created_at: datetime | None = field(default=None, compare=False)
    updated_at: datetime | None = field(default=None, compare=False)

    def overlaps(self, start: date, end: date) -> bool:
        return periods_overlap(self.period_start, self.period_end, start, end)

    def covers(self, day: date) -> bool:
        return self.period_start <= day <= self.period_end


__all__ = ["Budget"]
