"""Use case orchestrating month-end budget closure and roll-forward."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Callable

from budget_ledger.application.ports.ledger_store import LedgerStorePort
from budget_ledger.application.use_cases.budget_tracker import BudgetTracker
from budget_ledger.domain.errors import StateError
from budget_ledger.domain.models import Budget, BudgetFilter, PeriodSummary
from budget_ledger.domain.services.periods import month_range, validate_year_month
from budget_ledger.domain.services.utilization import utilization_percent
from budget_ledger.infrastructure.logging.logger import (
    get_app_logger,
    get_audit_logger,
)


class PeriodRolloverCoordinator:
    """Close, open and summarise calendar-month budget periods."""

    def __init__(
        self,
        store: LedgerStorePort,
        budget_tracker: BudgetTracker,
        logger=None,
        audit_logger=None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the use case.

        Args:
            store: Transactional ledger store, used for aggregate reads.
            budget_tracker: Tracker performing the rollover itself.
            logger: Optional logger compatible with logging.Logger-like API.
            audit_logger: Optional logger for period close events.
            today: Clock deciding which months are in the future.
        """
        self._store = store
        self._budget_tracker = budget_tracker
        self._logger = logger or get_app_logger()
        self._audit = audit_logger or get_audit_logger()
        self._today = today

    def close_period(self, year: int, month: int) -> int:
        """Deactivate every active budget overlapping a calendar month.

        Re-running it for the same month finds nothing left and returns 0.

        Args:
            year: Calendar year, 1900-2100.
            month: Calendar month, 1-12.

        Returns:
            int: Number of budgets closed.

        Raises:
            ValidationError: If year or month is out of range.
            StateError: If the month is after the current month.
        """
        validate_year_month(year, month)
        today = self._today()
        if (year, month) > (today.year, today.month):
            raise StateError(f"Cannot close future period {year}-{month:02d}")
        period_start, period_end = month_range(year, month)

        with self._store.unit_of_work() as uow:
            budgets = uow.budgets.list(
                BudgetFilter(
                    active=True,
                    period_start=period_start,
                    period_end=period_end,
                )
            )
            for budget in budgets:
                budget.active = False
                uow.budgets.save(budget)

        self._audit.info(f"CLOSE period={year}-{month:02d} budgets={len(budgets)}")
        self._logger.info(f"Closed {len(budgets)} budgets for {year}-{month:02d}")
        return len(budgets)

    def initialize_period(
        self,
        target_year: int,
        target_month: int,
        source_year: int,
        source_month: int,
    ) -> list[Budget]:
        """Open a month by copying the active budgets of another month.

        Returns:
            list[Budget]: The budgets created for the target month.

        Raises:
            ValidationError: If a year or month is out of range.
            StateError: If the source month has no active budgets or the
                target month already has some.
            BudgetOverlapError: If a copied budget would overlap another.
        """
        source_start, source_end = month_range(source_year, source_month)
        target_start, target_end = month_range(target_year, target_month)

        with self._store.unit_of_work() as uow:
            source_budgets = uow.budgets.list(
                BudgetFilter(
                    active=True,
                    period_start=source_start,
                    period_end=source_end,
                )
            )
            target_budgets = uow.budgets.list(
                BudgetFilter(
                    active=True,
                    period_start=target_start,
                    period_end=target_end,
                )
            )
        if not source_budgets:
            raise StateError(
                f"No active budgets in {source_year}-{source_month:02d} "
                "to roll over"
            )
        if target_budgets:
            raise StateError(
                f"{target_year}-{target_month:02d} already has "
                f"{len(target_budgets)} active budgets"
            )

        created = self._budget_tracker.rollover(
            source_start, source_end, target_start, target_end
        )
        self._logger.info(
            f"Initialized {target_year}-{target_month:02d} with "
            f"{len(created)} budgets from {source_year}-{source_month:02d}"
        )
        return created

    def summarize(self, year: int, month: int) -> PeriodSummary:
        """Summarise every budget, active or not, overlapping a month.

        Spend is taken per category over the whole month; a budget counts as
        over budget when its category's spend exceeds its own allocation.
        Utilization is 0 when nothing is allocated.

        Raises:
            ValidationError: If year or month is out of range.
            StateError: If no budget overlaps the month.
        """
        period_start, period_end = month_range(year, month)

        with self._store.unit_of_work() as uow:
            budgets = uow.budgets.list(
                BudgetFilter(period_start=period_start, period_end=period_end)
            )
            if not budgets:
                raise StateError(f"No budgets found for {year}-{month:02d}")
            spent_by_category = {
                category: uow.transactions.sum_category_spend(
                    category, period_start, period_end
                )
                for category in {budget.category for budget in budgets}
            }

        total_allocated = sum(
            (budget.allocated_amount for budget in budgets), Decimal("0")
        )
        # Once per category, so two budgets sharing a category in the month
        # do not count the same spend twice.
        total_spent = sum(spent_by_category.values(), Decimal("0"))
        over_budget_count = sum(
            1
            for budget in budgets
            if spent_by_category[budget.category] > budget.allocated_amount
        )
        utilization = (
            utilization_percent(total_spent, total_allocated)
            if total_allocated > 0
            else Decimal("0")
        )

        return PeriodSummary(
            year=year,
            month=month,
            period_start=period_start,
            period_end=period_end,
            total_allocated=total_allocated,
            total_spent=total_spent,
            utilization=utilization,
            over_budget_count=over_budget_count,
            total_budgets=len(budgets),
        )


__all__ = ["PeriodRolloverCoordinator"]
