"""Use case for budget allocations and their derived spend.

Spend is never stored: it is recomputed on every read as non-deleted
expenses minus non-deleted refunds of the budget's category dated inside the
budget's period.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from budget_ledger.application.ports.ledger_store import LedgerStorePort
from budget_ledger.domain.errors import (
    BudgetNotFoundError,
    BudgetOverlapError,
    ValidationError,
    ZeroAllocationError,
)
from budget_ledger.domain.models import (
    Budget,
    BudgetCategory,
    BudgetFilter,
    BudgetUtilization,
)
from budget_ledger.domain.services.periods import validate_period
from budget_ledger.domain.services.utilization import (
    utilization_percent,
    utilization_status,
)
from budget_ledger.infrastructure.logging.logger import (
    get_app_logger,
    get_audit_logger,
)
from budget_ledger.utils.decimal_utils import quantize_money


class BudgetTracker:
    """Create and maintain budgets and derive their spend."""

    def __init__(self, store: LedgerStorePort, logger=None, audit_logger=None) -> None:
        """Initialize the use case.

        Args:
            store: Transactional ledger store.
            logger: Optional logger compatible with logging.Logger-like API.
            audit_logger: Optional logger for rollover events.
        """
        self._store = store
        self._logger = logger or get_app_logger()
        self._audit = audit_logger or get_audit_logger()

    def create(
        self,
        category: BudgetCategory | str,
        allocated_amount,
        period_start: date,
        period_end: date,
    ) -> Budget:
        """Create an active budget.

        Raises:
            ValidationError: On a non-positive amount or an inverted period.
            BudgetOverlapError: If an active budget of the same category
                overlaps the period.
        """
        resolved_category = BudgetCategory.parse(category)
        amount = self._positive_amount(allocated_amount)
        validate_period(period_start, period_end)

        with self._store.unit_of_work() as uow:
            self._ensure_no_overlap(
                uow, resolved_category, period_start, period_end
            )
            budget = uow.budgets.add(
                Budget(
                    category=resolved_category,
                    allocated_amount=amount,
                    period_start=period_start,
                    period_end=period_end,
                )
            )

        self._logger.info(
            f"Created {budget.category.value} budget {budget.id} "
            f"of {budget.allocated_amount} for "
            f"{budget.period_start} to {budget.period_end}"
        )
        return budget

    def update(
        self,
        budget_id: int,
        category: BudgetCategory | str | None = None,
        allocated_amount=None,
        period_start: date | None = None,
        period_end: date | None = None,
        active: bool | None = None,
    ) -> Budget:
        """Apply a partial update.

        Changing the category or period, or reactivating the budget, re-runs
        overlap detection against every other active budget.

        Raises:
            BudgetNotFoundError: If the budget does not exist.
            ValidationError: On a non-positive amount or an inverted period.
            BudgetOverlapError: If the result would overlap another budget.
        """
        with self._store.unit_of_work() as uow:
            budget = self._load(uow, budget_id)
            needs_overlap_check = False

            if category is not None:
                resolved_category = BudgetCategory.parse(category)
                needs_overlap_check |= resolved_category is not budget.category
                budget.category = resolved_category
            if allocated_amount is not None:
                budget.allocated_amount = self._positive_amount(allocated_amount)
            if period_start is not None or period_end is not None:
                new_start = period_start or budget.period_start
                new_end = period_end or budget.period_end
                validate_period(new_start, new_end)
                needs_overlap_check |= (
                    new_start != budget.period_start
                    or new_end != budget.period_end
                )
                budget.period_start = new_start
                budget.period_end = new_end
            if active is not None:
                needs_overlap_check |= active and not budget.active
                budget.active = active

            if needs_overlap_check and budget.active:
                self._ensure_no_overlap(
                    uow,
                    budget.category,
                    budget.period_start,
                    budget.period_end,
                    exclude_id=budget.id,
                )
            budget = uow.budgets.save(budget)

        self._logger.info(f"Updated budget {budget.id}")
        return budget

    def close(self, budget_id: int) -> bool:
        """Deactivate a budget.

        Returns:
            bool: False if the budget was already inactive.
        """
        with self._store.unit_of_work() as uow:
            budget = self._load(uow, budget_id)
            if not budget.active:
                return False
            budget.active = False
            uow.budgets.save(budget)

        self._logger.info(f"Closed budget {budget_id}")
        return True

    def get(self, budget_id: int) -> Budget:
        with self._store.unit_of_work() as uow:
            return self._load(uow, budget_id)

    def list(self, budget_filter: BudgetFilter | None = None) -> list[Budget]:
        with self._store.unit_of_work() as uow:
            return uow.budgets.list(budget_filter)

    def calculate_spent(self, budget_id: int) -> Decimal:
        """Return the derived spend of a budget; zero when nothing matches."""
        with self._store.unit_of_work() as uow:
            budget = self._load(uow, budget_id)
            return self._spent(uow, budget)

    def calculate_remaining(self, budget_id: int) -> Decimal:
        """Return allocated minus spent; negative when over budget."""
        with self._store.unit_of_work() as uow:
            budget = self._load(uow, budget_id)
            return budget.allocated_amount - self._spent(uow, budget)

    def calculate_utilization(self, budget_id: int) -> Decimal:
        """Return spent as a percentage of allocated, 2 places half-up.

        Raises:
            BudgetNotFoundError: If the budget does not exist.
            ZeroAllocationError: If nothing is allocated.
        """
        with self._store.unit_of_work() as uow:
            budget = self._load(uow, budget_id)
            spent = self._spent(uow, budget)
        return self._utilization(budget, spent)

    def utilization_report(self, budget_id: int) -> BudgetUtilization:
        with self._store.unit_of_work() as uow:
            budget = self._load(uow, budget_id)
            spent = self._spent(uow, budget)
        return self._report(budget, spent)

    def find_over_budgets(self) -> list[Budget]:
        """Return active budgets whose spend exceeds the allocation.

        Sorted by overage, largest first.
        """
        overages: list[tuple[Decimal, Budget]] = []
        with self._store.unit_of_work() as uow:
            for budget in uow.budgets.list(BudgetFilter(active=True)):
                overage = self._spent(uow, budget) - budget.allocated_amount
                if overage > 0:
                    overages.append((overage, budget))
        overages.sort(key=lambda item: item[0], reverse=True)
        return [budget for _, budget in overages]

    def find_exceeding_threshold(self, threshold_percent) -> list[BudgetUtilization]:
        """Return active budgets at or above ``threshold_percent`` utilization.

        Budgets with nothing allocated are skipped. Sorted by utilization,
        highest first.

        Raises:
            ValidationError: If the threshold is not a number or negative.
        """
        try:
            threshold = quantize_money(threshold_percent)
        except ValueError as exc:
            raise ValidationError(
                f"Threshold is not a number: {threshold_percent!r}"
            ) from exc
        if threshold < 0:
            raise ValidationError("Threshold percentage cannot be negative")

        reports: list[BudgetUtilization] = []
        with self._store.unit_of_work() as uow:
            for budget in uow.budgets.list(BudgetFilter(active=True)):
                if budget.allocated_amount == 0:
                    continue
                report = self._report(budget, self._spent(uow, budget))
                if report.utilization_percent >= threshold:
                    reports.append(report)
        reports.sort(key=lambda report: report.utilization_percent, reverse=True)
        return reports

    def find_active_for(
        self,
        category: BudgetCategory | str,
        on_date: date,
    ) -> Budget | None:
        """Return the active budget covering ``category`` on ``on_date``."""
        resolved_category = BudgetCategory.parse(category)
        with self._store.unit_of_work() as uow:
            matches = uow.budgets.find_overlapping(
                resolved_category, on_date, on_date
            )
        return matches[0] if matches else None

    def total_allocated_for_period(self, period_start: date, period_end: date) -> Decimal:
        validate_period(period_start, period_end)
        budgets = self.list(
            BudgetFilter(active=True, period_start=period_start, period_end=period_end)
        )
        return sum((budget.allocated_amount for budget in budgets), Decimal("0"))

    def total_spent_for_period(self, period_start: date, period_end: date) -> Decimal:
        """Return spend over the range for every category with an active budget."""
        validate_period(period_start, period_end)
        with self._store.unit_of_work() as uow:
            budgets = uow.budgets.list(
                BudgetFilter(
                    active=True,
                    period_start=period_start,
                    period_end=period_end,
                )
            )
            categories = {budget.category for budget in budgets}
            return sum(
                (
                    uow.transactions.sum_category_spend(
                        category, period_start, period_end
                    )
                    for category in sorted(categories, key=lambda c: c.value)
                ),
                Decimal("0"),
            )

    def rollover(
        self,
        source_start: date,
        source_end: date,
        target_start: date,
        target_end: date,
    ) -> list[Budget]:
        """Copy every active budget of one period into another.

        All overlap checks run before the first insert, and the whole batch
        shares one unit of work, so a conflict leaves no new budgets behind.

        Returns:
            list[Budget]: The budgets created in the target period.

        Raises:
            ValidationError: On an inverted period.
            BudgetOverlapError: If any category already has an active budget
                overlapping the target period.
        """
        validate_period(source_start, source_end)
        validate_period(target_start, target_end)

        with self._store.unit_of_work() as uow:
            sources = uow.budgets.list(
                BudgetFilter(
                    active=True,
                    period_start=source_start,
                    period_end=source_end,
                )
            )
            sources.sort(key=lambda budget: (budget.category.value, budget.id))
            seen: set[BudgetCategory] = set()
            for budget in sources:
                if budget.category in seen:
                    raise BudgetOverlapError(
                        budget.category, target_start, target_end
                    )
                seen.add(budget.category)
                self._ensure_no_overlap(
                    uow, budget.category, target_start, target_end
                )
            created = [
                uow.budgets.add(
                    Budget(
                        category=budget.category,
                        allocated_amount=budget.allocated_amount,
                        period_start=target_start,
                        period_end=target_end,
                    )
                )
                for budget in sources
            ]

        self._audit.info(
            f"ROLLOVER {source_start}..{source_end} -> "
            f"{target_start}..{target_end} budgets={len(created)}"
        )
        self._logger.info(f"Rolled over {len(created)} budgets to {target_start}")
        return created

    @staticmethod
    def _spent(uow, budget: Budget) -> Decimal:
        return uow.transactions.sum_category_spend(
            budget.category, budget.period_start, budget.period_end
        )

    @staticmethod
    def _utilization(budget: Budget, spent: Decimal) -> Decimal:
        if budget.allocated_amount == 0:
            raise ZeroAllocationError(budget.id)
        return utilization_percent(spent, budget.allocated_amount)

    def _report(self, budget: Budget, spent: Decimal) -> BudgetUtilization:
        percent = self._utilization(budget, spent)
        return BudgetUtilization(
            budget_id=budget.id,
            category=budget.category,
            allocated=budget.allocated_amount,
            spent=spent,
            remaining=budget.allocated_amount - spent,
            utilization_percent=percent,
            status=utilization_status(percent),
        )

    @staticmethod
    def _ensure_no_overlap(
        uow,
        category: BudgetCategory,
        period_start: date,
        period_end: date,
        exclude_id: int | None = None,
    ) -> None:
        overlapping = uow.budgets.find_overlapping(
            category, period_start, period_end, exclude_id=exclude_id
        )
        if overlapping:
            raise BudgetOverlapError(category, period_start, period_end)

    @staticmethod
    def _load(uow, budget_id: int) -> Budget:
        budget = uow.budgets.get(budget_id)
        if budget is None:
            raise BudgetNotFoundError(budget_id)
        return budget

    @staticmethod
    def _positive_amount(value) -> Decimal:
        if value is None:
            raise ValidationError("Allocated amount is required")
        try:
            amount = quantize_money(value)
        except ValueError as exc:
            raise ValidationError(f"Allocated amount is not a number: {value!r}") from exc
        if amount <= 0:
            raise ValidationError("Allocated amount must be positive")
        return amount


__all__ = ["BudgetTracker"]
