"""Use case managing recurring expense templates and their generation.

Generation is idempotent per (template, scheduled date): an occurrence that
already has a transaction, even a soft-deleted one, is never emitted again.
The check runs before calling the transaction engine and once more inside
the engine's own unit of work, and the store's unique constraint backs both.
"""

from __future__ import annotations

from datetime import date
from typing import Callable

from budget_ledger.application.ports.ledger_store import LedgerStorePort
from budget_ledger.application.use_cases.commands import RecordExpenseCommand
from budget_ledger.application.use_cases.transaction_engine import (
    TransactionEngine,
)
from budget_ledger.domain.errors import (
    AccountNotFoundError,
    DuplicateGenerationError,
    InactiveAccountError,
    LedgerError,
    RecurringExpenseNotFoundError,
    StateError,
    ValidationError,
)
from budget_ledger.domain.models import (
    BudgetCategory,
    Frequency,
    ProcessDueResult,
    RecurringExpense,
    RecurringExpenseFilter,
    RecurringFailure,
    Transaction,
)
from budget_ledger.domain.services.schedule import next_scheduled_date
from budget_ledger.infrastructure.logging.logger import get_app_logger
from budget_ledger.utils.decimal_utils import quantize_money


class RecurringScheduler:
    """Create, edit and run recurring expense templates."""

    def __init__(
        self,
        store: LedgerStorePort,
        engine: TransactionEngine,
        logger=None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the use case.

        Args:
            store: Transactional ledger store.
            engine: Transaction engine used to record generated expenses.
            logger: Optional logger compatible with logging.Logger-like API.
            today: Clock used to flag templates created in the past.
        """
        self._store = store
        self._engine = engine
        self._logger = logger or get_app_logger()
        self._today = today

    def create(
        self,
        frequency: Frequency | str,
        next_date: date,
        amount,
        category: BudgetCategory | str,
        description: str,
        source_account_id: int,
        active: bool = True,
    ) -> RecurringExpense:
        """Create a template.

        Raises:
            ValidationError: On a missing or invalid field.
            AccountNotFoundError: If the source account does not exist.
            InactiveAccountError: If the source account is closed.
        """
        if source_account_id is None:
            raise ValidationError("Source account is required")
        template = RecurringExpense(
            frequency=Frequency.parse(frequency),
            next_scheduled_date=self._require_date(next_date),
            amount=self._positive_amount(amount),
            category=BudgetCategory.parse(category),
            description=self._require_description(description),
            source_account_id=source_account_id,
            active=active,
        )
        if template.next_scheduled_date < self._today():
            self._logger.warning(
                f"Recurring expense scheduled in the past "
                f"({template.next_scheduled_date}); the next due run will "
                "catch up one occurrence per run"
            )

        with self._store.unit_of_work() as uow:
            self._require_active_account(uow, source_account_id)
            saved = uow.recurring_expenses.add(template)

        self._logger.info(
            f"Created recurring expense {saved.id} "
            f"({saved.frequency.value}, {saved.amount}, "
            f"next {saved.next_scheduled_date})"
        )
        return saved

    def update(
        self,
        recurring_expense_id: int,
        frequency: Frequency | str | None = None,
        next_date: date | None = None,
        amount=None,
        category: BudgetCategory | str | None = None,
        description: str | None = None,
        source_account_id: int | None = None,
    ) -> RecurringExpense:
        """Apply a partial update. Use activate/deactivate for the flag."""
        with self._store.unit_of_work() as uow:
            template = self._load(uow, recurring_expense_id, for_update=True)
            if frequency is not None:
                template.frequency = Frequency.parse(frequency)
            if next_date is not None:
                template.next_scheduled_date = self._require_date(next_date)
            if amount is not None:
                template.amount = self._positive_amount(amount)
            if category is not None:
                template.category = BudgetCategory.parse(category)
            if description is not None:
                template.description = self._require_description(description)
            if source_account_id is not None:
                self._require_active_account(uow, source_account_id)
                template.source_account_id = source_account_id
            template = uow.recurring_expenses.save(template)

        self._logger.info(f"Updated recurring expense {template.id}")
        return template

    def delete(self, recurring_expense_id: int) -> None:
        """Remove a template; transactions it generated are kept."""
        with self._store.unit_of_work() as uow:
            self._load(uow, recurring_expense_id, for_update=True)
            uow.recurring_expenses.remove(recurring_expense_id)
        self._logger.info(f"Deleted recurring expense {recurring_expense_id}")

    def activate(self, recurring_expense_id: int) -> bool:
        """Resume a template.

        Returns:
            bool: False if it was already active.

        Raises:
            StateError: If the template has no next scheduled date.
        """
        with self._store.unit_of_work() as uow:
            template = self._load(uow, recurring_expense_id, for_update=True)
            if template.active:
                return False
            if template.next_scheduled_date is None:
                raise StateError(
                    f"Recurring expense {template.id} has no next scheduled "
                    "date and cannot be activated"
                )
            template.active = True
            uow.recurring_expenses.save(template)
        self._logger.info(f"Activated recurring expense {recurring_expense_id}")
        return True

    def deactivate(self, recurring_expense_id: int) -> bool:
        """Pause a template, keeping its schedule.

        Returns:
            bool: False if it was already inactive.
        """
        with self._store.unit_of_work() as uow:
            template = self._load(uow, recurring_expense_id, for_update=True)
            if not template.active:
                return False
            template.active = False
            uow.recurring_expenses.save(template)
        self._logger.info(f"Deactivated recurring expense {recurring_expense_id}")
        return True

    def get(self, recurring_expense_id: int) -> RecurringExpense:
        with self._store.unit_of_work() as uow:
            return self._load(uow, recurring_expense_id)

    def list(
        self,
        recurring_filter: RecurringExpenseFilter | None = None,
    ) -> list[RecurringExpense]:
        with self._store.unit_of_work() as uow:
            return uow.recurring_expenses.list(recurring_filter)

    def generate(self, recurring_expense_id: int) -> Transaction | None:
        """Emit the template's next occurrence.

        Returns:
            Transaction | None: The generated expense, or None when the
            occurrence already had a transaction (nothing changes then).

        Raises:
            RecurringExpenseNotFoundError: If the template does not exist.
            StateError: If the template is inactive.
            LedgerError: Whatever the transaction engine raises, for example
                InsufficientFundsError; the schedule is not advanced then.
        """
        with self._store.unit_of_work() as uow:
            template = self._load(uow, recurring_expense_id)
            if not template.active:
                raise StateError(
                    f"Recurring expense {template.id} is inactive"
                )
            scheduled = template.next_scheduled_date
            already_generated = uow.transactions.exists_for_occurrence(
                template.id, scheduled
            )
        if already_generated:
            self._logger.info(
                f"Recurring expense {template.id} already generated "
                f"for {scheduled}; skipping"
            )
            return None

        try:
            transaction = self._engine.record_expense(
                RecordExpenseCommand(
                    source_account_id=template.source_account_id,
                    amount=template.amount,
                    category=template.category,
                    transaction_date=scheduled,
                    description=template.description,
                    recurring_expense_id=template.id,
                )
            )
        except DuplicateGenerationError:
            self._logger.info(
                f"Recurring expense {template.id} was generated concurrently "
                f"for {scheduled}; skipping"
            )
            return None

        self._advance(template.id, scheduled)
        return transaction

    def process_due(self, current_date: date) -> ProcessDueResult:
        """Generate every active template due on or before ``current_date``.

        Each template is handled on its own; a failing template is logged and
        counted without stopping or undoing the others.

        Raises:
            ValidationError: If ``current_date`` is not a date.
        """
        if not isinstance(current_date, date):
            raise ValidationError("Current date is required")
        with self._store.unit_of_work() as uow:
            due_ids = [
                template.id
                for template in uow.recurring_expenses.find_due(current_date)
            ]

        generated = 0
        skipped = 0
        failures: list[RecurringFailure] = []
        for template_id in due_ids:
            try:
                result = self.generate(template_id)
            except LedgerError as exc:
                self._logger.error(
                    f"Failed to generate recurring expense {template_id}: {exc}"
                )
                failures.append(RecurringFailure(template_id, str(exc)))
                continue
            except Exception as exc:
                self._logger.exception(
                    f"Unexpected error generating recurring expense "
                    f"{template_id}"
                )
                failures.append(
                    RecurringFailure(template_id, f"{type(exc).__name__}: {exc}")
                )
                continue
            if result is None:
                skipped += 1
            else:
                generated += 1

        outcome = ProcessDueResult(
            run_date=current_date,
            due_count=len(due_ids),
            generated_count=generated,
            skipped_count=skipped,
            failed_count=len(failures),
            failures=failures,
        )
        self._logger.info(
            f"Processed {outcome.due_count} due recurring expenses for "
            f"{current_date}: generated={generated}, skipped={skipped}, "
            f"failed={outcome.failed_count}"
        )
        return outcome

    def _advance(self, recurring_expense_id: int, generated_for: date) -> None:
        with self._store.unit_of_work() as uow:
            template = uow.recurring_expenses.get(
                recurring_expense_id, for_update=True
            )
            if template is None:
                self._logger.warning(
                    f"Recurring expense {recurring_expense_id} disappeared "
                    "before its schedule could advance"
                )
                return
            if template.next_scheduled_date != generated_for:
                # Someone else already moved the schedule on.
                return
            template.last_generated_date = generated_for
            template.next_scheduled_date = next_scheduled_date(
                template.frequency, generated_for
            )
            uow.recurring_expenses.save(template)
        self._logger.info(
            f"Recurring expense {recurring_expense_id} next due "
            f"{template.next_scheduled_date}"
        )

    @staticmethod
    def _load(uow, recurring_expense_id: int, for_update: bool = False) -> RecurringExpense:
        template = uow.recurring_expenses.get(
            recurring_expense_id, for_update=for_update
        )
        if template is None:
            raise RecurringExpenseNotFoundError(recurring_expense_id)
        return template

    @staticmethod
    def _require_active_account(uow, account_id: int) -> None:
        account = uow.accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        if not account.active:
            raise InactiveAccountError(account_id)

    @staticmethod
    def _require_date(value) -> date:
        if not isinstance(value, date):
            raise ValidationError("Next scheduled date is required")
        return value

    @staticmethod
    def _require_description(value: str | None) -> str:
        text = (value or "").strip()
        if not text:
            raise ValidationError("Description must not be blank")
        return text

    @staticmethod
    def _positive_amount(value):
        if value is None:
            raise ValidationError("Amount is required")
        try:
            amount = quantize_money(value)
        except ValueError as exc:
            raise ValidationError(f"Amount is not a number: {value!r}") from exc
        if amount <= 0:
            raise ValidationError("Amount must be positive")
        return amount


__all__ = ["RecurringScheduler"]
