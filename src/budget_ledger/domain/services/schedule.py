"""Next-occurrence arithmetic for recurring expenses."""

from datetime import date

from dateutil.relativedelta import relativedelta

from budget_ledger.domain.errors import ValidationError
from budget_ledger.domain.models.enums import Frequency


FREQUENCY_STEPS = {
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.BIWEEKLY: relativedelta(weeks=2),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
    Frequency.YEARLY: relativedelta(years=1),
}


def next_scheduled_date(frequency: Frequency, current: date) -> date:
    """Return the occurrence after ``current``.

    Calendar steps clamp to the end of shorter months, so Jan 31 monthly
    gives Feb 28 (Feb 29 in leap years) and Feb 29 yearly gives Feb 28.

    Args:
        frequency: Template frequency.
        current: Date of the occurrence just generated.

    Returns:
        date: The next scheduled date.
    """
    if current is None:
        raise ValidationError("Current scheduled date is required")
    return current + FREQUENCY_STEPS[Frequency.parse(frequency)]


__all__ = ["FREQUENCY_STEPS", "next_scheduled_date"]
