"""Calendar helpers for budget periods."""

import calendar
from datetime import date

from budget_ledger.domain.errors import ValidationError


MIN_YEAR = 1900
MAX_YEAR = 2100


def periods_overlap(
    first_start: date,
    first_end: date,
    second_start: date,
    second_end: date,
) -> bool:
    """Return True when two inclusive date ranges share at least one day."""
    return first_start <= second_end and second_start <= first_end


def validate_year_month(year: int, month: int) -> None:
    """Reject years outside [1900, 2100] and months outside [1, 12].

    Raises:
        ValidationError: If either value is out of range.
    """
    if not isinstance(year, int) or not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(
            f"Year must be between {MIN_YEAR} and {MAX_YEAR}, got {year!r}"
        )
    if not isinstance(month, int) or not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month!r}")


def month_range(year: int, month: int) -> tuple[date, date]:
    """Return the first and last day of a calendar month.

    Args:
        year: Calendar year, 1900-2100.
        month: Calendar month, 1-12.

    Returns:
        tuple[date, date]: Inclusive start and end of the month.
    """
    validate_year_month(year, month)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def validate_period(period_start: date, period_end: date) -> None:
    if period_start is None or period_end is None:
        raise ValidationError("Period start and end are required")
    if period_end < period_start:
        raise ValidationError(
            f"Period end {period_end} is before period start {period_start}"
        )


__all__ = [
    "MIN_YEAR",
    "MAX_YEAR",
    "periods_overlap",
    "validate_year_month",
    "month_range",
    "validate_period",
]
