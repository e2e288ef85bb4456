"""Budget utilization arithmetic."""

from decimal import ROUND_HALF_UP, Decimal

from budget_ledger.domain.models.enums import UtilizationStatus
from budget_ledger.utils.decimal_utils import quantize_percent


RATIO_PLACES = Decimal("0.0001")
WARNING_THRESHOLD = Decimal("80")
FULL = Decimal("100")


def utilization_percent(spent: Decimal, allocated: Decimal) -> Decimal:
    """Return ``spent / allocated`` as a percentage with 2 decimals.

    The ratio is first rounded half-up to 4 places, then scaled and rounded
    half-up to 2 places, so 670 / 700 gives 95.71.

    Raises:
        ZeroDivisionError: If ``allocated`` is zero. Callers translate this
            into their own error or special case.
    """
    if allocated == 0:
        raise ZeroDivisionError("allocated amount is zero")
    ratio = (spent / allocated).quantize(RATIO_PLACES, rounding=ROUND_HALF_UP)
    return quantize_percent(ratio * FULL)


def utilization_status(percent: Decimal) -> UtilizationStatus:
    if percent > FULL:
        return UtilizationStatus.OVER_BUDGET
    if percent >= WARNING_THRESHOLD:
        return UtilizationStatus.WARNING
    return UtilizationStatus.ON_TRACK


__all__ = ["WARNING_THRESHOLD", "utilization_percent", "utilization_status"]
