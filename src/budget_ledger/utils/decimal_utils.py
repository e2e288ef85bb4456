"""Helpers for Decimal normalization."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_PLACES = Decimal("0.0001")
PERCENT_PLACES = Decimal("0.01")


def coerce_decimal(value) -> Decimal:
    """Normalize numeric values to Decimal.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.

    Args:
        value: Raw numeric value from SQL, adapters or callers.

    Returns:
        Decimal: Normalized numeric value.

    Raises:
        ValueError: If the value cannot be read as a finite number.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a numeric value: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite numeric value: {value!r}")
    return result


def quantize_money(value) -> Decimal:
    """Round a monetary value to the stored precision (4 places, half-up)."""
    try:
        return coerce_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"Amount out of range: {value!r}") from exc


def quantize_percent(value) -> Decimal:
    """Round a percentage to 2 places, half-up."""
    return coerce_decimal(value).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


__all__ = [
    "MONEY_PLACES",
    "PERCENT_PLACES",
    "coerce_decimal",
    "quantize_money",
    "quantize_percent",
]
