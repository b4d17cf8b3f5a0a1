"""
Decimal helpers for monetary arithmetic.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from compensation.config.business_constants import MONEY_QUANTUM


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    """
    Convert a raw value to Decimal without float artifacts.

    Args:
        value: Number or numeric string

    Returns:
        Decimal value (0 for None)

    Raises:
        ValueError: If value is not numeric
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so floats like 0.1 do not carry binary noise
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {value!r}") from e


def quantize_money(amount: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """
    Compute ``amount * percent / 100`` rounded to cents.

    Example:
        >>> percent_of(Decimal("100000"), Decimal("5"))
        Decimal('5000.00')
    """
    return quantize_money(amount * percent / Decimal("100"))
