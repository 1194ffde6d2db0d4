"""
Money Utilities - Decimal operations for monetary values.

The gateway exchanges amounts with exactly two fractional digits and the
platform rounds payment sums half-to-even (banker's rounding), so every
helper here works on Decimal and quantizes with ROUND_HALF_EVEN.
"""
from decimal import Decimal, ROUND_HALF_EVEN, InvalidOperation
from typing import Iterable, Union

MONEY_PRECISION = Decimal("0.01")

Number = Union[str, int, float, Decimal]


def to_decimal(value: Union[Number, None]) -> Decimal:
    """
    Convert any value to Decimal.

    Floats go through their string form to avoid binary artifacts.

    Raises:
        ValueError: If the value is not numeric
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not a monetary value: {value!r}") from e


def round_money(value: Number) -> Decimal:
    """Round to 2 fractional digits, half-to-even."""
    return to_decimal(value).quantize(MONEY_PRECISION, rounding=ROUND_HALF_EVEN)


def sum_money(values: Iterable[Number]) -> Decimal:
    """Exact Decimal sum (no intermediate rounding)."""
    total = Decimal("0")
    for value in values:
        total += to_decimal(value)
    return total


def format_money(value: Number) -> str:
    """Invariant fixed-point text with 2 digits ("12.50")."""
    return f"{round_money(value):.2f}"


def format_money_grouped(value: Number) -> str:
    """Display format with thousands separators ("1,234.50")."""
    return f"{round_money(value):,.2f}"
