"""
Decimal Money Helpers

Every monetary value in the ledger is a Decimal. NEVER uses float for
monetary arithmetic: floats coming from callers are converted through
their string form before any math happens.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Union

from .exceptions import InvalidAmountError

# Set global decimal context for financial precision
getcontext().prec = 28

MONEY_PLACES = 2    # Posted amounts and balances
ACCRUAL_PLACES = 6  # Interest projection intermediate results

ZERO = Decimal('0')

Numeric = Union[Decimal, int, float, str]


def to_decimal(value: Numeric, field: str = "amount") -> Decimal:
    """
    Convert a caller-supplied number to Decimal

    Raises:
        InvalidAmountError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"{field} must be a number, got {value!r}")

    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidAmountError(f"{field} must be a number, got {value!r}")

    if not result.is_finite():
        raise InvalidAmountError(f"{field} must be finite, got {value!r}")

    return result


def quantize(value: Decimal, places: int) -> Decimal:
    """
    Round half-up to a fixed number of decimal places

    Raises:
        InvalidAmountError: If the rounded value needs more digits than the
            decimal context carries
    """
    try:
        return value.quantize(Decimal('0.1') ** places, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmountError(f"{value} is too large to hold at {places} decimal places")


def round_money(value: Decimal, places: int = MONEY_PLACES) -> Decimal:
    """Round to posting precision"""
    return quantize(value, places)


def round_accrual(value: Decimal, places: int = ACCRUAL_PLACES) -> Decimal:
    """Round to projection precision"""
    return quantize(value, places)


def positive_amount(value: Numeric, field: str = "amount", places: int = MONEY_PLACES) -> Decimal:
    """
    Normalize a posted amount: Decimal, rounded to posting precision, > 0

    Raises:
        InvalidAmountError: If the rounded amount is zero or negative
    """
    amount = round_money(to_decimal(value, field), places)
    if amount <= ZERO:
        raise InvalidAmountError(f"{field} must be greater than 0, got {value}")
    return amount


def format_amount(value: Decimal, places: int = MONEY_PLACES) -> str:
    """Format for display"""
    return f"{quantize(value, places):,.{places}f}"
