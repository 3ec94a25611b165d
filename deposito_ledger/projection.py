"""
Projection Engine Module

Discrete monthly compounding used to compute the accrued ceiling a
withdrawal is validated against:

    accrued = balance * (1 + monthly_rate) ** months

Projections are advisory and never mutate stored state. Intermediate results
keep ACCRUAL_PLACES decimal places; rounding to posting precision happens
only when a transaction is posted.
"""

from decimal import Decimal
from dataclasses import dataclass

from .exceptions import InvalidAmountError
from .money import (
    ACCRUAL_PLACES, MONEY_PLACES, ZERO, Numeric,
    round_accrual, round_money, to_decimal
)


ONE = Decimal('1')


def _validate_months(months: int) -> int:
    if isinstance(months, bool) or not isinstance(months, int):
        raise InvalidAmountError(f"months must be a whole number, got {months!r}")
    if months < 0:
        raise InvalidAmountError(f"months cannot be negative, got {months}")
    return months


def project(
    balance: Numeric,
    monthly_rate: Numeric,
    months: int,
    places: int = ACCRUAL_PLACES
) -> Decimal:
    """
    Compound a balance monthly

    Args:
        balance: Starting principal
        monthly_rate: Monthly rate as a fraction (0.01 means 1%)
        months: Whole number of months, >= 0
        places: Decimal places kept in the result

    Returns:
        Accrued balance; equal to balance when months is 0

    Raises:
        InvalidAmountError: If an input is invalid or the accrued balance
            cannot be represented at the requested precision
    """
    months = _validate_months(months)
    balance = to_decimal(balance, "balance")
    rate = to_decimal(monthly_rate, "monthly_rate")

    if balance < ZERO:
        raise InvalidAmountError(f"balance cannot be negative, got {balance}")
    if rate < ZERO:
        raise InvalidAmountError(f"monthly_rate cannot be negative, got {rate}")

    if months == 0:
        return balance

    try:
        accrued = balance * (ONE + rate) ** months
    except ArithmeticError:
        # decimal.Overflow once the growth factor passes the context's Emax
        raise InvalidAmountError(f"projection over {months} months is too large to compute")

    return round_accrual(accrued, places)


def interest_earned(
    balance: Numeric,
    monthly_rate: Numeric,
    months: int,
    places: int = ACCRUAL_PLACES
) -> Decimal:
    """Accrued balance minus the starting balance"""
    return project(balance, monthly_rate, months, places) - to_decimal(balance, "balance")


@dataclass(frozen=True)
class Projection:
    """Result of projecting one balance at one rate for a number of months"""
    balance: Decimal
    monthly_rate: Decimal
    months: int
    accrued_balance: Decimal

    @property
    def interest_earned(self) -> Decimal:
        return self.accrued_balance - self.balance

    def rounded(self, places: int = MONEY_PLACES) -> "Projection":
        """Copy with balance and accrued balance rounded for display"""
        return Projection(
            balance=round_money(self.balance, places),
            monthly_rate=self.monthly_rate,
            months=self.months,
            accrued_balance=round_money(self.accrued_balance, places)
        )


class ProjectionEngine:
    """Builds Projection objects at a configured accrual precision"""

    def __init__(self, accrual_places: int = ACCRUAL_PLACES):
        self.accrual_places = accrual_places

    def project(self, balance: Numeric, monthly_rate: Numeric, months: int) -> Projection:
        accrued = project(balance, monthly_rate, months, self.accrual_places)
        return Projection(
            balance=to_decimal(balance, "balance"),
            monthly_rate=to_decimal(monthly_rate, "monthly_rate"),
            months=months,
            accrued_balance=accrued
        )
