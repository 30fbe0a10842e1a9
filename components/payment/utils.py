"""Derived repayment figures for a credit.

All functions accept anything with an ``amount`` attribute as a payment
(ORM rows or response schemas) and work in ``Decimal`` so that repeated
partial payments add up exactly.
"""

from decimal import Decimal
from typing import Iterable, NamedTuple

ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def total_paid(payments: Iterable) -> Decimal:
    return sum((to_decimal(p.amount) for p in payments), ZERO)


def remaining(amount, paid) -> Decimal:
    return to_decimal(amount) - to_decimal(paid)


def is_fully_paid(amount, paid) -> bool:
    return to_decimal(paid) >= to_decimal(amount)


def progress_percentage(amount, paid) -> float:
    """Share of ``amount`` already repaid, clamped to [0, 100] for display."""
    amount = to_decimal(amount)
    if amount <= ZERO:
        return 0.0
    percentage = float(to_decimal(paid) / amount * 100)
    return max(0.0, min(100.0, round(percentage, 2)))


class CreditBalance(NamedTuple):
    total_paid: Decimal
    remaining: Decimal
    progress_percentage: float
    is_fully_paid: bool


def balance_of(amount, payments: Iterable) -> CreditBalance:
    paid = total_paid(payments)
    return CreditBalance(
        total_paid=paid,
        remaining=remaining(amount, paid),
        progress_percentage=progress_percentage(amount, paid),
        is_fully_paid=is_fully_paid(amount, paid),
    )
