"""Decimal helpers shared by report computations."""

from __future__ import annotations

from decimal import Decimal

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")
Q4 = Decimal("0.0001")
RATIO_ZERO = Decimal("0.0000")


def q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def safe_ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    """``numerator / denominator`` to four places, or zero for a zero denominator."""

    if denominator == 0:
        return RATIO_ZERO
    return (numerator / denominator).quantize(Q4)
