"""
Amount scaling between human units and smallest (atomic) units.

Builders only accept integers; callers convert here first. Floats are
rejected outright so binary rounding never leaks into an amount.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation, localcontext
from typing import Union

from ammkit.errors import FieldOverflow, InvalidAmount


HumanAmount = Union[Decimal, str, int]
U64_MAX = 2**64 - 1


def to_atomic(amount: HumanAmount, decimals: int) -> int:
    """"1.5" with 6 decimals -> 1_500_000 (half-even on excess digits)."""
    if isinstance(amount, (bool, float)):
        raise InvalidAmount("amount", amount, reason="must be Decimal, str or int (floats are not accepted)")
    if isinstance(decimals, bool) or not isinstance(decimals, int) or not 0 <= decimals <= 255:
        raise InvalidAmount("decimals", decimals, reason="must be an integer in 0..255")

    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmount("amount", amount, reason="is not a number") from e
    if not value.is_finite():
        raise InvalidAmount("amount", amount, reason="must be finite")

    if value.adjusted() + decimals > 19:
        raise FieldOverflow("amount", str(amount), "u64")

    # Wide enough that the scale is exact and only quantize rounds.
    with localcontext() as ctx:
        ctx.prec = len(value.as_tuple().digits) + 22
        scaled = (value * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_HALF_EVEN)

    atomic = int(scaled)
    if atomic > U64_MAX:
        raise FieldOverflow("amount", str(amount), "u64")
    return atomic


def to_human(atomic: int, decimals: int) -> Decimal:
    """1_500_000 with 6 decimals -> Decimal("1.5")."""
    if isinstance(atomic, bool) or not isinstance(atomic, int):
        raise InvalidAmount("atomic", atomic, reason="must be an integer")
    return Decimal(atomic).scaleb(-decimals)
