"""
Swap Quoting Engine
===================
Local reproduction of the program's constant-product math.

    k      = pool.k_a * pool.k_b           (invariant baseline at settlement)
    A->B:  b = round(B - k / (A + a))      k_new = (A + a) * (B - b)
    B->A:  b = round(k / (A - a) - B)      k_new = (A - a) * (B + b)

`a` is always the side-A amount (what the Swap instruction carries); `b`
is the side-B counter amount. All arithmetic is exact (Fraction) and every
rounding step is round-half-to-even. A quote is valid only while
|k - k_new| <= pool.tolerance.

Fees are collected on side B, which is the mint the fee vault holds:
A->B deducts the fee from the B paid out, B->A adds it to the B paid in.
The fee never touches the reserve deltas used for k_new.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Optional, Union

from ammkit.errors import (
    AddressMismatch,
    AmmError,
    ExceedsReserve,
    FieldOverflow,
    InvalidAmount,
    SuperSwapLegFailed,
    ToleranceExceeded,
)
from ammkit.layouts.instructions import SwapDirection, coerce_direction
from ammkit.layouts.pool import FEE_TIERS, LayoutVariant
from ammkit.shared.config.network import FEE_PRECISION
from ammkit.shared.system.logging import Logger
from ammkit.state.pool_decoder import Pool


@dataclass(frozen=True)
class Reserves:
    """Live vault balances in smallest units, fetched fresh per quote."""

    amount_a: int
    amount_b: int

    def __post_init__(self):
        for name in ("amount_a", "amount_b"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidAmount(name, value, reason="must be a non-negative integer")


@dataclass(frozen=True)
class Quote:
    """Advisory result of one swap against one pool. Never persisted."""

    direction: SwapDirection
    amount_a: int           # side-A amount carried by the Swap instruction
    amount_in: int          # what the user pays (fee included for B->A)
    amount_out: int         # what the user receives (fee removed for A->B)
    counter_amount: int     # gross side-B amount before fee
    fee_amount: int
    fee_ppm: int
    invariant_before: int
    invariant_after: int
    drift: int
    tolerance: int
    within_tolerance: bool
    pool_address: Optional[str] = None

    @property
    def output_amount(self) -> int:
        return self.amount_out


@dataclass(frozen=True)
class SuperSwapQuote:
    """Two independent legs through a shared intermediate mint."""

    first: Quote
    second: Quote
    input_mint: str
    intermediate_mint: str
    output_mint: str

    @property
    def amount_in(self) -> int:
        return self.first.amount_in

    @property
    def amount_out(self) -> int:
        return self.second.amount_out


def round_half_even(value: Fraction) -> int:
    # Fraction.__round__ without ndigits rounds ties to even.
    return round(value)


def pool_fee_ppm(pool: Pool) -> int:
    """Total fee in ppm, dispatching on the pool's layout variant."""
    if pool.variant is LayoutVariant.SINGLE_FEE:
        if len(pool.fee_rates_ppm) != 1:
            raise FieldOverflow("fee_rates_ppm", pool.fee_rates_ppm, "single-fee pool", reason="must hold 1 value for")
        total = pool.fee_rates_ppm[0]
    else:
        if len(pool.fee_rates_ppm) != FEE_TIERS:
            raise FieldOverflow("fee_rates_ppm", pool.fee_rates_ppm, "five-tier pool", reason="must hold 5 values for")
        total = sum(pool.fee_rates_ppm)

    if total < 0 or total > FEE_PRECISION:
        raise FieldOverflow("fee_ppm", total, "fee fraction", reason=f"is outside 0..{FEE_PRECISION} for")
    return total


def _fee_on(amount: int, fee_ppm: int) -> int:
    return round_half_even(Fraction(amount * fee_ppm, FEE_PRECISION))


def _check_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount("amount", amount, reason="must be an integer in smallest units")
    if amount <= 0:
        raise InvalidAmount("amount", amount)
    return amount


# ═══════════════════════════════════════════════════════════════════════════════
# SINGLE POOL
# ═══════════════════════════════════════════════════════════════════════════════

def quote_swap(
    pool: Pool,
    reserves: Reserves,
    amount: int,
    direction: Union[SwapDirection, int],
    enforce_tolerance: bool = True,
) -> Quote:
    """
    Quote a one-directional swap.

    Args:
        pool: Decoded pool (invariant baseline, tolerance, fees)
        reserves: Live vault balances
        amount: Side-A amount (input for A->B, output for B->A)
        direction: SwapDirection or its wire value (1 / 2)
        enforce_tolerance: Raise ToleranceExceeded instead of flagging it

    Raises:
        ExceedsReserve, ToleranceExceeded, InvalidAmount, InvalidDirection
    """
    a = _check_amount(amount)
    direction = coerce_direction(direction)
    fee_ppm = pool_fee_ppm(pool)
    A, B = reserves.amount_a, reserves.amount_b
    k = pool.invariant

    if A == 0:
        raise ExceedsReserve("A", a, A, reason="cannot trade against an empty reserve")
    if B == 0:
        raise ExceedsReserve("B", a, B, reason="cannot trade against an empty reserve")

    if direction == SwapDirection.A_TO_B:
        b = round_half_even(Fraction(B) - Fraction(k, A + a))
        if b >= B:
            raise ExceedsReserve("B", b, B)
        if b < 0:
            raise ExceedsReserve("B", b, B, reason="is negative against reserve")
        fee = _fee_on(b, fee_ppm)
        k_new = (A + a) * (B - b)
        amount_in, amount_out = a, b - fee
    else:
        if a >= A:
            raise ExceedsReserve("A", a, A)
        b = round_half_even(Fraction(k, A - a) - B)
        if b < 0:
            raise ExceedsReserve("B", b, B, reason="is negative against reserve")
        fee = _fee_on(b, fee_ppm)
        k_new = (A - a) * (B + b)
        amount_in, amount_out = b + fee, a

    drift = abs(k - k_new)
    within = drift <= pool.tolerance
    Logger.debug(
        f"[QUOTE] {direction.name} a={a} b={b} fee={fee} k={k} k_new={k_new} drift={drift} tol={pool.tolerance}"
    )
    if enforce_tolerance and not within:
        raise ToleranceExceeded(drift, pool.tolerance, k, k_new)

    return Quote(
        direction=direction,
        amount_a=a,
        amount_in=amount_in,
        amount_out=amount_out,
        counter_amount=b,
        fee_amount=fee,
        fee_ppm=fee_ppm,
        invariant_before=k,
        invariant_after=k_new,
        drift=drift,
        tolerance=pool.tolerance,
        within_tolerance=within,
        pool_address=pool.address,
    )


def quote_exact_input(pool: Pool, reserves: Reserves, input_mint: str, amount: int) -> Quote:
    """
    Quote spending exactly up to `amount` of `input_mint`.

    Input on side A maps straight onto A->B. Input on side B is solved for
    the largest side-A output whose B cost (fee included) fits `amount`.
    """
    amount = _check_amount(amount)
    if input_mint == pool.mint_a:
        return quote_swap(pool, reserves, amount, SwapDirection.A_TO_B)
    if input_mint != pool.mint_b:
        raise AddressMismatch(
            "Input mint is not part of the pool",
            expected=f"{pool.mint_a}|{pool.mint_b}",
            actual=str(input_mint),
        )

    fee_ppm = pool_fee_ppm(pool)
    A, B = reserves.amount_a, reserves.amount_b
    if A == 0 or B == 0:
        raise ExceedsReserve("A" if A == 0 else "B", amount, 0, reason="cannot trade against an empty reserve")

    def cost(a: int) -> int:
        return quote_swap(pool, reserves, a, SwapDirection.B_TO_A, enforce_tolerance=False).amount_in

    # Net B after fee, then the side-A amount it buys (floored).
    b_net = Fraction(amount * FEE_PRECISION, FEE_PRECISION + fee_ppm)
    a = min(int(A - Fraction(pool.invariant) / (B + b_net)), A - 1)

    # Rounding moves the true boundary by a unit or two either way.
    while a > 0 and cost(a) > amount:
        a -= 1
    while 0 < a + 1 < A and cost(a + 1) <= amount:
        a += 1
    if a <= 0:
        raise InvalidAmount("amount", amount, reason="is too small to buy any side-A units")

    return quote_swap(pool, reserves, a, SwapDirection.B_TO_A)


# ═══════════════════════════════════════════════════════════════════════════════
# SUPER SWAP (two pools, shared intermediate mint)
# ═══════════════════════════════════════════════════════════════════════════════

def _other_mint(pool: Pool, mint: str) -> str:
    return pool.mint_b if mint == pool.mint_a else pool.mint_a


def quote_super_swap(
    first_pool: Pool,
    first_reserves: Reserves,
    second_pool: Pool,
    second_reserves: Reserves,
    input_mint: str,
    amount: int,
) -> SuperSwapQuote:
    """
    Quote input_mint -> intermediate -> output through two pools.

    Each leg is checked against its own pool's invariant and tolerance;
    there is no combined invariant. Any leg failure aborts the whole
    operation as SuperSwapLegFailed.
    """
    try:
        first = quote_exact_input(first_pool, first_reserves, input_mint, amount)
    except AmmError as e:
        raise SuperSwapLegFailed(1, e) from e

    intermediate = _other_mint(first_pool, input_mint)
    try:
        second = quote_exact_input(second_pool, second_reserves, intermediate, first.amount_out)
    except AmmError as e:
        raise SuperSwapLegFailed(2, e) from e

    output_mint = _other_mint(second_pool, intermediate)
    Logger.debug(
        f"[QUOTE] Super swap {amount} {input_mint[:4]} -> {first.amount_out} {intermediate[:4]} "
        f"-> {second.amount_out} {output_mint[:4]}"
    )
    return SuperSwapQuote(
        first=first,
        second=second,
        input_mint=input_mint,
        intermediate_mint=intermediate,
        output_mint=output_mint,
    )
