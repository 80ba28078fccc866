"""
Pool State Decoder
==================
Raw pool account bytes -> typed, normalized Pool record.

Field decoding is delegated to the layout codec; this module adds the
semantic layer: variant selection by exact length, fees as integer ppm
(for the quoting engine) and Decimal fractions (for display), and every
address as base58 text.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Dict, List, Optional, Tuple

from ammkit.errors import FieldOverflow, MalformedLayout
from ammkit.layouts.pool import (
    POOL_LAYOUTS,
    LayoutVariant,
    PoolState,
    PoolStatus,
    decode_pool_state,
    encode_pool_state,
    variant_for_length,
)
from ammkit.shared.config.network import FEE_PRECISION
from ammkit.shared.system.logging import Logger


@dataclass(frozen=True)
class Pool:
    """Decoded pool. Addresses are base58 strings; fees are normalized."""

    variant: LayoutVariant
    status: PoolStatus
    nonce: int
    k_a: int
    k_b: int
    tolerance: int
    fee_rates_ppm: Tuple[int, ...]
    fee_rates: Tuple[Decimal, ...]
    owner: str
    mint_a: str
    mint_b: str
    vault_a: str
    vault_b: str
    fee_vault: str
    fee_receivers: Tuple[str, ...] = ()
    fee_mint: Optional[str] = None
    address: Optional[str] = None
    state: Optional[PoolState] = field(default=None, repr=False, compare=False)

    @property
    def invariant(self) -> int:
        return self.k_a * self.k_b

    @property
    def total_fee_ppm(self) -> int:
        return sum(self.fee_rates_ppm)

    @property
    def is_five_tier(self) -> bool:
        return self.variant is LayoutVariant.FIVE_TIER

    @classmethod
    def from_state(cls, state: PoolState, address: Optional[str] = None) -> "Pool":
        try:
            status = PoolStatus(state.status)
        except ValueError:
            raise MalformedLayout("pool.status", max(PoolStatus), state.status, unit="(max status value)") from None

        if state.variant is LayoutVariant.SINGLE_FEE:
            ppm = (int(state.fees[0]),)
            rates = (Decimal(ppm[0]) / Decimal(FEE_PRECISION),)
        else:
            for i, fee in enumerate(state.fees, start=1):
                if not math.isfinite(fee) or not 0.0 <= fee <= 1.0:
                    raise FieldOverflow(f"fee_{i}", fee, "fee fraction", reason="is outside 0..1 for")
            rates = tuple(Decimal(repr(float(fee))) for fee in state.fees)
            ppm = tuple(fraction_to_ppm(rate) for rate in rates)

        return cls(
            variant=state.variant,
            status=status,
            nonce=state.nonce,
            k_a=state.k_a,
            k_b=state.k_b,
            tolerance=state.tolerance,
            fee_rates_ppm=ppm,
            fee_rates=rates,
            owner=str(state.owner),
            mint_a=str(state.mint_a),
            mint_b=str(state.mint_b),
            vault_a=str(state.vault_a),
            vault_b=str(state.vault_b),
            fee_vault=str(state.fee_vault),
            fee_receivers=tuple(str(r) for r in state.fee_receivers),
            fee_mint=str(state.fee_mint) if state.fee_mint is not None else None,
            address=address,
            state=state,
        )


def fraction_to_ppm(rate: Decimal) -> int:
    """0.003 -> 3000, rounded half-to-even."""
    return int((rate * FEE_PRECISION).quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


def decode_pool(raw: bytes, address: Optional[str] = None) -> Pool:
    """Decode a pool account; UnknownLayout if no variant has this length."""
    raw = bytes(raw)
    variant = variant_for_length(len(raw))
    state = decode_pool_state(raw, variant)
    pool = Pool.from_state(state, address=address)
    Logger.debug(f"[POOL] Decoded {variant.value} pool {address or '?'} (status {pool.status.name})")
    return pool


def encode_pool(pool: Pool) -> bytes:
    """Re-encode a decoded pool (exact bytes when it came from decode_pool)."""
    if pool.state is not None:
        return encode_pool_state(pool.state)

    from solders.pubkey import Pubkey

    if pool.variant is LayoutVariant.SINGLE_FEE:
        fees = (pool.fee_rates_ppm[0],)
    else:
        fees = tuple(float(rate) for rate in pool.fee_rates)

    return encode_pool_state(
        PoolState(
            variant=pool.variant,
            status=int(pool.status),
            nonce=pool.nonce,
            k_a=pool.k_a,
            k_b=pool.k_b,
            tolerance=pool.tolerance,
            fees=fees,
            owner=Pubkey.from_string(pool.owner),
            mint_a=Pubkey.from_string(pool.mint_a),
            mint_b=Pubkey.from_string(pool.mint_b),
            vault_a=Pubkey.from_string(pool.vault_a),
            vault_b=Pubkey.from_string(pool.vault_b),
            fee_vault=Pubkey.from_string(pool.fee_vault),
            fee_receivers=tuple(Pubkey.from_string(r) for r in pool.fee_receivers),
            fee_mint=Pubkey.from_string(pool.fee_mint) if pool.fee_mint else None,
        )
    )


# ═══════════════════════════════════════════════════════════════════════════════
# ACCOUNT LOOKUP FILTERS
# ═══════════════════════════════════════════════════════════════════════════════

def pool_filters(
    variant: LayoutVariant = LayoutVariant.SINGLE_FEE,
    owner: Optional[str] = None,
    mint_a: Optional[str] = None,
    mint_b: Optional[str] = None,
) -> Tuple[int, List[Dict[str, object]]]:
    """
    (data_size, memcmp filters) for a program-accounts lookup.

    Each memcmp filter is {"offset": int, "bytes": base58 str}.
    """
    layout = POOL_LAYOUTS[variant]
    memcmp = []
    for name, value in (("owner", owner), ("mint_a", mint_a), ("mint_b", mint_b)):
        if value:
            memcmp.append({"offset": layout.offset_of(name), "bytes": str(value)})
    return layout.span, memcmp
