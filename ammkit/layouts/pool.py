"""
Pool Account Layouts
====================
Wire shapes of the pool state account.

Two versions exist on chain and both are kept as explicit variants:

- SINGLE_FEE (226 bytes): one fee stored as u64 parts-per-million.
- FIVE_TIER (450 bytes): five fees stored as f64 fractions, each with its
  own receiver, plus the fee mint.

The variant is selected by exact byte length, never guessed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Optional, Tuple, Union

from solders.pubkey import Pubkey

from ammkit.errors import FieldOverflow, UnknownLayout
from ammkit.layouts.codec import Layout, f64, pubkey, u8, u64
from ammkit.shared.config.network import FEE_PRECISION


FEE_TIERS = 5


class LayoutVariant(Enum):
    SINGLE_FEE = "single_fee"
    FIVE_TIER = "five_tier"

    @property
    def fee_count(self) -> int:
        return 1 if self is LayoutVariant.SINGLE_FEE else FEE_TIERS


class PoolStatus(IntEnum):
    UNINITIALIZED = 0
    ACTIVE = 1
    PAUSED = 2
    TERMINATED = 3


_HEADER = [
    u8("status"),
    u8("nonce"),
    u64("k_a"),
    u64("k_b"),
    u64("tolerance"),
]

_ADDRESSES = [
    pubkey("owner"),
    pubkey("mint_a"),
    pubkey("mint_b"),
    pubkey("vault_a"),
    pubkey("vault_b"),
    pubkey("fee_vault"),
]

SINGLE_FEE_POOL_LAYOUT = Layout(
    "pool_single_fee",
    _HEADER + [u64("fee", max_value=FEE_PRECISION)] + _ADDRESSES,
)

FIVE_TIER_POOL_LAYOUT = Layout(
    "pool_five_tier",
    _HEADER
    + [f64(f"fee_{i}", min_value=0.0, max_value=1.0) for i in range(1, FEE_TIERS + 1)]
    + _ADDRESSES
    + [pubkey(f"fee_receiver_{i}") for i in range(1, FEE_TIERS + 1)]
    + [pubkey("fee_mint")],
)

POOL_LAYOUTS: Dict[LayoutVariant, Layout] = {
    LayoutVariant.SINGLE_FEE: SINGLE_FEE_POOL_LAYOUT,
    LayoutVariant.FIVE_TIER: FIVE_TIER_POOL_LAYOUT,
}


def variant_for_length(length: int) -> LayoutVariant:
    """Pick the pool variant whose span equals `length` exactly."""
    for variant, layout in POOL_LAYOUTS.items():
        if layout.span == length:
            return variant
    raise UnknownLayout(length, known={v.value: l.span for v, l in POOL_LAYOUTS.items()})


@dataclass(frozen=True)
class PoolState:
    """
    Raw pool account fields exactly as stored on chain.

    `fees` holds u64 ppm ints for SINGLE_FEE and f64 fractions for FIVE_TIER.
    `status` stays a plain int so unknown on-chain values still round-trip.
    """

    variant: LayoutVariant
    status: int
    nonce: int
    k_a: int
    k_b: int
    tolerance: int
    fees: Tuple[Union[int, float], ...]
    owner: Pubkey
    mint_a: Pubkey
    mint_b: Pubkey
    vault_a: Pubkey
    vault_b: Pubkey
    fee_vault: Pubkey
    fee_receivers: Tuple[Pubkey, ...] = ()
    fee_mint: Optional[Pubkey] = None


def decode_pool_state(data: bytes, variant: Optional[LayoutVariant] = None) -> PoolState:
    """
    Decode raw pool bytes. With an explicit variant the length must match
    that variant (MalformedLayout otherwise); without one the variant is
    chosen by length (UnknownLayout if none matches).
    """
    if variant is None:
        variant = variant_for_length(len(data))
    values = POOL_LAYOUTS[variant].decode(data)

    if variant is LayoutVariant.SINGLE_FEE:
        fees = (values["fee"],)
        receivers: Tuple[Pubkey, ...] = ()
        fee_mint = None
    else:
        fees = tuple(values[f"fee_{i}"] for i in range(1, FEE_TIERS + 1))
        receivers = tuple(values[f"fee_receiver_{i}"] for i in range(1, FEE_TIERS + 1))
        fee_mint = values["fee_mint"]

    return PoolState(
        variant=variant,
        status=values["status"],
        nonce=values["nonce"],
        k_a=values["k_a"],
        k_b=values["k_b"],
        tolerance=values["tolerance"],
        fees=fees,
        owner=values["owner"],
        mint_a=values["mint_a"],
        mint_b=values["mint_b"],
        vault_a=values["vault_a"],
        vault_b=values["vault_b"],
        fee_vault=values["fee_vault"],
        fee_receivers=receivers,
        fee_mint=fee_mint,
    )


def encode_pool_state(state: PoolState) -> bytes:
    layout = POOL_LAYOUTS[state.variant]
    expected = state.variant.fee_count
    if len(state.fees) != expected:
        raise FieldOverflow("fees", state.fees, layout.name, reason=f"must hold {expected} values for")

    values = {
        "status": int(state.status),
        "nonce": state.nonce,
        "k_a": state.k_a,
        "k_b": state.k_b,
        "tolerance": state.tolerance,
        "owner": state.owner,
        "mint_a": state.mint_a,
        "mint_b": state.mint_b,
        "vault_a": state.vault_a,
        "vault_b": state.vault_b,
        "fee_vault": state.fee_vault,
    }
    if state.variant is LayoutVariant.SINGLE_FEE:
        values["fee"] = state.fees[0]
    else:
        if len(state.fee_receivers) != FEE_TIERS or state.fee_mint is None:
            raise FieldOverflow(
                "fee_receivers", len(state.fee_receivers), layout.name,
                reason="needs five receivers and a fee mint for",
            )
        for i, (fee, receiver) in enumerate(zip(state.fees, state.fee_receivers), start=1):
            values[f"fee_{i}"] = fee
            values[f"fee_receiver_{i}"] = receiver
        values["fee_mint"] = state.fee_mint

    return layout.encode(values)
