"""
Instruction Payload Layouts
===========================
One exact-span layout per discriminant, little-endian, no padding.

Wire wart kept on purpose: in the single-fee program Terminate reuses
discriminant 1 (UpdatePool). The two are told apart by account list, not
by payload. The five-tier program gives Terminate its own value (9).
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any, Dict, Tuple

from ammkit.errors import InvalidDirection, MalformedLayout
from ammkit.layouts.codec import Layout, u8, u64
from ammkit.layouts.pool import FEE_TIERS, LayoutVariant
from ammkit.shared.config.network import FEE_PRECISION


class Discriminant(IntEnum):
    INITIALIZE = 0
    UPDATE_POOL = 1
    UPDATE_STATUS = 2
    UPDATE_TOLERANCE = 3
    TERMINATE_FIVE_TIER = 9
    SWAP = 10
    WITHDRAW_FEE = 80


# Single-fee Terminate shares the UpdatePool byte.
TERMINATE_SINGLE_FEE = Discriminant.UPDATE_POOL


class SwapDirection(IntEnum):
    A_TO_B = 1
    B_TO_A = 2


def coerce_direction(direction) -> SwapDirection:
    """Accept a SwapDirection or its wire value; compared by equality."""
    if isinstance(direction, bool):
        raise InvalidDirection(direction)
    if direction == SwapDirection.A_TO_B:
        return SwapDirection.A_TO_B
    if direction == SwapDirection.B_TO_A:
        return SwapDirection.B_TO_A
    raise InvalidDirection(direction)


class InstructionLayout:
    """A Layout whose first byte is a fixed discriminant."""

    def __init__(self, name: str, discriminant: int, fields=()):
        self.name = name
        self.discriminant = int(discriminant)
        self.layout = Layout(name, [u8("instruction")] + list(fields))

    @property
    def span(self) -> int:
        return self.layout.span

    def encode(self, **values: Any) -> bytes:
        return self.layout.encode({"instruction": self.discriminant, **values})

    def decode(self, data: bytes) -> Dict[str, Any]:
        values = self.layout.decode(data)
        if values["instruction"] != self.discriminant:
            raise MalformedLayout(self.name, self.discriminant, values["instruction"], unit="discriminant")
        del values["instruction"]
        return values


def _fee(name: str):
    return u64(name, max_value=FEE_PRECISION)


INITIALIZE_SINGLE_FEE = InstructionLayout(
    "initialize",
    Discriminant.INITIALIZE,
    [u8("nonce"), _fee("fee"), u64("amount_a"), u64("amount_b"), u64("tolerance")],
)

INITIALIZE_FIVE_TIER = InstructionLayout(
    "initialize_five_tier",
    Discriminant.INITIALIZE,
    [u8("nonce")]
    + [_fee(f"fee_{i}") for i in range(1, FEE_TIERS + 1)]
    + [u64("amount_a"), u64("amount_b"), u64("tolerance")],
)

UPDATE_POOL = InstructionLayout("update_pool", Discriminant.UPDATE_POOL)
UPDATE_STATUS = InstructionLayout("update_status", Discriminant.UPDATE_STATUS, [u8("status")])
UPDATE_TOLERANCE = InstructionLayout("update_tolerance", Discriminant.UPDATE_TOLERANCE, [u64("tolerance")])
TERMINATE = InstructionLayout("terminate", TERMINATE_SINGLE_FEE)
TERMINATE_FIVE_TIER = InstructionLayout("terminate_five_tier", Discriminant.TERMINATE_FIVE_TIER)
SWAP = InstructionLayout(
    "swap",
    Discriminant.SWAP,
    [u64("amount"), u8("direction", min_value=SwapDirection.A_TO_B, max_value=SwapDirection.B_TO_A)],
)
WITHDRAW_FEE = InstructionLayout("withdraw_fee", Discriminant.WITHDRAW_FEE)


def initialize_layout(variant: LayoutVariant) -> InstructionLayout:
    if variant is LayoutVariant.FIVE_TIER:
        return INITIALIZE_FIVE_TIER
    return INITIALIZE_SINGLE_FEE


def terminate_layout(variant: LayoutVariant) -> InstructionLayout:
    if variant is LayoutVariant.FIVE_TIER:
        return TERMINATE_FIVE_TIER
    return TERMINATE


class PayloadKind(Enum):
    """Decoded meaning of a payload, before looking at its accounts."""

    INITIALIZE = "initialize"
    UPDATE_POOL_OR_TERMINATE = "update_pool_or_terminate"
    UPDATE_STATUS = "update_status"
    UPDATE_TOLERANCE = "update_tolerance"
    TERMINATE = "terminate"
    SWAP = "swap"
    WITHDRAW_FEE = "withdraw_fee"


def decode_payload(data: bytes, variant: LayoutVariant = LayoutVariant.SINGLE_FEE) -> Tuple[PayloadKind, Dict[str, Any]]:
    """
    Decode an instruction payload by its discriminant.

    Discriminant 1 comes back as UPDATE_POOL_OR_TERMINATE: the payload alone
    cannot say which one it is.
    """
    if not data:
        raise MalformedLayout("instruction", 1, 0)

    tag = data[0]
    table = {
        Discriminant.INITIALIZE: (PayloadKind.INITIALIZE, initialize_layout(variant)),
        Discriminant.UPDATE_POOL: (PayloadKind.UPDATE_POOL_OR_TERMINATE, UPDATE_POOL),
        Discriminant.UPDATE_STATUS: (PayloadKind.UPDATE_STATUS, UPDATE_STATUS),
        Discriminant.UPDATE_TOLERANCE: (PayloadKind.UPDATE_TOLERANCE, UPDATE_TOLERANCE),
        Discriminant.SWAP: (PayloadKind.SWAP, SWAP),
        Discriminant.WITHDRAW_FEE: (PayloadKind.WITHDRAW_FEE, WITHDRAW_FEE),
    }
    if variant is LayoutVariant.FIVE_TIER:
        table[Discriminant.TERMINATE_FIVE_TIER] = (PayloadKind.TERMINATE, TERMINATE_FIVE_TIER)

    if tag not in table:
        raise MalformedLayout("instruction", -1, tag, unit="discriminant (unknown)")
    kind, layout = table[tag]
    return kind, layout.decode(data)
