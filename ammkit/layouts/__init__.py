"""
Wire Layouts
============
Fixed-width little-endian codecs for pool accounts and instruction payloads.
"""

from ammkit.layouts.codec import Field, FieldKind, Layout
from ammkit.layouts.instructions import Discriminant, SwapDirection, decode_payload
from ammkit.layouts.pool import (
    FIVE_TIER_POOL_LAYOUT,
    SINGLE_FEE_POOL_LAYOUT,
    LayoutVariant,
    PoolState,
    PoolStatus,
)


__all__ = [
    "Field",
    "FieldKind",
    "Layout",
    "Discriminant",
    "SwapDirection",
    "decode_payload",
    "FIVE_TIER_POOL_LAYOUT",
    "SINGLE_FEE_POOL_LAYOUT",
    "LayoutVariant",
    "PoolState",
    "PoolStatus",
]
