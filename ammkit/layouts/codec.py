"""
Layout Codec
============
Fixed-width little-endian binary layouts.

A Layout is an ordered list of typed fields with no padding. Decoding
demands the exact span; encoding always yields the exact span and refuses
any value that does not fit its declared width.
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from solders.pubkey import Pubkey

from ammkit.errors import FieldOverflow, MalformedLayout


class FieldKind(Enum):
    """Wire types understood by the codec."""

    U8 = "B"
    U64 = "Q"
    I64 = "q"
    F64 = "d"
    PUBKEY = "32s"


INT_RANGES = {
    FieldKind.U8: (0, 2**8 - 1),
    FieldKind.U64: (0, 2**64 - 1),
    FieldKind.I64: (-(2**63), 2**63 - 1),
}


@dataclass(frozen=True)
class Field:
    name: str
    kind: FieldKind
    # Optional tighter bounds than the wire width (e.g. fee fractions).
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    @property
    def size(self) -> int:
        return struct.calcsize("<" + self.kind.value)


def u8(name: str, **bounds) -> Field:
    return Field(name, FieldKind.U8, **bounds)


def u64(name: str, **bounds) -> Field:
    return Field(name, FieldKind.U64, **bounds)


def i64(name: str, **bounds) -> Field:
    return Field(name, FieldKind.I64, **bounds)


def f64(name: str, **bounds) -> Field:
    return Field(name, FieldKind.F64, **bounds)


def pubkey(name: str) -> Field:
    return Field(name, FieldKind.PUBKEY)


class Layout:
    """
    An exact-span binary structure.

    Usage:
        layout = Layout("swap", [u8("instruction"), u64("amount"), u8("direction")])
        raw = layout.encode({"instruction": 10, "amount": 5, "direction": 1})
        values = layout.decode(raw)
    """

    def __init__(self, name: str, fields: Iterable[Field]):
        self.name = name
        self.fields: Tuple[Field, ...] = tuple(fields)
        names = [f.name for f in self.fields]
        if len(set(names)) != len(names):
            raise ValueError(f"{name}: duplicate field names")

        self._struct = struct.Struct("<" + "".join(f.kind.value for f in self.fields))
        self._offsets: Dict[str, int] = {}
        offset = 0
        for f in self.fields:
            self._offsets[f.name] = offset
            offset += f.size

    def __repr__(self) -> str:
        return f"Layout({self.name!r}, span={self.span})"

    @property
    def span(self) -> int:
        return self._struct.size

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def offset_of(self, field_name: str) -> int:
        return self._offsets[field_name]

    # -------------------------------------------------------------------------
    # DECODE
    # -------------------------------------------------------------------------

    def decode(self, data: bytes) -> Dict[str, Any]:
        """Decode exactly `span` bytes into a field dict (pubkeys as Pubkey)."""
        data = bytes(data)
        if len(data) != self.span:
            raise MalformedLayout(self.name, self.span, len(data))

        values = self._struct.unpack(data)
        out: Dict[str, Any] = {}
        for f, value in zip(self.fields, values):
            out[f.name] = Pubkey.from_bytes(value) if f.kind is FieldKind.PUBKEY else value
        return out

    # -------------------------------------------------------------------------
    # ENCODE
    # -------------------------------------------------------------------------

    def encode(self, values: Mapping[str, Any]) -> bytes:
        """Encode a mapping of field values; always returns `span` bytes."""
        packed = [self._coerce(f, values) for f in self.fields]
        return self._struct.pack(*packed)

    def _coerce(self, f: Field, values: Mapping[str, Any]) -> Any:
        if f.name not in values:
            raise FieldOverflow(f.name, None, f.kind.name, reason="is missing for")
        value = values[f.name]

        if f.kind is FieldKind.PUBKEY:
            return _pubkey_bytes(f, value)

        if f.kind is FieldKind.F64:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise FieldOverflow(f.name, value, f.kind.name, reason="is not a number for")
            value = float(value)
            if not math.isfinite(value):
                raise FieldOverflow(f.name, value, f.kind.name, reason="is not finite for")
        else:
            # bool is an int subclass; never let True/False slip onto the wire.
            if isinstance(value, bool) or not isinstance(value, int):
                raise FieldOverflow(f.name, value, f.kind.name, reason="is not an integer for")
            low, high = INT_RANGES[f.kind]
            if not low <= value <= high:
                raise FieldOverflow(f.name, value, f.kind.name)

        if f.min_value is not None and value < f.min_value:
            raise FieldOverflow(f.name, value, f.kind.name, reason=f"is below {f.min_value} for")
        if f.max_value is not None and value > f.max_value:
            raise FieldOverflow(f.name, value, f.kind.name, reason=f"exceeds {f.max_value} for")
        return value


def _pubkey_bytes(f: Field, value: Any) -> bytes:
    if isinstance(value, Pubkey):
        return bytes(value)
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 32:
            raise FieldOverflow(f.name, bytes(value).hex(), f.kind.name, reason=f"is {len(value)} bytes, not 32, for")
        return bytes(value)
    if isinstance(value, str):
        try:
            return bytes(Pubkey.from_string(value))
        except ValueError:
            raise FieldOverflow(f.name, value, f.kind.name, reason="is not a base58 address for") from None
    raise FieldOverflow(f.name, value, f.kind.name, reason="is not an address for")
