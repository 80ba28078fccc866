"""
Layout Codec Unit Tests
=======================
Exact-span encode/decode, width checks and the wire offsets the program reads.
"""

import struct

import pytest


class TestLayout:
    """Generic codec behavior."""

    @pytest.fixture
    def layout(self):
        from ammkit.layouts.codec import Layout, f64, i64, pubkey, u8, u64
        return Layout("sample", [u8("tag"), u64("amount"), i64("delta"), f64("rate"), pubkey("who")])

    def test_span_and_offsets(self, layout):
        """Fields are packed with no padding."""
        assert layout.span == 1 + 8 + 8 + 8 + 32
        assert layout.offset_of("amount") == 1
        assert layout.offset_of("delta") == 9
        assert layout.offset_of("rate") == 17
        assert layout.offset_of("who") == 25

    def test_little_endian(self, layout, keys):
        raw = layout.encode({"tag": 7, "amount": 1, "delta": -2, "rate": 0.5, "who": keys.owner})

        assert raw[0] == 7
        assert len(raw) == layout.span
        assert raw[1:9] == (1).to_bytes(8, "little")
        assert struct.unpack("<q", raw[9:17])[0] == -2
        assert raw[25:] == bytes(keys.owner)

    def test_decode_returns_pubkeys(self, layout, keys):
        raw = layout.encode({"tag": 0, "amount": 0, "delta": 0, "rate": 0.0, "who": str(keys.owner)})
        values = layout.decode(raw)

        assert values["who"] == keys.owner

    @pytest.mark.parametrize("delta", [-1, 1])
    def test_wrong_length_is_malformed(self, layout, delta):
        from ammkit.errors import MalformedLayout

        with pytest.raises(MalformedLayout) as exc:
            layout.decode(bytes(layout.span + delta))

        assert exc.value.details["expected"] == layout.span
        assert exc.value.details["actual"] == layout.span + delta

    def test_u8_overflow(self, layout):
        from ammkit.errors import FieldOverflow

        with pytest.raises(FieldOverflow):
            layout.encode({"tag": 256, "amount": 0, "delta": 0, "rate": 0.0, "who": bytes(32)})

    def test_u64_rejects_negative_and_too_large(self, layout):
        from ammkit.errors import FieldOverflow

        base = {"tag": 0, "delta": 0, "rate": 0.0, "who": bytes(32)}
        with pytest.raises(FieldOverflow):
            layout.encode({**base, "amount": -1})
        with pytest.raises(FieldOverflow):
            layout.encode({**base, "amount": 2**64})

        raw = layout.encode({**base, "amount": 2**64 - 1})
        assert layout.decode(raw)["amount"] == 2**64 - 1

    def test_rejects_bool_and_float_in_integer_fields(self, layout):
        from ammkit.errors import FieldOverflow

        base = {"tag": 0, "delta": 0, "rate": 0.0, "who": bytes(32)}
        with pytest.raises(FieldOverflow):
            layout.encode({**base, "amount": True})
        with pytest.raises(FieldOverflow):
            layout.encode({**base, "amount": 1.0})

    def test_rejects_non_finite_float(self, layout):
        from ammkit.errors import FieldOverflow

        with pytest.raises(FieldOverflow):
            layout.encode({"tag": 0, "amount": 0, "delta": 0, "rate": float("nan"), "who": bytes(32)})

    def test_missing_field(self, layout):
        from ammkit.errors import FieldOverflow

        with pytest.raises(FieldOverflow, match="missing"):
            layout.encode({"tag": 0})

    def test_bad_address(self, layout):
        from ammkit.errors import FieldOverflow

        with pytest.raises(FieldOverflow):
            layout.encode({"tag": 0, "amount": 0, "delta": 0, "rate": 0.0, "who": bytes(31)})
        with pytest.raises(FieldOverflow):
            layout.encode({"tag": 0, "amount": 0, "delta": 0, "rate": 0.0, "who": "not-base58-0OIl"})


class TestPoolLayouts:
    """Wire contract of the pool account."""

    def test_single_fee_offsets(self):
        from ammkit.layouts.pool import SINGLE_FEE_POOL_LAYOUT as layout

        expected = {
            "status": 0, "nonce": 1, "k_a": 2, "k_b": 10, "tolerance": 18, "fee": 26,
            "owner": 34, "mint_a": 66, "mint_b": 98, "vault_a": 130, "vault_b": 162, "fee_vault": 194,
        }
        for name, offset in expected.items():
            assert layout.offset_of(name) == offset, name
        assert layout.span == 226

    def test_five_tier_span(self):
        from ammkit.layouts.pool import FIVE_TIER_POOL_LAYOUT as layout

        assert layout.span == 450
        assert layout.offset_of("fee_1") == 26
        assert layout.offset_of("owner") == 66
        assert layout.offset_of("fee_mint") == 450 - 32

    def test_variant_for_length(self):
        from ammkit.errors import UnknownLayout
        from ammkit.layouts.pool import LayoutVariant, variant_for_length

        assert variant_for_length(226) is LayoutVariant.SINGLE_FEE
        assert variant_for_length(450) is LayoutVariant.FIVE_TIER
        with pytest.raises(UnknownLayout):
            variant_for_length(202)

    def test_single_fee_rejects_fee_above_one(self, single_fee_state):
        import dataclasses

        from ammkit.errors import FieldOverflow
        from ammkit.layouts.pool import encode_pool_state

        with pytest.raises(FieldOverflow):
            encode_pool_state(dataclasses.replace(single_fee_state, fees=(1_000_001,)))

    def test_five_tier_needs_receivers(self, five_tier_state):
        import dataclasses

        from ammkit.errors import FieldOverflow
        from ammkit.layouts.pool import encode_pool_state

        with pytest.raises(FieldOverflow):
            encode_pool_state(dataclasses.replace(five_tier_state, fee_receivers=()))

    def test_state_round_trip(self, single_fee_state, five_tier_state):
        from ammkit.layouts.pool import decode_pool_state, encode_pool_state

        for state in (single_fee_state, five_tier_state):
            raw = encode_pool_state(state)
            assert decode_pool_state(raw) == state
            assert encode_pool_state(decode_pool_state(raw)) == raw


class TestInstructionLayouts:
    """Instruction payload spans and discriminants."""

    @pytest.mark.parametrize(
        "name,span",
        [
            ("INITIALIZE_SINGLE_FEE", 34),
            ("INITIALIZE_FIVE_TIER", 66),
            ("UPDATE_POOL", 1),
            ("UPDATE_STATUS", 2),
            ("UPDATE_TOLERANCE", 9),
            ("TERMINATE", 1),
            ("TERMINATE_FIVE_TIER", 1),
            ("SWAP", 10),
            ("WITHDRAW_FEE", 1),
        ],
    )
    def test_spans(self, name, span):
        from ammkit.layouts import instructions

        assert getattr(instructions, name).span == span

    def test_swap_payload_bytes(self):
        from ammkit.layouts.instructions import SWAP

        raw = SWAP.encode(amount=100, direction=2)
        assert raw == bytes([10]) + (100).to_bytes(8, "little") + bytes([2])

    def test_swap_direction_bounds(self):
        from ammkit.errors import FieldOverflow
        from ammkit.layouts.instructions import SWAP

        with pytest.raises(FieldOverflow):
            SWAP.encode(amount=1, direction=0)
        with pytest.raises(FieldOverflow):
            SWAP.encode(amount=1, direction=3)

    def test_terminate_shares_update_pool_byte(self):
        """Single-fee Terminate and UpdatePool are byte-identical."""
        from ammkit.layouts.instructions import TERMINATE, TERMINATE_FIVE_TIER, UPDATE_POOL

        assert TERMINATE.encode() == UPDATE_POOL.encode() == b"\x01"
        assert TERMINATE_FIVE_TIER.encode() == b"\x09"

    def test_decode_payload(self):
        from ammkit.layouts.instructions import SWAP, PayloadKind, decode_payload
        from ammkit.layouts.pool import LayoutVariant

        kind, values = decode_payload(SWAP.encode(amount=5, direction=1))
        assert kind is PayloadKind.SWAP
        assert values == {"amount": 5, "direction": 1}

        kind, _ = decode_payload(b"\x01")
        assert kind is PayloadKind.UPDATE_POOL_OR_TERMINATE

        kind, _ = decode_payload(b"\x09", LayoutVariant.FIVE_TIER)
        assert kind is PayloadKind.TERMINATE

    def test_decode_payload_unknown_discriminant(self):
        from ammkit.errors import MalformedLayout
        from ammkit.layouts.instructions import decode_payload

        with pytest.raises(MalformedLayout):
            decode_payload(b"\x09")  # single-fee has no discriminant 9
        with pytest.raises(MalformedLayout):
            decode_payload(b"")

    def test_decode_checks_discriminant(self):
        from ammkit.errors import MalformedLayout
        from ammkit.layouts.instructions import UPDATE_STATUS

        with pytest.raises(MalformedLayout):
            UPDATE_STATUS.decode(b"\x03\x01")

    def test_initialize_fee_bounded_by_precision(self):
        from ammkit.errors import FieldOverflow
        from ammkit.layouts.instructions import INITIALIZE_SINGLE_FEE

        with pytest.raises(FieldOverflow):
            INITIALIZE_SINGLE_FEE.encode(nonce=1, fee=1_000_001, amount_a=1, amount_b=1, tolerance=0)
