"""
Pool Decoder Unit Tests
=======================
Variant selection by length, fee normalization and lookup filters.
"""

from decimal import Decimal

import pytest


class TestDecodePool:

    def test_single_fee_round_trip(self, single_fee_state, keys):
        from ammkit.layouts.pool import encode_pool_state
        from ammkit.state.pool_decoder import decode_pool, encode_pool

        raw = encode_pool_state(single_fee_state)
        pool = decode_pool(raw, address=str(keys.pool))

        assert encode_pool(pool) == raw
        assert pool.address == str(keys.pool)
        assert pool.owner == str(keys.owner)
        assert pool.k_a == 1000 and pool.k_b == 2000
        assert pool.invariant == 2_000_000

    def test_five_tier_round_trip(self, five_tier_state):
        from ammkit.layouts.pool import LayoutVariant, encode_pool_state
        from ammkit.state.pool_decoder import decode_pool, encode_pool

        raw = encode_pool_state(five_tier_state)
        assert len(raw) == 450

        pool = decode_pool(raw)
        assert pool.variant is LayoutVariant.FIVE_TIER
        assert pool.is_five_tier
        assert len(pool.fee_receivers) == 5
        assert encode_pool(pool) == raw

    @pytest.mark.parametrize("length", [225, 227, 0, 449, 451])
    def test_other_lengths_are_unknown(self, length):
        from ammkit.errors import UnknownLayout
        from ammkit.state.pool_decoder import decode_pool

        with pytest.raises(UnknownLayout) as exc:
            decode_pool(bytes(length))

        assert exc.value.details["length"] == length

    def test_exact_span_succeeds(self):
        """226 zero bytes decode: status 0 is UNINITIALIZED."""
        from ammkit.layouts.pool import PoolStatus
        from ammkit.state.pool_decoder import decode_pool

        pool = decode_pool(bytes(226))
        assert pool.status is PoolStatus.UNINITIALIZED

    def test_unknown_status_is_malformed(self, single_fee_state):
        import dataclasses

        from ammkit.errors import MalformedLayout
        from ammkit.layouts.pool import encode_pool_state
        from ammkit.state.pool_decoder import decode_pool

        raw = encode_pool_state(dataclasses.replace(single_fee_state, status=9))
        with pytest.raises(MalformedLayout):
            decode_pool(raw)

    @pytest.mark.parametrize("fee", [float("nan"), float("inf"), float("-inf"), 1.5, -0.001])
    def test_corrupt_five_tier_fee_is_typed(self, five_tier_state, fee):
        import struct

        from ammkit.errors import AmmError, FieldOverflow
        from ammkit.layouts.pool import encode_pool_state
        from ammkit.state.pool_decoder import decode_pool

        raw = bytearray(encode_pool_state(five_tier_state))
        raw[26:34] = struct.pack("<d", fee)

        with pytest.raises(FieldOverflow) as exc:
            decode_pool(bytes(raw))

        assert isinstance(exc.value, AmmError)
        assert exc.value.details["field"] == "fee_1"

    def test_encode_without_source_state(self, single_fee_pool):
        """A hand-built Pool (no cached state) re-encodes from its fields."""
        import dataclasses

        from ammkit.state.pool_decoder import decode_pool, encode_pool

        raw = encode_pool(single_fee_pool)
        rebuilt = dataclasses.replace(single_fee_pool, state=None)
        assert encode_pool(rebuilt) == raw
        assert decode_pool(raw, address=single_fee_pool.address) == single_fee_pool


class TestFeeNormalization:

    def test_single_fee_ppm(self, make_pool):
        pool = make_pool(fees=(3000,))

        assert pool.fee_rates_ppm == (3000,)
        assert pool.fee_rates == (Decimal("0.003"),)
        assert pool.total_fee_ppm == 3000

    def test_five_tier_fraction_to_ppm(self, five_tier_pool):
        assert five_tier_pool.fee_rates_ppm == (3000, 0, 0, 0, 0)
        assert five_tier_pool.fee_rates[0] == Decimal("0.003")
        assert five_tier_pool.total_fee_ppm == 3000

    def test_fraction_to_ppm_rounds_half_even(self):
        from ammkit.state.pool_decoder import fraction_to_ppm

        assert fraction_to_ppm(Decimal("0.0000025")) == 2
        assert fraction_to_ppm(Decimal("0.0000035")) == 4


class TestPoolFilters:

    def test_data_size_only(self):
        from ammkit.state.pool_decoder import pool_filters

        span, memcmp = pool_filters()
        assert span == 226
        assert memcmp == []

    def test_owner_and_mint_offsets(self, keys):
        from ammkit.layouts.pool import LayoutVariant
        from ammkit.state.pool_decoder import pool_filters

        _, memcmp = pool_filters(owner=str(keys.owner), mint_a=str(keys.mint_a), mint_b=str(keys.mint_b))
        assert [m["offset"] for m in memcmp] == [34, 66, 98]
        assert memcmp[0]["bytes"] == str(keys.owner)

        span, memcmp = pool_filters(LayoutVariant.FIVE_TIER, owner=str(keys.owner))
        assert span == 450
        assert memcmp[0]["offset"] == 66
