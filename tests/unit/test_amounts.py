"""
Amount Scaling Unit Tests
=========================
"""

from decimal import Decimal

import pytest


class TestToAtomic:

    @pytest.mark.parametrize(
        "amount,decimals,expected",
        [
            ("1.5", 6, 1_500_000),
            (Decimal("0.003"), 6, 3000),
            (2, 9, 2_000_000_000),
            ("0", 6, 0),
            ("0.0000025", 6, 2),
            ("0.0000035", 6, 4),
        ],
    )
    def test_scaling(self, amount, decimals, expected):
        from ammkit.amounts import to_atomic

        assert to_atomic(amount, decimals) == expected

    @pytest.mark.parametrize("amount", [1.5, True, "abc", "inf", None])
    def test_rejects(self, amount):
        from ammkit.amounts import to_atomic
        from ammkit.errors import InvalidAmount

        with pytest.raises(InvalidAmount):
            to_atomic(amount, 6)

    def test_rounds_once_past_default_precision(self):
        """Digits beyond the 28-digit default context still decide the rounding."""
        from ammkit.amounts import to_atomic

        assert to_atomic("123456789.0123456785000000000001", 9) == 123456789012345679
        assert to_atomic("123456789.0123456785000000000000", 9) == 123456789012345678

    @pytest.mark.parametrize("amount", ["1e30", "18446744073709.551616", "1e999999999"])
    def test_rejects_above_u64(self, amount):
        from ammkit.amounts import to_atomic
        from ammkit.errors import FieldOverflow

        with pytest.raises(FieldOverflow) as exc:
            to_atomic(amount, 6)

        assert exc.value.details["kind"] == "u64"

    def test_u64_max_fits(self):
        from ammkit.amounts import to_atomic

        assert to_atomic("18446744073709.551615", 6) == 2**64 - 1

    def test_rejects_bad_decimals(self):
        from ammkit.amounts import to_atomic
        from ammkit.errors import InvalidAmount

        with pytest.raises(InvalidAmount):
            to_atomic("1", -1)


class TestToHuman:

    def test_scaling(self):
        from ammkit.amounts import to_human

        assert to_human(1_500_000, 6) == Decimal("1.5")
        assert to_human(0, 9) == 0

    def test_rejects_float(self):
        from ammkit.amounts import to_human
        from ammkit.errors import InvalidAmount

        with pytest.raises(InvalidAmount):
            to_human(1.0, 6)
