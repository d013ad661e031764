"""
tests/test_units.py

Fixed-point conversion between native asset units and 18-decimal
normalized units. The rounding direction is the whole point: payouts are
derived from denormalize(), so it must never round up.
"""

from decimal import Decimal

import pytest

from vestledger.core.exceptions import NonMonotonicScheduleError, VestingError
from vestledger.core.time import format_timestamp, parse_timestamp
from vestledger.core.units import (
    MAX_DECIMALS,
    NORMALIZED_DECIMALS,
    denormalize,
    format_units,
    normalize,
    parse_units,
)


class TestNormalize:

    def test_six_decimal_asset_scales_up(self):
        assert normalize(123_456_789, 6) == 123_456_789 * 10**12

    def test_eighteen_decimals_is_identity(self):
        assert normalize(5 * 10**18, 18) == 5 * 10**18
        assert denormalize(5 * 10**18, 18) == 5 * 10**18

    def test_zero_decimal_asset(self):
        assert normalize(7, 0) == 7 * 10**18
        assert denormalize(7 * 10**18 + 1, 0) == 7

    def test_denormalize_floors_sub_unit_remainder(self):
        """A normalized amount below one native unit pays nothing."""
        assert denormalize(10**12 - 1, 6) == 0
        assert denormalize(10**12, 6) == 1
        assert denormalize(3 * 10**12 + 999, 6) == 3

    def test_high_precision_asset_floors_on_normalize(self):
        """Above 18 decimals the direction flips: normalize floors, denormalize is exact."""
        assert normalize(10**20 + 99, 20) == 10**18
        assert denormalize(10**18, 20) == 10**20

    def test_denormalize_never_exceeds_input(self):
        for decimals in (0, 2, 6, 8, 18, 24):
            for amount in (1, 999_999, 10**18 + 7, 123_456_789_012_345_678_901):
                native = denormalize(amount, decimals)
                assert normalize(native, decimals) <= amount

    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            normalize(-1, 6)
        with pytest.raises(ValueError):
            denormalize(-1, 6)

    def test_rejects_non_int(self):
        with pytest.raises(TypeError):
            normalize(1.5, 6)
        with pytest.raises(TypeError):
            denormalize(True, 6)

    def test_rejects_out_of_range_decimals(self):
        with pytest.raises(ValueError):
            normalize(1, MAX_DECIMALS + 1)
        with pytest.raises(ValueError):
            normalize(1, -1)


class TestParseFormat:

    def test_parse_whole_amount(self):
        assert parse_units("1800") == 1800 * 10**NORMALIZED_DECIMALS

    def test_parse_fractional_amount_at_native_precision(self):
        assert parse_units("123.456789", 6) == 123_456_789

    def test_parse_accepts_int_and_decimal(self):
        assert parse_units(5, 6) == 5_000_000
        assert parse_units(Decimal("0.5"), 6) == 500_000

    def test_parse_rejects_excess_precision(self):
        with pytest.raises(ValueError):
            parse_units("0.0000001", 6)

    def test_parse_rejects_float(self):
        """Floats are lossy; callers must pass decimal strings."""
        with pytest.raises(TypeError):
            parse_units(0.1, 18)

    def test_parse_rejects_garbage_and_negatives(self):
        with pytest.raises(ValueError):
            parse_units("ten")
        with pytest.raises(ValueError):
            parse_units("-1")
        with pytest.raises(ValueError):
            parse_units("Infinity")

    def test_parse_large_amount_is_exact(self):
        assert parse_units("123456789012345678901234567890.123456789012345678") == (
            123456789012345678901234567890123456789012345678
        )

    def test_format_strips_trailing_zeros(self):
        assert format_units(1_500_000, 6) == "1.5"
        assert format_units(100 * 10**18) == "100"
        assert format_units(1) == "0.000000000000000001"

    def test_format_zero_decimals(self):
        assert format_units(42, 0) == "42"

    def test_format_then_parse_preserves_value(self):
        amount = 123_456_789 * 10**12 + 1
        assert parse_units(format_units(amount)) == amount


class TestTimestamps:

    def test_iso_with_z(self):
        assert parse_timestamp("2025-09-01T00:00:00Z") == 1756684800

    def test_naive_iso_is_utc(self):
        assert parse_timestamp("2025-09-01T00:00:00") == 1756684800

    def test_digit_string_is_unix_seconds(self):
        assert parse_timestamp("1756684800") == 1756684800
        assert parse_timestamp(1756684800) == 1756684800

    def test_rejects_bool_and_float(self):
        with pytest.raises(TypeError):
            parse_timestamp(True)
        with pytest.raises(TypeError):
            parse_timestamp(1.5)

    def test_rejects_malformed_string(self):
        with pytest.raises(ValueError):
            parse_timestamp("next tuesday")

    def test_format(self):
        assert format_timestamp(1756684800) == "2025-09-01T00:00:00Z"


class TestErrorMessages:

    def test_message_without_details(self):
        exc = VestingError("pool empty")
        assert str(exc) == "pool empty"
        assert exc.details == {}

    def test_details_are_rendered(self):
        exc = NonMonotonicScheduleError("milestones out of order", {"index": 1})
        assert str(exc) == "milestones out of order (index=1)"
        assert isinstance(exc, VestingError)
