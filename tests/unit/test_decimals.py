"""
Unit tests for decimal normalization.
"""

import pytest

from dutch_auction.core.errors import ArithmeticOverflow, DivisionByZero, UnsupportedDecimals
from dutch_auction.core.math import MAX_UINT256, WAD, from_wad, scaler_for, to_wad


class TestScaler:
    """Tests for scaler_for."""

    @pytest.mark.parametrize("decimals,expected", [(18, 1), (6, 10**12), (8, 10**10), (0, 10**18)])
    def test_scaler_values(self, decimals, expected):
        assert scaler_for(decimals) == expected

    @pytest.mark.parametrize("decimals", [19, 24, -1])
    def test_unsupported_decimals(self, decimals):
        """More than 18 decimals (or negative) is rejected."""
        with pytest.raises(UnsupportedDecimals) as exc:
            scaler_for(decimals)
        assert exc.value.decimals == decimals

    def test_unsupported_is_value_error(self):
        with pytest.raises(ValueError):
            scaler_for(30)


class TestConversion:
    """Tests for to_wad / from_wad."""

    def test_six_decimals_to_wad(self):
        """One USDC-style unit (1e6 raw) is one WAD."""
        assert to_wad(10**6, scaler_for(6)) == WAD

    def test_from_wad_truncates(self):
        assert from_wad(WAD + 10**12 - 1, scaler_for(6)) == 10**6

    def test_eighteen_decimals_is_identity(self):
        assert to_wad(12345, 1) == 12345
        assert from_wad(12345, 1) == 12345

    def test_to_wad_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            to_wad(MAX_UINT256, 10)

    def test_negative_amount(self):
        with pytest.raises(ArithmeticOverflow):
            to_wad(-1, 1)

    def test_zero_scaler(self):
        with pytest.raises(DivisionByZero):
            from_wad(WAD, 0)
        with pytest.raises(DivisionByZero):
            to_wad(1, 0)
