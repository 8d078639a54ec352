"""
Unit tests for WAD/RAY fixed-point arithmetic.

Tests cover:
1. Multiplication and division with truncation
2. 256-bit overflow detection
3. Division by zero
4. ray_pow by squaring
"""

import pytest

from dutch_auction.core.errors import ArithmeticOverflow, DivisionByZero
from dutch_auction.core.math import (
    MAX_UINT256,
    RAY,
    WAD,
    ray_mul,
    ray_pow,
    ray_to_wad,
    wad_div,
    wad_mul,
)


class TestWadArithmetic:
    """Tests for WAD multiplication and division."""

    def test_wad_mul_identity(self):
        """Multiplying by one WAD is the identity."""
        assert wad_mul(123 * WAD, WAD) == 123 * WAD

    def test_wad_mul_fraction(self):
        """Half of three is one and a half."""
        assert wad_mul(3 * WAD, WAD // 2) == 3 * WAD // 2

    def test_wad_mul_truncates(self):
        """Sub-unit results are truncated toward zero."""
        assert wad_mul(1, WAD - 1) == 0
        assert wad_mul(3, WAD // 2) == 1

    def test_wad_div(self):
        """Dividing by two WAD halves the value."""
        assert wad_div(WAD, 2 * WAD) == WAD // 2

    def test_wad_div_truncates(self):
        assert wad_div(1, 3) == WAD // 3

    def test_wad_div_by_zero(self):
        """Zero divisor raises DivisionByZero, also a ZeroDivisionError."""
        with pytest.raises(DivisionByZero):
            wad_div(WAD, 0)
        with pytest.raises(ZeroDivisionError):
            wad_div(WAD, 0)

    def test_wad_mul_overflow(self):
        """A result beyond uint256 raises instead of wrapping."""
        with pytest.raises(ArithmeticOverflow):
            wad_mul(MAX_UINT256, MAX_UINT256)

    def test_overflow_is_overflow_error(self):
        with pytest.raises(OverflowError):
            wad_mul(MAX_UINT256, 2 * WAD)

    def test_large_intermediate_fits(self):
        """Intermediates above 256 bits are fine when the result fits."""
        assert wad_mul(MAX_UINT256, WAD) == MAX_UINT256

    def test_negative_operand_rejected(self):
        with pytest.raises(ArithmeticOverflow):
            wad_mul(-1, WAD)

    def test_operand_above_word_rejected(self):
        with pytest.raises(ArithmeticOverflow):
            wad_mul(MAX_UINT256 + 1, 1)


class TestRayArithmetic:
    """Tests for RAY helpers."""

    def test_ray_mul(self):
        assert ray_mul(RAY // 2, RAY // 2) == RAY // 4

    def test_ray_to_wad(self):
        assert ray_to_wad(RAY) == WAD
        assert ray_to_wad(10**9 - 1) == 0


class TestRayPow:
    """Tests for exponentiation by squaring."""

    def test_zero_exponent(self):
        """x ** 0 is one RAY, even for a zero base."""
        assert ray_pow(RAY // 3, 0) == RAY
        assert ray_pow(0, 0) == RAY

    def test_one_exponent(self):
        assert ray_pow(RAY // 3, 1) == RAY // 3

    def test_exact_powers(self):
        assert ray_pow(RAY // 2, 2) == RAY // 4
        assert ray_pow(RAY // 2, 10) == RAY // 1024
        assert ray_pow(2 * RAY, 8) == 256 * RAY

    def test_matches_repeated_multiplication(self):
        """Squaring stays within a few units of the naive product."""
        base = 988514020352896135356867505
        naive = RAY
        for _ in range(37):
            naive = ray_mul(naive, base)
        assert abs(ray_pow(base, 37) - naive) <= 100

    def test_negative_exponent_rejected(self):
        with pytest.raises(ArithmeticOverflow):
            ray_pow(RAY, -1)

    def test_overflowing_power(self):
        with pytest.raises(ArithmeticOverflow):
            ray_pow(10**10 * RAY, 10)
