"""
Unit tests for the price decay curve.

Tests cover:
1. Hour and minute factors
2. Exact halving at whole hours
3. Window boundary (inclusive)
4. Monotonic non-increase
5. Shift cap on large hour counts
"""

import pytest

from dutch_auction.core.auction.decay import (
    MAX_HOUR_SHIFT,
    MINUTE_HALF_LIFE,
    PriceDecayCurve,
    decay_factor,
    hour_factor,
    initial_unit_price,
    minute_factor,
)
from dutch_auction.core.math import RAY, WAD, ray_pow

KICK = 1_700_000_000
START_PRICE = 10**21  # 1000 settlement tokens per unit


@pytest.fixture
def curve():
    """One-day window."""
    return PriceDecayCurve(window_length=86400)


class TestFactors:
    """Tests for the decay factor components."""

    def test_hour_factor_halves(self):
        assert hour_factor(0) == RAY
        assert hour_factor(3599) == RAY
        assert hour_factor(3600) == RAY // 2
        assert hour_factor(3 * 3600) == RAY >> 3

    def test_hour_factor_capped(self):
        """Shifts at or beyond the word width give zero."""
        assert hour_factor(MAX_HOUR_SHIFT * 3600) == 0
        assert hour_factor(10**6 * 3600) == 0

    def test_hour_factor_vanishes_before_cap(self):
        """RAY fits in 90 bits, so 90 hours already decays to zero."""
        assert hour_factor(89 * 3600) == 1
        assert hour_factor(90 * 3600) == 0

    def test_minute_factor(self):
        assert minute_factor(0) == RAY
        assert minute_factor(59) == RAY
        assert minute_factor(60) == MINUTE_HALF_LIFE
        assert minute_factor(3600 + 60) == MINUTE_HALF_LIFE

    def test_sixty_minutes_is_one_halving(self):
        """0.5 ** (1/60) composed sixty times is one half."""
        assert abs(ray_pow(MINUTE_HALF_LIFE, 60) - RAY // 2) < 10**12

    def test_decay_factor_endpoints(self):
        assert decay_factor(0) == WAD
        assert decay_factor(3600) == WAD // 2
        assert decay_factor(7200) == WAD // 4

    def test_decay_factor_first_minute(self):
        assert decay_factor(60) == MINUTE_HALF_LIFE // 10**9

    def test_negative_elapsed(self):
        with pytest.raises(ValueError):
            decay_factor(-1)


class TestInitialPrice:
    """Tests for the unit price at kick time."""

    def test_lot_value_spread_over_lot(self):
        """1,000,000 for 1000 units is 1000 per unit."""
        assert initial_unit_price(1_000_000, 1000 * WAD) == 1000 * WAD

    def test_empty_lot(self):
        assert initial_unit_price(1_000_000, 0) == 0


class TestCurve:
    """Tests for PriceDecayCurve.price."""

    def test_price_at_kick(self, curve):
        assert curve.price(KICK, START_PRICE, KICK) == START_PRICE

    def test_price_after_one_hour_is_half(self, curve):
        assert curve.price(KICK, START_PRICE, KICK + 3600) == START_PRICE // 2

    def test_price_constant_within_minute(self, curve):
        assert curve.price(KICK, START_PRICE, KICK + 61) == curve.price(KICK, START_PRICE, KICK + 119)

    def test_window_inclusive(self, curve):
        """The last second of the window still has a price; the next has none."""
        assert curve.price(KICK, START_PRICE, KICK + 86400) > 0
        assert curve.price(KICK, START_PRICE, KICK + 86401) == 0

    def test_never_kicked(self, curve):
        assert curve.price(0, START_PRICE, KICK) == 0

    def test_empty_lot(self, curve):
        assert curve.price(KICK, START_PRICE, KICK, available=0) == 0

    def test_now_before_kick(self, curve):
        with pytest.raises(ValueError):
            curve.price(KICK, START_PRICE, KICK - 1)

    def test_monotonic_non_increasing(self, curve):
        """Price never rises as time advances within the window."""
        previous = None
        for elapsed in range(0, 86401, 60):
            price = curve.price(KICK, START_PRICE, KICK + elapsed)
            if previous is not None:
                assert price <= previous
            previous = price

    def test_long_window_decays_to_zero(self):
        """With a window beyond 256 hours the price reaches zero."""
        long_curve = PriceDecayCurve(window_length=300 * 3600)
        assert long_curve.price(KICK, START_PRICE, KICK + 256 * 3600) == 0

    def test_is_open(self, curve):
        assert curve.is_open(KICK, KICK)
        assert curve.is_open(KICK, KICK + 86400)
        assert not curve.is_open(KICK, KICK + 86401)
        assert not curve.is_open(0, KICK)
        assert curve.ends_at(KICK) == KICK + 86400

    def test_schedule(self, curve):
        points = curve.schedule(START_PRICE)
        assert len(points) == 25
        assert points[0] == (0, START_PRICE)
        assert points[1] == (3600, START_PRICE // 2)

    def test_schedule_bad_step(self, curve):
        with pytest.raises(ValueError):
            curve.schedule(START_PRICE, step=0)
