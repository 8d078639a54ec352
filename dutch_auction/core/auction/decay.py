"""
Price Decay Curve - hourly halving with per-minute interpolation.

The unit price of a kicked lot halves every full hour. Inside an hour it
steps down once per whole minute by MINUTE_HALF_LIFE = 0.5 ** (1/60), so
that sixty steps compose to exactly one more halving:

    hours   = elapsed // 3600
    minutes = (elapsed % 3600) // 60
    factor  = (RAY >> hours) * MINUTE_HALF_LIFE ** minutes      (RAY)
    price   = starting_unit_price * factor / RAY                (WAD)

The whole-hour part is a right shift and the in-hour part a bounded
(< 60) ray_pow, which keeps the cost constant over the whole window.
Reference prices depend on this exact decomposition and truncation order.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from dutch_auction.core.math import (
    RAY,
    WAD,
    ray_mul,
    ray_pow,
    ray_to_wad,
    wad_div,
    wad_mul,
)
from dutch_auction.utils.logger import get_logger

logger = get_logger("decay")


# =============================================================================
# Constants
# =============================================================================

SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60

# 0.5 ** (1/60) in RAY
MINUTE_HALF_LIFE = 988514020352896135356867505

# RAY has 90 significant bits; shifts at or beyond the word width are
# treated as a fully decayed price rather than relying on shift semantics.
MAX_HOUR_SHIFT = 256


# =============================================================================
# Factors
# =============================================================================


def hour_factor(elapsed: int) -> int:
    """RAY factor for the whole hours in `elapsed`."""
    hours = elapsed // SECONDS_PER_HOUR
    if hours >= MAX_HOUR_SHIFT:
        return 0
    return RAY >> hours


def minute_factor(elapsed: int) -> int:
    """RAY factor for the whole minutes left over after the last full hour."""
    minutes = (elapsed % SECONDS_PER_HOUR) // SECONDS_PER_MINUTE
    return ray_pow(MINUTE_HALF_LIFE, minutes)


def decay_factor(elapsed: int) -> int:
    """
    Combined decay factor in WAD.

    decay_factor(0) == WAD and decay_factor(3600) == WAD // 2 exactly.
    """
    if elapsed < 0:
        raise ValueError(f"elapsed must be >= 0, got {elapsed}")
    return ray_to_wad(ray_mul(hour_factor(elapsed), minute_factor(elapsed)))


def initial_unit_price(starting_price: int, available_wad: int) -> int:
    """
    Unit price at kick time.

    `starting_price` is the value of the whole lot in whole settlement tokens;
    spreading it over the WAD-normalized lot gives a WAD price per unit sold.
    Returns 0 for an empty lot.
    """
    if available_wad == 0:
        return 0
    return wad_div(starting_price * WAD, available_wad)


# =============================================================================
# Curve
# =============================================================================


@dataclass(frozen=True)
class PriceDecayCurve:
    """
    Dutch auction price curve over a window of `window_length` seconds.

    The window is inclusive: a price is defined for
    kicked_at <= now <= kicked_at + window_length and is 0 afterwards.
    """
    window_length: int

    def price(
        self,
        kicked_at: int,
        starting_unit_price: int,
        now: int,
        available: int = 1,
    ) -> int:
        """
        Unit price (WAD) at `now`.

        Args:
            kicked_at: Kick timestamp, 0 if never kicked
            starting_unit_price: WAD price at elapsed == 0
            now: Evaluation timestamp
            available: Remaining lot; 0 yields price 0

        Returns:
            Decayed unit price, or 0 outside the window
        """
        if kicked_at == 0 or available == 0:
            return 0
        if now < kicked_at:
            raise ValueError(f"now={now} precedes kick at {kicked_at}")

        elapsed = now - kicked_at
        if elapsed > self.window_length:
            return 0

        result = wad_mul(starting_unit_price, decay_factor(elapsed))
        logger.debug(f"price elapsed={elapsed}s start={starting_unit_price} -> {result}")
        return result

    def is_open(self, kicked_at: int, now: int) -> bool:
        """Whether `now` falls inside the window opened at `kicked_at`."""
        return kicked_at != 0 and kicked_at <= now <= kicked_at + self.window_length

    def ends_at(self, kicked_at: int) -> int:
        """Last timestamp with a defined price."""
        return kicked_at + self.window_length

    def schedule(
        self,
        starting_unit_price: int,
        step: int = SECONDS_PER_HOUR,
        until: Optional[int] = None,
    ) -> List[Tuple[int, int]]:
        """
        Sample the curve as (elapsed, price) pairs.

        Used by the CLI to print decay tables.
        """
        if step <= 0:
            raise ValueError(f"step must be positive, got {step}")
        end = self.window_length if until is None else min(until, self.window_length)
        points = []
        for elapsed in range(0, end + 1, step):
            points.append((elapsed, wad_mul(starting_unit_price, decay_factor(elapsed))))
        return points


__all__ = [
    "MINUTE_HALF_LIFE",
    "SECONDS_PER_HOUR",
    "SECONDS_PER_MINUTE",
    "MAX_HOUR_SHIFT",
    "PriceDecayCurve",
    "hour_factor",
    "minute_factor",
    "decay_factor",
    "initial_unit_price",
]
