"""
Fixed-point math and decimal normalization.
"""

from dutch_auction.core.math.fixed_point import (
    WAD,
    RAY,
    WAD_TO_RAY,
    MAX_UINT256,
    wad_mul,
    wad_div,
    ray_mul,
    ray_pow,
    ray_to_wad,
)

from dutch_auction.core.math.decimals import (
    WAD_DECIMALS,
    scaler_for,
    to_wad,
    from_wad,
)

__all__ = [
    # Fixed point
    "WAD",
    "RAY",
    "WAD_TO_RAY",
    "MAX_UINT256",
    "wad_mul",
    "wad_div",
    "ray_mul",
    "ray_pow",
    "ray_to_wad",
    # Decimals
    "WAD_DECIMALS",
    "scaler_for",
    "to_wad",
    "from_wad",
]
