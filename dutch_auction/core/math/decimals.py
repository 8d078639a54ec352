"""
Decimal normalization between raw token units and the WAD reference scale.

A token with `d` decimals gets scaler 10**(18 - d), so that
raw_amount * scaler is the same economic quantity expressed in WAD.
Scalers are computed once when a token is registered and cached on its
TokenRef.
"""

from dutch_auction.core.errors import ArithmeticOverflow, DivisionByZero, UnsupportedDecimals
from dutch_auction.core.math.fixed_point import MAX_UINT256
from dutch_auction.utils.validation import validate_decimals

WAD_DECIMALS = 18


def scaler_for(decimals: int) -> int:
    """Return 10**(18 - decimals)."""
    valid, _ = validate_decimals(decimals)
    if not valid:
        raise UnsupportedDecimals(decimals)
    return 10 ** (WAD_DECIMALS - decimals)


def to_wad(raw_amount: int, scaler: int) -> int:
    """Scale a raw token amount up to WAD."""
    if scaler <= 0:
        raise DivisionByZero(f"scaler must be positive, got {scaler}")
    wad_amount = raw_amount * scaler
    if raw_amount < 0 or wad_amount > MAX_UINT256:
        raise ArithmeticOverflow(f"to_wad({raw_amount}, {scaler}) outside uint256")
    return wad_amount


def from_wad(wad_amount: int, scaler: int) -> int:
    """Scale a WAD amount down to raw token units, truncating."""
    if scaler <= 0:
        raise DivisionByZero(f"scaler must be positive, got {scaler}")
    if wad_amount < 0 or wad_amount > MAX_UINT256:
        raise ArithmeticOverflow(f"from_wad({wad_amount}) outside uint256")
    return wad_amount // scaler


__all__ = ["WAD_DECIMALS", "scaler_for", "to_wad", "from_wad"]
