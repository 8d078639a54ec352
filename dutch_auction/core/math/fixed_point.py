"""
Fixed-point arithmetic for token amounts and decay factors.

Two scales are in use:
- WAD (1e18): token amounts and unit prices
- RAY (1e27): intermediate precision for the decay curve

All operations truncate toward zero and model 256-bit unsigned words: the
product of two operands is checked against a 512-bit intermediate and the
result against 256 bits. Anything outside raises ArithmeticOverflow instead
of wrapping.
"""

from dutch_auction.core.errors import ArithmeticOverflow, DivisionByZero


# =============================================================================
# Constants
# =============================================================================

WAD = 10**18
RAY = 10**27

# RAY / WAD, used to narrow a RAY factor into WAD
WAD_TO_RAY = 10**9

WORD_BITS = 256
MAX_UINT256 = 2**WORD_BITS - 1
MAX_UINT512 = 2**(2 * WORD_BITS) - 1


# =============================================================================
# Word checks
# =============================================================================


def _check_word(value: int, name: str) -> int:
    if value < 0 or value > MAX_UINT256:
        raise ArithmeticOverflow(f"{name}={value} outside uint256")
    return value


def _mul_div(a: int, b: int, denominator: int, op: str) -> int:
    """(a * b) // denominator on a double-width intermediate."""
    _check_word(a, f"{op}.a")
    _check_word(b, f"{op}.b")
    product = a * b
    if product > MAX_UINT512:
        raise ArithmeticOverflow(f"{op}: intermediate product exceeds 512 bits")
    result = product // denominator
    if result > MAX_UINT256:
        raise ArithmeticOverflow(f"{op}: result {result} exceeds uint256")
    return result


# =============================================================================
# WAD / RAY arithmetic
# =============================================================================


def wad_mul(a: int, b: int) -> int:
    """Multiply two WAD values, truncating."""
    return _mul_div(a, b, WAD, "wad_mul")


def wad_div(a: int, b: int) -> int:
    """Divide two WAD values, truncating."""
    if b == 0:
        raise DivisionByZero("wad_div by zero")
    return _mul_div(a, WAD, b, "wad_div")


def ray_mul(a: int, b: int) -> int:
    """Multiply two RAY values, truncating."""
    return _mul_div(a, b, RAY, "ray_mul")


def ray_pow(base: int, exponent: int) -> int:
    """
    Raise a RAY fraction to a non-negative integer power.

    Square-and-multiply: O(log exponent) ray_mul steps, each losing at most
    one unit (1e-27) to truncation.

    Args:
        base: RAY-scaled base
        exponent: Non-negative integer exponent

    Returns:
        RAY-scaled base ** exponent
    """
    if exponent < 0:
        raise ArithmeticOverflow(f"ray_pow exponent must be >= 0, got {exponent}")
    _check_word(base, "ray_pow.base")

    result = base if exponent % 2 else RAY
    exponent //= 2
    while exponent:
        base = ray_mul(base, base)
        if exponent % 2:
            result = ray_mul(result, base)
        exponent //= 2
    return result


def ray_to_wad(value: int) -> int:
    """Narrow a RAY value into WAD, truncating."""
    return _check_word(value, "ray_to_wad") // WAD_TO_RAY


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "WAD",
    "RAY",
    "WAD_TO_RAY",
    "MAX_UINT256",
    "wad_mul",
    "wad_div",
    "ray_mul",
    "ray_pow",
    "ray_to_wad",
]
