"""
Exception types for the auction engine.

Every failure is local and synchronous: an operation that raises one of
these has not mutated any auction record and has not invoked any hook.
"""


class AuctionError(Exception):
    """Base class for all auction engine failures."""
    pass


# =============================================================================
# Configuration / registration
# =============================================================================


class InvalidConfiguration(AuctionError, ValueError):
    """Zero identifiers, zero starting price, or length >= cooldown."""
    pass


class InvalidToken(AuctionError, ValueError):
    """Sell token is unset or equal to the settlement token."""
    pass


class UnsupportedDecimals(AuctionError, ValueError):
    """Token decimal count outside [0, 18]."""

    def __init__(self, decimals: int):
        super().__init__(f"Unsupported token decimals: {decimals} (expected 0..18)")
        self.decimals = decimals


# =============================================================================
# Lifecycle
# =============================================================================


class AlreadyEnabled(AuctionError):
    """An active record already exists for the sell token."""
    pass


class NotEnabled(AuctionError):
    """No active record exists for the sell token."""
    pass


class TooSoon(AuctionError):
    """Kick attempted before the cooldown elapsed."""

    def __init__(self, from_token: str, next_kick_at: int):
        super().__init__(f"Auction for {from_token} cannot be kicked before {next_kick_at}")
        self.from_token = from_token
        self.next_kick_at = next_kick_at


class NothingToKick(AuctionError):
    """Resolved available amount is zero at kick time."""
    pass


class NotKicked(AuctionError):
    """Take attempted on a record that was never kicked."""
    pass


class WindowExpired(NotKicked):
    """Take attempted after the decay window closed."""
    pass


class NothingToTake(AuctionError):
    """Take attempted on a live window whose lot is fully sold."""
    pass


class ZeroNeeded(AuctionError):
    """Settlement amount rounds to zero for the requested fill."""

    def __init__(self, from_token: str, amount_to_take: int):
        super().__init__(
            f"Taking {amount_to_take} of {from_token} would settle for 0"
        )
        self.from_token = from_token
        self.amount_to_take = amount_to_take


class PriceBelowMinimum(AuctionError):
    """Current price is below the record's floor."""

    def __init__(self, price: int, minimum_price: int):
        super().__init__(f"Price {price} below minimum {minimum_price}")
        self.price = price
        self.minimum_price = minimum_price


class ReentrantCall(AuctionError):
    """A hook or callback re-entered a mutating operation on the same record."""
    pass


class AuctionActive(AuctionError):
    """Operation not allowed while the token has an open auction window."""
    pass


# =============================================================================
# Arithmetic / collaborators
# =============================================================================


class ArithmeticOverflow(AuctionError, OverflowError):
    """Fixed-point intermediate or result exceeds 256 bits."""
    pass


class DivisionByZero(AuctionError, ZeroDivisionError):
    """Fixed-point division with a zero divisor."""
    pass


class InsufficientBalance(AuctionError):
    """Ledger transfer exceeds the holder's balance."""

    def __init__(self, token: str, holder: str, balance: int, amount: int):
        super().__init__(
            f"{holder} holds {balance} of {token}, cannot move {amount}"
        )
        self.token = token
        self.holder = holder
        self.balance = balance
        self.amount = amount


__all__ = [
    "AuctionError",
    "InvalidConfiguration",
    "InvalidToken",
    "UnsupportedDecimals",
    "AlreadyEnabled",
    "NotEnabled",
    "TooSoon",
    "NothingToKick",
    "NotKicked",
    "WindowExpired",
    "NothingToTake",
    "ZeroNeeded",
    "PriceBelowMinimum",
    "ReentrantCall",
    "AuctionActive",
    "ArithmeticOverflow",
    "DivisionByZero",
    "InsufficientBalance",
]
