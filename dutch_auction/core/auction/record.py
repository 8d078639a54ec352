"""
Auction records - per sell-token state owned by an AuctionRegistry.

Lifecycle:
    UNINITIALIZED --enable--> ENABLED --kick--> KICKED --take--> PARTIALLY_FILLED
    KICKED / PARTIALLY_FILLED --window ends--> EXPIRED --kick--> KICKED
    any enabled state --disable--> UNINITIALIZED

Invariants:
- 0 <= current_available <= initial_available
- kicked_at == 0 implies initial_available == current_available == 0
- a record without a sell token is not enabled
"""

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any, Dict, NamedTuple, Optional

from dutch_auction.core.math import scaler_for
from dutch_auction.core.state.token import TokenLike
from dutch_auction.crypto import normalize_address


class AuctionState(IntEnum):
    """State of an auction record at a given timestamp."""
    UNINITIALIZED = 0     # Never enabled, or disabled
    ENABLED = 1           # Enabled, never kicked
    KICKED = 2            # Window open, nothing taken yet
    PARTIALLY_FILLED = 3  # Window open, some of the lot taken
    FILLED = 4            # Window open, lot sold out
    EXPIRED = 5           # Window closed


# =============================================================================
# Token References
# =============================================================================


@dataclass(frozen=True)
class TokenRef:
    """
    A participating token and its cached WAD scaler.

    Attributes:
        address: Token address (opaque to the engine beyond hashing)
        scaler: 10 ** (18 - decimals)
        symbol: Display symbol
        token: Collaborator used for balance and transfer calls
    """
    address: str
    scaler: int
    symbol: str = ""
    token: Optional[TokenLike] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_token(cls, token: TokenLike) -> "TokenRef":
        """Read decimals once and cache the scaler."""
        return cls(
            address=normalize_address(token.address),
            scaler=scaler_for(token.decimals()),
            symbol=getattr(token, "symbol", ""),
            token=token,
        )


# =============================================================================
# Records
# =============================================================================


@dataclass
class AuctionRecord:
    """
    One auction per sell token.

    Attributes:
        auction_id: keccak256(from || to || registry)
        from_token: Token being sold
        to_token: Settlement token
        receiver: Address credited with settlement proceeds
        kicked_at: Timestamp of the last kick, 0 if never kicked
        initial_available: Lot size at the last kick (raw units)
        current_available: Unsold part of the lot (raw units)
        minimum_price: Unit price floor (WAD), 0 for none
    """
    auction_id: str
    from_token: TokenRef
    to_token: TokenRef
    receiver: str
    kicked_at: int = 0
    initial_available: int = 0
    current_available: int = 0
    minimum_price: int = 0

    def state(self, now: int, auction_length: int) -> AuctionState:
        """Classify the record at `now`."""
        if self.kicked_at == 0:
            return AuctionState.ENABLED
        if now > self.kicked_at + auction_length:
            return AuctionState.EXPIRED
        if self.current_available == 0:
            return AuctionState.FILLED
        if self.current_available < self.initial_available:
            return AuctionState.PARTIALLY_FILLED
        return AuctionState.KICKED

    def is_active(self, now: int, auction_length: int) -> bool:
        """Whether the window opened by the last kick is still open."""
        return self.kicked_at != 0 and now <= self.kicked_at + auction_length

    def snapshot(self) -> "AuctionRecord":
        """Detached copy for consistent reads and rollback."""
        return replace(self)

    def restore(self, snapshot: "AuctionRecord") -> None:
        """Reset mutable fields from a snapshot."""
        self.kicked_at = snapshot.kicked_at
        self.initial_available = snapshot.initial_available
        self.current_available = snapshot.current_available

    def check_invariants(self) -> None:
        """Raise AssertionError if the accounting invariants are broken."""
        assert 0 <= self.current_available <= self.initial_available, (
            f"current_available {self.current_available} outside [0, {self.initial_available}]"
        )
        if self.kicked_at == 0:
            assert self.initial_available == 0, "unkicked record has a lot"

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        def _ref(ref: TokenRef) -> Dict[str, Any]:
            return {"address": ref.address, "scaler": ref.scaler, "symbol": ref.symbol}

        # uint256 amounts are kept as strings for JSON consumers
        return {
            "auction_id": self.auction_id,
            "from_token": _ref(self.from_token),
            "to_token": _ref(self.to_token),
            "receiver": self.receiver,
            "kicked_at": self.kicked_at,
            "initial_available": str(self.initial_available),
            "current_available": str(self.current_available),
            "minimum_price": str(self.minimum_price),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], tokens: Optional[Dict[str, TokenLike]] = None) -> "AuctionRecord":
        tokens = tokens or {}

        def _ref(raw: Dict[str, Any]) -> TokenRef:
            return TokenRef(
                address=raw["address"],
                scaler=int(raw["scaler"]),
                symbol=raw.get("symbol", ""),
                token=tokens.get(raw["address"]),
            )

        return cls(
            auction_id=data["auction_id"],
            from_token=_ref(data["from_token"]),
            to_token=_ref(data["to_token"]),
            receiver=data["receiver"],
            kicked_at=int(data["kicked_at"]),
            initial_available=int(data["initial_available"]),
            current_available=int(data["current_available"]),
            minimum_price=int(data["minimum_price"]),
        )


class AuctionInfo(NamedTuple):
    """Read-only view returned by AuctionRegistry.auction_info()."""
    from_token: str
    to_token: str
    kicked_at: int
    available: int


__all__ = ["AuctionState", "TokenRef", "AuctionRecord", "AuctionInfo"]
