"""Token collaborators and the in-memory ledger"""
from dutch_auction.core.state.token import TokenLike
from dutch_auction.core.state.ledger import TokenLedger, LedgerToken, MAX_ALLOWANCE

__all__ = [
    "TokenLike",
    "TokenLedger",
    "LedgerToken",
    "MAX_ALLOWANCE",
]
