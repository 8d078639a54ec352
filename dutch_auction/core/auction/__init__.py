"""
Dutch Auction Module.

This module provides the auction lifecycle:
- Price decay curve (hourly halving, per-minute steps)
- Auction records and states
- Hook and taker callback interfaces
- Event notifications
- The registry state machine
"""

from dutch_auction.core.auction.decay import (
    PriceDecayCurve,
    decay_factor,
    hour_factor,
    minute_factor,
    initial_unit_price,
    MINUTE_HALF_LIFE,
    MAX_HOUR_SHIFT,
)

from dutch_auction.core.auction.record import (
    AuctionRecord,
    AuctionState,
    AuctionInfo,
    TokenRef,
)

from dutch_auction.core.auction.hooks import (
    HookAdapter,
    HookConfig,
    Taker,
    NO_HOOK,
)

from dutch_auction.core.auction.events import (
    AuctionEvent,
    AuctionEnabled,
    AuctionDisabled,
    AuctionKicked,
    AuctionTaken,
    ConfigUpdated,
    EventLog,
)

from dutch_auction.core.auction.registry import AuctionRegistry

__all__ = [
    # Decay
    "PriceDecayCurve",
    "decay_factor",
    "hour_factor",
    "minute_factor",
    "initial_unit_price",
    "MINUTE_HALF_LIFE",
    "MAX_HOUR_SHIFT",
    # Records
    "AuctionRecord",
    "AuctionState",
    "AuctionInfo",
    "TokenRef",
    # Hooks
    "HookAdapter",
    "HookConfig",
    "Taker",
    "NO_HOOK",
    # Events
    "AuctionEvent",
    "AuctionEnabled",
    "AuctionDisabled",
    "AuctionKicked",
    "AuctionTaken",
    "ConfigUpdated",
    "EventLog",
    # Registry
    "AuctionRegistry",
]
