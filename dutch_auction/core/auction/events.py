"""
Events - notifications emitted by the registry.

Every successful state change appends one event to the registry's EventLog
and fans it out to subscribers. Subscribers run after the change is
committed; an exception in a subscriber is logged and does not undo it.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Type, TypeVar

from dutch_auction.utils.logger import get_logger

logger = get_logger("events")


@dataclass(frozen=True)
class AuctionEvent:
    """Base notification."""
    timestamp: int


@dataclass(frozen=True)
class AuctionEnabled(AuctionEvent):
    auction_id: str
    from_token: str
    to_token: str
    registry: str


@dataclass(frozen=True)
class AuctionDisabled(AuctionEvent):
    auction_id: str
    from_token: str
    to_token: str
    registry: str


@dataclass(frozen=True)
class AuctionKicked(AuctionEvent):
    auction_id: str
    from_token: str
    available: int


@dataclass(frozen=True)
class AuctionTaken(AuctionEvent):
    auction_id: str
    from_token: str
    amount_taken: int
    amount_needed: int
    amount_left: int
    taker: str
    receiver: str


@dataclass(frozen=True)
class ConfigUpdated(AuctionEvent):
    field_name: str
    old_value: int
    new_value: int


E = TypeVar("E", bound=AuctionEvent)

Subscriber = Callable[[AuctionEvent], None]


@dataclass
class EventLog:
    """Append-only list of events with optional subscribers."""
    events: List[AuctionEvent] = field(default_factory=list)
    subscribers: List[Subscriber] = field(default_factory=list)

    def emit(self, event: AuctionEvent) -> None:
        self.events.append(event)
        for subscriber in self.subscribers:
            try:
                subscriber(event)
            except Exception as e:
                logger.error(f"Subscriber failed on {type(event).__name__}: {e}")

    def subscribe(self, subscriber: Subscriber) -> None:
        self.subscribers.append(subscriber)

    def of_type(self, kind: Type[E]) -> List[E]:
        return [e for e in self.events if isinstance(e, kind)]

    def last(self, kind: Optional[Type[E]] = None) -> Optional[AuctionEvent]:
        for event in reversed(self.events):
            if kind is None or isinstance(event, kind):
                return event
        return None

    def __iter__(self) -> Iterator[AuctionEvent]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)


__all__ = [
    "AuctionEvent",
    "AuctionEnabled",
    "AuctionDisabled",
    "AuctionKicked",
    "AuctionTaken",
    "ConfigUpdated",
    "EventLog",
    "Subscriber",
]
