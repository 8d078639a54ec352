"""
Shared fixtures: an in-memory ledger with a settlement token (WANT) and a
sell token (SELL), a funded taker and a registry wired to them.
"""

import pytest

from dutch_auction.core.auction import AuctionRegistry
from dutch_auction.core.config import AuctionConfig
from dutch_auction.core.state import TokenLedger
from dutch_auction.crypto import address_from_label

START = 1_700_000_000
LOT = 1000 * 10**18


@pytest.fixture
def t0():
    """Kick timestamp used across tests."""
    return START


@pytest.fixture
def ledger():
    """Create an empty in-memory ledger."""
    return TokenLedger()


@pytest.fixture
def want(ledger):
    return ledger.create_token("WANT", 18)


@pytest.fixture
def sell(ledger):
    return ledger.create_token("SELL", 18)


@pytest.fixture
def receiver():
    return address_from_label("receiver")


@pytest.fixture
def taker():
    return address_from_label("taker")


@pytest.fixture
def config():
    """Default one-day window, five-day cooldown, 1M lot value."""
    return AuctionConfig.create(starting_price=1_000_000)


@pytest.fixture
def registry(want, receiver, config, ledger):
    return AuctionRegistry(want, receiver, config, ledger=ledger, clock=lambda: START)


@pytest.fixture
def funded_taker(registry, want, taker):
    """Taker holding enough WANT for the whole lot, with approval."""
    want.mint(taker, 10**6 * 10**18)
    want.approve(taker, registry.address)
    return taker


@pytest.fixture
def kicked(registry, sell, funded_taker, t0):
    """Registry with SELL enabled and a 1000 SELL lot kicked at t0."""
    registry.enable(sell, now=t0)
    sell.mint(registry.address, LOT)
    registry.kick(sell, now=t0)
    return registry
