"""
Unit tests for the in-memory token ledger.

Tests cover:
1. Token registration
2. Transfers and balance checks
3. Allowances
4. Atomic rollback (including nesting)
"""

import pytest

from dutch_auction.core.errors import InsufficientBalance, InvalidToken
from dutch_auction.core.state import MAX_ALLOWANCE, TokenLedger, TokenLike
from dutch_auction.crypto import ZERO_ADDRESS, address_from_label


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def ledger():
    """Create an empty ledger."""
    return TokenLedger()


@pytest.fixture
def token(ledger):
    return ledger.create_token("TKN", 6)


@pytest.fixture
def alice():
    return address_from_label("alice")


@pytest.fixture
def bob():
    return address_from_label("bob")


# =============================================================================
# Tests
# =============================================================================


class TestTokens:
    """Tests for token registration."""

    def test_create_token(self, ledger, token):
        assert token.decimals() == 6
        assert token.symbol == "TKN"
        assert ledger.get_token(token.address) is token

    def test_implements_token_protocol(self, token):
        assert isinstance(token, TokenLike)

    def test_duplicate_token(self, ledger, token):
        with pytest.raises(InvalidToken):
            ledger.create_token("TKN")

    def test_explicit_address(self, ledger):
        t = ledger.create_token("X", address="0x" + "AA" * 20)
        assert t.address == "0x" + "aa" * 20


class TestTransfers:
    """Tests for balance movements."""

    def test_mint_and_transfer(self, token, alice, bob):
        token.mint(alice, 100)
        token.transfer(alice, bob, 40)
        assert token.balance_of(alice) == 60
        assert token.balance_of(bob) == 40

    def test_insufficient_balance(self, token, alice, bob):
        token.mint(alice, 10)
        with pytest.raises(InsufficientBalance) as exc:
            token.transfer(alice, bob, 11)
        assert exc.value.balance == 10
        assert exc.value.amount == 11
        assert token.balance_of(alice) == 10

    def test_transfer_to_zero_address(self, token, alice):
        token.mint(alice, 10)
        with pytest.raises(InvalidToken):
            token.transfer(alice, ZERO_ADDRESS, 1)

    def test_unknown_token(self, ledger, alice, bob):
        with pytest.raises(InvalidToken):
            ledger.transfer(address_from_label("nope"), alice, bob, 0)

    def test_total_supply(self, ledger, token, alice, bob):
        token.mint(alice, 7)
        token.mint(bob, 3)
        token.transfer(alice, bob, 5)
        assert ledger.total_supply(token.address) == 10


class TestAllowances:
    """Tests for transfer_from."""

    def test_transfer_from_spends_allowance(self, ledger, token, alice, bob):
        token.mint(alice, 100)
        token.approve(alice, bob, 30)
        token.transfer_from(bob, alice, bob, 20)
        assert ledger.allowance(token.address, alice, bob) == 10
        assert token.balance_of(bob) == 20

    def test_transfer_from_without_allowance(self, token, alice, bob):
        token.mint(alice, 100)
        with pytest.raises(InsufficientBalance):
            token.transfer_from(bob, alice, bob, 1)

    def test_max_allowance_not_decremented(self, ledger, token, alice, bob):
        token.mint(alice, 100)
        token.approve(alice, bob)
        token.transfer_from(bob, alice, bob, 50)
        assert ledger.allowance(token.address, alice, bob) == MAX_ALLOWANCE

    def test_self_spend_needs_no_allowance(self, token, alice, bob):
        token.mint(alice, 5)
        token.transfer_from(alice, alice, bob, 5)
        assert token.balance_of(bob) == 5


class TestAtomic:
    """Tests for rollback of failed blocks."""

    def test_rollback_on_exception(self, ledger, token, alice, bob):
        token.mint(alice, 100)
        with pytest.raises(RuntimeError):
            with ledger.atomic():
                token.transfer(alice, bob, 60)
                token.approve(alice, bob, 5)
                raise RuntimeError("boom")
        assert token.balance_of(alice) == 100
        assert token.balance_of(bob) == 0
        assert ledger.allowance(token.address, alice, bob) == 0

    def test_commit_on_success(self, ledger, token, alice, bob):
        token.mint(alice, 100)
        with ledger.atomic():
            token.transfer(alice, bob, 60)
        assert token.balance_of(bob) == 60

    def test_nested_inner_failure_keeps_outer(self, ledger, token, alice, bob):
        token.mint(alice, 100)
        with ledger.atomic():
            token.transfer(alice, bob, 10)
            with pytest.raises(InsufficientBalance):
                with ledger.atomic():
                    token.transfer(alice, bob, 20)
                    token.transfer(alice, bob, 1000)
        assert token.balance_of(alice) == 90
        assert token.balance_of(bob) == 10

    def test_outer_failure_undoes_committed_inner(self, ledger, token, alice, bob):
        token.mint(alice, 100)
        with pytest.raises(RuntimeError):
            with ledger.atomic():
                with ledger.atomic():
                    token.transfer(alice, bob, 30)
                raise RuntimeError("outer")
        assert token.balance_of(alice) == 100
        assert token.balance_of(bob) == 0
