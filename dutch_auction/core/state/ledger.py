"""
Ledger - in-memory multi-token balance book.

Conceptual Background:
---------------------
The auction engine treats tokens as external collaborators. TokenLedger is
the reference collaborator used by the CLI, the simulator and the tests:

1. **Balances**: raw amounts per (token, holder)
2. **Allowances**: raw amounts per (token, owner, spender)
3. **Journal**: every mutation inside `atomic()` is recorded so the block
   can be undone if it raises

Rollback:
--------
`atomic()` keeps a per-thread undo journal instead of a global snapshot, so
a failed operation on one thread never clobbers transfers made concurrently
by another thread.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from dutch_auction.core.errors import InsufficientBalance, InvalidToken
from dutch_auction.core.math import MAX_UINT256
from dutch_auction.crypto import address_from_label, is_zero_address, normalize_address
from dutch_auction.utils.logger import get_logger

logger = get_logger("ledger")

MAX_ALLOWANCE = MAX_UINT256


# =============================================================================
# Tokens
# =============================================================================


@dataclass(eq=False)
class LedgerToken:
    """
    A token whose balances live in a TokenLedger.

    Implements the TokenLike protocol.
    """
    ledger: "TokenLedger"
    address: str
    symbol: str
    token_decimals: int

    def decimals(self) -> int:
        return self.token_decimals

    def balance_of(self, holder: str) -> int:
        return self.ledger.balance_of(self.address, holder)

    def transfer(self, sender: str, to: str, amount: int) -> None:
        self.ledger.transfer(self.address, sender, to, amount)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        self.ledger.transfer_from(self.address, spender, owner, to, amount)

    def approve(self, owner: str, spender: str, amount: int = MAX_ALLOWANCE) -> None:
        self.ledger.approve(self.address, owner, spender, amount)

    def mint(self, holder: str, amount: int) -> None:
        self.ledger.mint(self.address, holder, amount)

    def __repr__(self) -> str:
        return f"LedgerToken({self.symbol}, {self.address[:10]}..., decimals={self.token_decimals})"


# =============================================================================
# Ledger
# =============================================================================


@dataclass
class _Journal:
    entries: List[Tuple[str, tuple, int]] = field(default_factory=list)


class TokenLedger:
    """
    Balance and allowance book for any number of tokens.

    Attributes:
        tokens: Mapping of token address to LedgerToken
        balances: (token, holder) -> raw amount
        allowances: (token, owner, spender) -> raw amount
    """

    def __init__(self):
        self.tokens: Dict[str, LedgerToken] = {}
        self.balances: Dict[Tuple[str, str], int] = {}
        self.allowances: Dict[Tuple[str, str, str], int] = {}

        self._lock = threading.RLock()
        self._local = threading.local()

    # =========================================================================
    # Token Registration
    # =========================================================================

    def create_token(self, symbol: str, decimals: int = 18, address: Optional[str] = None) -> LedgerToken:
        """
        Register a new token.

        Args:
            symbol: Display symbol
            decimals: Raw unit decimals
            address: Optional explicit address; derived from the symbol otherwise

        Returns:
            The new LedgerToken
        """
        address = normalize_address(address) if address else address_from_label(f"token:{symbol}")
        with self._lock:
            if address in self.tokens:
                raise InvalidToken(f"Token already registered at {address}")
            token = LedgerToken(ledger=self, address=address, symbol=symbol, token_decimals=decimals)
            self.tokens[address] = token
        logger.debug(f"Created token {symbol} at {address} ({decimals} decimals)")
        return token

    def get_token(self, address: str) -> Optional[LedgerToken]:
        return self.tokens.get(normalize_address(address))

    # =========================================================================
    # Queries
    # =========================================================================

    def balance_of(self, token: str, holder: str) -> int:
        with self._lock:
            return self.balances.get((token, normalize_address(holder)), 0)

    def allowance(self, token: str, owner: str, spender: str) -> int:
        with self._lock:
            return self.allowances.get((token, normalize_address(owner), normalize_address(spender)), 0)

    def total_supply(self, token: str) -> int:
        with self._lock:
            return sum(v for (t, _), v in self.balances.items() if t == token)

    # =========================================================================
    # Mutations
    # =========================================================================

    def mint(self, token: str, holder: str, amount: int) -> None:
        """Credit `amount` to `holder` out of thin air."""
        holder = normalize_address(holder)
        with self._lock:
            self._credit(token, holder, amount)

    def transfer(self, token: str, sender: str, to: str, amount: int) -> None:
        """Move `amount` from `sender` to `to`."""
        sender, to = normalize_address(sender), normalize_address(to)
        if is_zero_address(to):
            raise InvalidToken("Transfer to the zero address")
        with self._lock:
            self._move(token, sender, to, amount)
        logger.debug(f"transfer {amount} {self._symbol(token)} {sender[:10]}... -> {to[:10]}...")

    def transfer_from(self, token: str, spender: str, owner: str, to: str, amount: int) -> None:
        """Move `amount` from `owner` to `to`, spending `spender`'s allowance."""
        spender, owner, to = normalize_address(spender), normalize_address(owner), normalize_address(to)
        if is_zero_address(to):
            raise InvalidToken("Transfer to the zero address")
        with self._lock:
            if spender != owner:
                key = (token, owner, spender)
                allowed = self.allowances.get(key, 0)
                if allowed < amount:
                    raise InsufficientBalance(f"{self._symbol(token)} allowance", spender, allowed, amount)
                if allowed != MAX_ALLOWANCE:
                    self._set_allowance(key, allowed - amount)
            self._move(token, owner, to, amount)
        logger.debug(f"transfer_from {amount} {self._symbol(token)} {owner[:10]}... -> {to[:10]}...")

    def approve(self, token: str, owner: str, spender: str, amount: int = MAX_ALLOWANCE) -> None:
        with self._lock:
            self._set_allowance((token, normalize_address(owner), normalize_address(spender)), amount)

    # =========================================================================
    # Atomic Blocks
    # =========================================================================

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Undo every mutation made by this thread inside the block if it raises.

        Blocks nest; an inner failure caught by the caller leaves the outer
        block's earlier entries intact.
        """
        stack = self._journals()
        journal = _Journal()
        stack.append(journal)
        try:
            yield
        except BaseException:
            stack.pop()
            self._undo(journal)
            raise
        else:
            stack.pop()
            if stack:
                stack[-1].entries.extend(journal.entries)

    def _journals(self) -> List[_Journal]:
        if not hasattr(self._local, "journals"):
            self._local.journals = []
        return self._local.journals

    def _record(self, kind: str, key: tuple, delta: int) -> None:
        stack = self._journals()
        if stack:
            stack[-1].entries.append((kind, key, delta))

    def _undo(self, journal: _Journal) -> None:
        with self._lock:
            for kind, key, delta in reversed(journal.entries):
                book = self.balances if kind == "balance" else self.allowances
                book[key] = book.get(key, 0) - delta
        if journal.entries:
            logger.warning(f"Rolled back {len(journal.entries)} ledger entries")

    # =========================================================================
    # Internals (caller holds the lock)
    # =========================================================================

    def _credit(self, token: str, holder: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"amount must be >= 0, got {amount}")
        key = (token, holder)
        self._record("balance", key, amount)
        self.balances[key] = self.balances.get(key, 0) + amount

    def _move(self, token: str, sender: str, to: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"amount must be >= 0, got {amount}")
        if token not in self.tokens:
            raise InvalidToken(f"Unknown token {token}")
        src = (token, sender)
        balance = self.balances.get(src, 0)
        if balance < amount:
            raise InsufficientBalance(self._symbol(token), sender, balance, amount)
        self._record("balance", src, -amount)
        self.balances[src] = balance - amount
        self._credit(token, to, amount)

    def _set_allowance(self, key: Tuple[str, str, str], amount: int) -> None:
        self._record("allowance", key, amount - self.allowances.get(key, 0))
        self.allowances[key] = amount

    def _symbol(self, token: str) -> str:
        t = self.tokens.get(token)
        return t.symbol if t else token


__all__ = ["TokenLedger", "LedgerToken", "MAX_ALLOWANCE"]
