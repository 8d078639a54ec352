"""
Auction Registry - Dutch auction state machine for selling token balances.

This module owns every AuctionRecord of one deployment and implements:
- enable / disable of sell tokens against a fixed settlement token (want)
- kick: snapshot the sellable balance and open a decay window
- take: buy part or all of the lot at the current decayed price
- price / amount_needed / kickable views

Per-record operations are serialized with one lock per auction id and are
non-reentrant: a hook or taker callback that calls back into a mutating
operation on the same record fails with ReentrantCall. A failed operation
restores the record (and the ledger, when it supports atomic()) so no
partial state survives.

Time is always supplied by the caller (`now=`) or by the injected clock;
the registry never schedules anything itself.
"""

import threading
import time
from contextlib import contextmanager, nullcontext
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Union

from dutch_auction.core.auction.decay import PriceDecayCurve, initial_unit_price
from dutch_auction.core.auction.events import (
    AuctionDisabled,
    AuctionEnabled,
    AuctionKicked,
    AuctionTaken,
    ConfigUpdated,
    EventLog,
)
from dutch_auction.core.auction.hooks import NO_HOOK, HookConfig, Taker
from dutch_auction.core.auction.record import AuctionInfo, AuctionRecord, AuctionState, TokenRef
from dutch_auction.core.config import AuctionConfig
from dutch_auction.core.errors import (
    AlreadyEnabled,
    ArithmeticOverflow,
    AuctionActive,
    AuctionError,
    InvalidConfiguration,
    InvalidToken,
    NotEnabled,
    NothingToKick,
    NothingToTake,
    NotKicked,
    PriceBelowMinimum,
    ReentrantCall,
    TooSoon,
    WindowExpired,
    ZeroNeeded,
)
from dutch_auction.core.math import from_wad, to_wad, wad_mul
from dutch_auction.core.state.token import TokenLike
from dutch_auction.crypto import compute_auction_id, is_zero_address, normalize_address, random_address
from dutch_auction.utils.logger import get_logger
from dutch_auction.utils.validation import validate_address, validate_amount, validate_timestamp

logger = get_logger("registry")

TokenArg = Union[TokenLike, TokenRef, str]


class AuctionRegistry:
    """
    Registry of Dutch auctions selling tokens for one settlement token.

    Attributes:
        address: Identity of this registry (part of every auction id)
        want: Settlement token every auction is paid in
        receiver: Default address credited with settlement proceeds
        config: Timing and pricing parameters
        auctions: auction_id -> AuctionRecord
        events: Notifications emitted so far
    """

    def __init__(
        self,
        want: TokenLike,
        receiver: str,
        config: AuctionConfig,
        *,
        address: Optional[str] = None,
        hook: HookConfig = NO_HOOK,
        ledger=None,
        clock: Optional[Callable[[], int]] = None,
        storage=None,
    ):
        """
        Initialize the registry.

        Args:
            want: Settlement token
            receiver: Default proceeds receiver
            config: Auction parameters
            address: Registry address; random if omitted
            hook: Optional strategy hook and its enabled callbacks
            ledger: Optional collaborator providing atomic() for rollback
            clock: Timestamp source used when `now` is not passed
            storage: Optional StorageManager; every change is persisted
        """
        if want is None or is_zero_address(want.address):
            raise InvalidConfiguration("Settlement token must be set")
        valid, err = validate_address(receiver, "receiver")
        if not valid or is_zero_address(receiver):
            raise InvalidConfiguration(err or "Receiver must be set")

        self.address = normalize_address(address) if address else random_address()
        self.want = TokenRef.from_token(want)
        self.receiver = normalize_address(receiver)
        self.config = config
        self.hook = hook
        self.ledger = ledger
        self.clock = clock or (lambda: int(time.time()))
        self.storage = storage

        # auction_id -> record, plus from-token address -> auction_id
        self.auctions: Dict[str, AuctionRecord] = {}
        self._by_token: Dict[str, str] = {}
        self._order: List[str] = []

        # Serialization
        self._registry_lock = threading.RLock()
        self._record_locks: Dict[str, threading.RLock] = {}
        self._busy: Set[str] = set()

        self.events = EventLog()

        if storage is not None:
            storage.save_registry(self.address, self.want.address, self.receiver, self.config)

        logger.info(
            f"AuctionRegistry {self.address[:10]}... selling into {self.want.symbol or self.want.address} "
            f"(length={config.auction_length}s, cooldown={config.auction_cooldown}s)"
        )

    # =========================================================================
    # Identifiers
    # =========================================================================

    @property
    def curve(self) -> PriceDecayCurve:
        return PriceDecayCurve(window_length=self.config.auction_length)

    def get_auction_id(self, from_token: TokenArg) -> str:
        """
        Compute the auction id of a sell token in this registry.

        auction_id = keccak256(from || want || registry)
        """
        return compute_auction_id(self._address_of(from_token), self.want.address, self.address)

    @staticmethod
    def _address_of(token: TokenArg) -> str:
        if token is None:
            raise InvalidToken("Token must be set")
        address = token if isinstance(token, str) else token.address
        valid, err = validate_address(address, "token")
        if not valid:
            raise InvalidToken(err)
        return normalize_address(address)

    def _now(self, now: Optional[int]) -> int:
        now = self.clock() if now is None else now
        valid, err = validate_timestamp(now, "now")
        if not valid:
            raise ValueError(err)
        return now

    # =========================================================================
    # Serialization Helpers
    # =========================================================================

    def _lock_for(self, auction_id: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._record_locks.get(auction_id)
            if lock is None:
                lock = threading.RLock()
                self._record_locks[auction_id] = lock
            return lock

    def _find(self, from_token: TokenArg) -> Optional[AuctionRecord]:
        with self._registry_lock:
            auction_id = self._by_token.get(self._address_of(from_token))
            return self.auctions.get(auction_id) if auction_id else None

    def _snapshot(self, from_token: TokenArg) -> Optional[AuctionRecord]:
        """Consistent copy of a record, or None if not enabled."""
        record = self._find(from_token)
        if record is None:
            return None
        with self._lock_for(record.auction_id):
            return record.snapshot()

    @contextmanager
    def _mutating(self, from_token: TokenArg, operation: str) -> Iterator[AuctionRecord]:
        """
        Exclusive, non-reentrant, all-or-nothing access to one record.

        On any exception the record fields are restored and ledger changes
        made inside the block are undone before the exception propagates.
        """
        record = self._find(from_token)
        if record is None:
            self._reject(NotEnabled(f"{operation}: no auction for {self._address_of(from_token)}"))

        auction_id = record.auction_id
        with self._lock_for(auction_id):
            if auction_id in self._busy:
                self._reject(ReentrantCall(f"{operation} re-entered auction {auction_id[:10]}..."))
            # Disabled, and possibly re-enabled, while we waited for the lock
            with self._registry_lock:
                record = self.auctions.get(auction_id)
            if record is None:
                self._reject(NotEnabled(f"{operation}: auction {auction_id[:10]}... was disabled"))

            self._busy.add(record.auction_id)
            saved = record.snapshot()
            try:
                with self._atomic():
                    yield record
            except BaseException as e:
                record.restore(saved)
                if not isinstance(e, AuctionError):
                    logger.warning(f"{operation} on {record.auction_id[:10]}... rolled back: {type(e).__name__}: {e}")
                raise
            finally:
                self._busy.discard(record.auction_id)

    def _atomic(self):
        atomic = getattr(self.ledger, "atomic", None)
        return atomic() if atomic is not None else nullcontext()

    @staticmethod
    def _reject(error: AuctionError):
        logger.warning(f"{type(error).__name__}: {error}")
        raise error

    def _persist(self, record: AuctionRecord) -> None:
        if self.storage is not None:
            self.storage.save_record(record)

    # =========================================================================
    # Enable / Disable
    # =========================================================================

    def enable(
        self,
        from_token: TokenLike,
        receiver: Optional[str] = None,
        minimum_price: int = 0,
        now: Optional[int] = None,
    ) -> str:
        """
        Enable an auction for a sell token.

        Args:
            from_token: Token to sell (its decimals are read once here)
            receiver: Proceeds receiver; defaults to the registry receiver
            minimum_price: Unit price floor in WAD (used with has_minimum_price)
            now: Timestamp for the notification

        Returns:
            The auction id

        Raises:
            InvalidToken: unset token, or equal to the settlement token
            AlreadyEnabled: an active record exists
            UnsupportedDecimals: token has more than 18 decimals
        """
        now = self._now(now)
        if from_token is None or is_zero_address(from_token.address):
            self._reject(InvalidToken("Cannot enable the zero token"))
        from_address = self._address_of(from_token)
        if from_address == self.want.address:
            self._reject(InvalidToken("Cannot sell the settlement token"))

        if receiver is not None:
            valid, err = validate_address(receiver, "receiver")
            if not valid or is_zero_address(receiver):
                self._reject(InvalidConfiguration(err or "Receiver must be set"))
        valid, err = validate_amount(minimum_price, "minimum_price")
        if not valid:
            self._reject(InvalidConfiguration(err))

        auction_id = self.get_auction_id(from_address)

        with self._registry_lock:
            if auction_id in self.auctions:
                self._reject(AlreadyEnabled(f"Auction {auction_id[:10]}... already enabled"))

            record = AuctionRecord(
                auction_id=auction_id,
                from_token=TokenRef.from_token(from_token),
                to_token=self.want,
                receiver=normalize_address(receiver) if receiver else self.receiver,
                minimum_price=minimum_price,
            )
            self._persist(record)
            self.auctions[auction_id] = record
            self._by_token[from_address] = auction_id
            self._order.append(auction_id)

        logger.info(f"Enabled auction {auction_id[:10]}... for {record.from_token.symbol or from_address}")
        self.events.emit(AuctionEnabled(
            timestamp=now,
            auction_id=auction_id,
            from_token=from_address,
            to_token=self.want.address,
            registry=self.address,
        ))
        return auction_id

    def disable(self, from_token: TokenArg, now: Optional[int] = None) -> None:
        """
        Disable an auction and forget its record.

        Balances held by the registry are not moved; see sweep().

        Raises:
            NotEnabled: no active record exists
        """
        now = self._now(now)
        with self._mutating(from_token, "disable") as record:
            with self._registry_lock:
                if self.storage is not None:
                    self.storage.delete_record(record.auction_id)
                del self.auctions[record.auction_id]
                del self._by_token[record.from_token.address]
                self._order.remove(record.auction_id)

        logger.info(f"Disabled auction {record.auction_id[:10]}...")
        self.events.emit(AuctionDisabled(
            timestamp=now,
            auction_id=record.auction_id,
            from_token=record.from_token.address,
            to_token=self.want.address,
            registry=self.address,
        ))

    # =========================================================================
    # Kick
    # =========================================================================

    def _too_soon(self, record: AuctionRecord, now: int) -> bool:
        if record.kicked_at == 0:
            return False
        if self.config.has_cooldown:
            return now <= record.kicked_at + self.config.auction_cooldown
        return now <= record.kicked_at + self.config.auction_length

    def _next_kick_at(self, record: AuctionRecord) -> int:
        gate = self.config.auction_cooldown if self.config.has_cooldown else self.config.auction_length
        return record.kicked_at + gate + 1

    def kickable(self, from_token: TokenArg, now: Optional[int] = None) -> int:
        """
        Amount a kick would make available right now.

        Returns 0 while the cooldown runs or if the token is not enabled.
        """
        now = self._now(now)
        record = self._snapshot(from_token)
        if record is None or self._too_soon(record, now):
            return 0
        if self.hook.wants("kickable"):
            return self.hook.hook.kickable(record.from_token.address)
        return self._registry_balance(record.from_token)

    def _registry_balance(self, token: TokenRef) -> int:
        if token.token is None:
            raise InvalidToken(f"No collaborator bound for {token.address}")
        return token.token.balance_of(self.address)

    def kick(self, from_token: TokenArg, now: Optional[int] = None) -> int:
        """
        Open a new decay window for the current sellable balance.

        Returns:
            The amount made available

        Raises:
            NotEnabled: token not enabled
            TooSoon: cooldown still running
            NothingToKick: nothing to sell
            ValueError: now is 0
        """
        now = self._now(now)
        # kicked_at == 0 marks a record that was never kicked
        if now == 0:
            raise ValueError("now must be > 0 to kick")
        with self._mutating(from_token, "kick") as record:
            if self._too_soon(record, now):
                self._reject(TooSoon(record.from_token.address, self._next_kick_at(record)))

            if self.hook.wants("kick"):
                available = self.hook.hook.auction_kicked(record.from_token.address)
            else:
                available = self._registry_balance(record.from_token)

            valid, err = validate_amount(available, "available")
            if not valid:
                raise ArithmeticOverflow(err)
            if available == 0:
                self._reject(NothingToKick(f"Nothing to kick for {record.from_token.address}"))
            # The lot must be priceable in WAD
            to_wad(available, record.from_token.scaler)

            record.kicked_at = now
            record.initial_available = available
            record.current_available = available
            self._persist(record)

        logger.info(f"Kicked auction {record.auction_id[:10]}... with {available} available at {now}")
        self.events.emit(AuctionKicked(
            timestamp=now,
            auction_id=record.auction_id,
            from_token=record.from_token.address,
            available=available,
        ))
        return available

    # =========================================================================
    # Pricing
    # =========================================================================

    def _price(self, record: AuctionRecord, now: int) -> int:
        if record.kicked_at == 0 or record.initial_available == 0:
            return 0
        starting_unit_price = initial_unit_price(
            self.config.starting_price,
            to_wad(record.initial_available, record.from_token.scaler),
        )
        return self.curve.price(record.kicked_at, starting_unit_price, now, record.initial_available)

    def _amount_needed(self, record: AuctionRecord, amount_to_take: int, price: int) -> int:
        if price == 0:
            return 0
        wad_amount = to_wad(amount_to_take, record.from_token.scaler)
        return from_wad(wad_mul(wad_amount, price), self.want.scaler)

    def price(self, from_token: TokenArg, now: Optional[int] = None) -> int:
        """
        Current unit price of the sell token in settlement terms (WAD).

        Returns 0 if not enabled, never kicked, or outside the window.
        """
        now = self._now(now)
        record = self._snapshot(from_token)
        if record is None:
            return 0
        return self._price(record, now)

    def amount_needed(self, from_token: TokenArg, amount_to_take: int, now: Optional[int] = None) -> int:
        """
        Settlement tokens (raw units) needed to buy `amount_to_take`.

        Truncates toward zero; 0 when the price is 0.
        """
        now = self._now(now)
        valid, err = validate_amount(amount_to_take, "amount_to_take")
        if not valid:
            raise ValueError(err)
        record = self._snapshot(from_token)
        if record is None:
            return 0
        return self._amount_needed(record, amount_to_take, self._price(record, now))

    # =========================================================================
    # Take
    # =========================================================================

    def take(
        self,
        from_token: TokenArg,
        max_amount: Optional[int] = None,
        receiver: Optional[str] = None,
        *,
        caller: str,
        now: Optional[int] = None,
        callback: Optional[Taker] = None,
        data: bytes = b"",
    ) -> int:
        """
        Buy up to `max_amount` of the current lot at the decayed price.

        Sell tokens go from the registry to `receiver` (default: caller);
        settlement tokens are pulled from `caller` to the record's receiver.

        Args:
            from_token: Token being bought
            max_amount: Upper bound on the fill; None takes everything left
            receiver: Recipient of the bought tokens
            caller: Payer of the settlement amount
            now: Timestamp of the take
            callback: Optional taker invoked between delivery and payment
            data: Opaque bytes forwarded to the callback

        Returns:
            Amount of sell token taken

        Raises:
            NotEnabled, NotKicked, WindowExpired, NothingToTake,
            PriceBelowMinimum, ZeroNeeded
        """
        now = self._now(now)
        valid, err = validate_address(caller, "caller")
        if not valid:
            raise InvalidConfiguration(err)
        caller = normalize_address(caller)
        receiver = normalize_address(receiver) if receiver else caller
        if max_amount is not None:
            valid, err = validate_amount(max_amount, "max_amount")
            if not valid:
                raise ValueError(err)

        with self._mutating(from_token, "take") as record:
            if record.kicked_at == 0:
                self._reject(NotKicked(f"Auction {record.auction_id[:10]}... was never kicked"))
            if now > record.kicked_at + self.config.auction_length:
                self._reject(WindowExpired(f"Auction {record.auction_id[:10]}... window closed"))
            if now < record.kicked_at:
                self._reject(NotKicked(f"Auction {record.auction_id[:10]}... kicked after {now}"))

            if record.current_available == 0:
                if self.config.empty_take_noop:
                    logger.debug(f"Take on sold-out auction {record.auction_id[:10]}... is a no-op")
                    return 0
                self._reject(NothingToTake(f"Auction {record.auction_id[:10]}... is sold out"))

            amount_taken = record.current_available if max_amount is None else min(record.current_available, max_amount)

            price = self._price(record, now)
            if self.config.has_minimum_price and price < record.minimum_price:
                self._reject(PriceBelowMinimum(price, record.minimum_price))

            needed = self._amount_needed(record, amount_taken, price)
            if needed == 0:
                self._reject(ZeroNeeded(record.from_token.address, amount_taken))

            if self.hook.wants("pre_take"):
                logger.debug(f"pre_take hook: {amount_taken} for {needed}")
                self.hook.hook.pre_take(record.from_token.address, amount_taken, needed)

            if amount_taken > record.current_available:
                raise ArithmeticOverflow("take would underflow current_available")
            record.current_available -= amount_taken

            record.from_token.token.transfer(self.address, receiver, amount_taken)
            if callback is not None:
                callback.auction_take_callback(record.from_token.address, caller, amount_taken, needed, data)
            self.want.token.transfer_from(self.address, caller, record.receiver, needed)

            if self.hook.wants("post_take"):
                logger.debug(f"post_take hook: {amount_taken} for {needed}")
                self.hook.hook.post_take(self.want.address, amount_taken, needed)

            if self.storage is not None:
                self.storage.record_take(record, now, amount_taken, needed, caller)
            amount_left = record.current_available

        logger.info(
            f"Take on {record.auction_id[:10]}...: {amount_taken} for {needed} "
            f"(price={price}, left={amount_left})"
        )
        self.events.emit(AuctionTaken(
            timestamp=now,
            auction_id=record.auction_id,
            from_token=record.from_token.address,
            amount_taken=amount_taken,
            amount_needed=needed,
            amount_left=amount_left,
            taker=caller,
            receiver=receiver,
        ))
        return amount_taken

    # =========================================================================
    # Views
    # =========================================================================

    def is_enabled(self, from_token: TokenArg) -> bool:
        return self._find(from_token) is not None

    def is_active(self, from_token: TokenArg, now: Optional[int] = None) -> bool:
        """Whether the token's decay window is open at `now`."""
        now = self._now(now)
        record = self._snapshot(from_token)
        return record is not None and record.is_active(now, self.config.auction_length)

    def available(self, from_token: TokenArg, now: Optional[int] = None) -> int:
        """Unsold amount of an open window; 0 when not active."""
        now = self._now(now)
        record = self._snapshot(from_token)
        if record is None or not record.is_active(now, self.config.auction_length):
            return 0
        return record.current_available

    def state(self, from_token: TokenArg, now: Optional[int] = None) -> AuctionState:
        now = self._now(now)
        record = self._snapshot(from_token)
        if record is None:
            return AuctionState.UNINITIALIZED
        return record.state(now, self.config.auction_length)

    def auction_info(self, from_token: TokenArg, now: Optional[int] = None) -> AuctionInfo:
        """(from, to, kicked_at, available) for a sell token."""
        now = self._now(now)
        record = self._snapshot(from_token)
        if record is None:
            raise NotEnabled(f"No auction for {self._address_of(from_token)}")
        active = record.is_active(now, self.config.auction_length)
        return AuctionInfo(
            from_token=record.from_token.address,
            to_token=record.to_token.address,
            kicked_at=record.kicked_at,
            available=record.current_available if active else 0,
        )

    def get_record(self, from_token: TokenArg) -> Optional[AuctionRecord]:
        """Detached copy of a record."""
        return self._snapshot(from_token)

    def enabled_auctions(self) -> List[str]:
        """Enabled auction ids in enable order."""
        with self._registry_lock:
            return list(self._order)

    def stats(self, now: Optional[int] = None) -> dict:
        """Get registry statistics."""
        now = self._now(now)
        with self._registry_lock:
            live = [self.auctions[aid] for aid in self._order]
        records = []
        for record in live:
            with self._lock_for(record.auction_id):
                records.append(record.snapshot())
        active = [r for r in records if r.is_active(now, self.config.auction_length)]
        return {
            "enabled_auctions": len(records),
            "active_auctions": len(active),
            "available": sum(r.current_available for r in active),
            "auction_length": self.config.auction_length,
            "auction_cooldown": self.config.auction_cooldown,
            "starting_price": self.config.starting_price,
        }

    # =========================================================================
    # Sweep
    # =========================================================================

    def sweep(self, token: TokenLike, to: Optional[str] = None, now: Optional[int] = None) -> int:
        """
        Move the registry's whole balance of `token` out.

        Refused while the token has an open window, since that balance
        backs the lot being sold.

        Returns:
            Amount swept
        """
        now = self._now(now)
        to = normalize_address(to) if to else self.receiver
        record = self._find(token)
        if record is None:
            with self._atomic():
                amount = token.balance_of(self.address)
                if amount:
                    token.transfer(self.address, to, amount)
        else:
            with self._mutating(token, "sweep") as record:
                if record.is_active(now, self.config.auction_length):
                    self._reject(AuctionActive(f"Auction {record.auction_id[:10]}... is active"))
                amount = token.balance_of(self.address)
                if amount:
                    token.transfer(self.address, to, amount)
        logger.info(f"Swept {amount} of {token.address} to {to}")
        return amount

    # =========================================================================
    # Configuration
    # =========================================================================

    def _update_config(self, field_name: str, value: int, now: Optional[int]) -> None:
        now = self._now(now)
        with self._registry_lock:
            old = getattr(self.config, field_name)
            self.config = self.config.updated(**{field_name: value})
            if self.storage is not None:
                self.storage.save_config(self.config)
        logger.info(f"Config {field_name}: {old} -> {value}")
        self.events.emit(ConfigUpdated(timestamp=now, field_name=field_name, old_value=old, new_value=value))

    def set_starting_price(self, starting_price: int, now: Optional[int] = None) -> None:
        """Raises InvalidConfiguration for a zero price."""
        self._update_config("starting_price", starting_price, now)

    def set_auction_length(self, auction_length: int, now: Optional[int] = None) -> None:
        """Raises InvalidConfiguration unless 0 < length < cooldown."""
        self._update_config("auction_length", auction_length, now)

    def set_auction_cooldown(self, auction_cooldown: int, now: Optional[int] = None) -> None:
        """Raises InvalidConfiguration unless cooldown > length."""
        self._update_config("auction_cooldown", auction_cooldown, now)

    # =========================================================================
    # Persistence
    # =========================================================================

    @classmethod
    def restore(
        cls,
        storage,
        tokens: Iterable[TokenLike],
        *,
        hook: HookConfig = NO_HOOK,
        ledger=None,
        clock: Optional[Callable[[], int]] = None,
    ) -> "AuctionRegistry":
        """
        Rebuild a registry saved in `storage`.

        Args:
            storage: StorageManager holding a saved registry
            tokens: Collaborators for the settlement token and every sell token
            hook: Hook configuration (hooks are not persisted)
            ledger: Optional atomic() provider
            clock: Timestamp source

        Raises:
            InvalidConfiguration: storage is empty or a token is missing
        """
        saved = storage.load_registry()
        if saved is None:
            raise InvalidConfiguration(f"No registry saved in {storage.db_path}")

        by_address = {normalize_address(t.address): t for t in tokens}
        want = by_address.get(saved["want"])
        if want is None:
            raise InvalidConfiguration(f"Settlement token {saved['want']} not provided")

        registry = cls(
            want,
            saved["receiver"],
            saved["config"],
            address=saved["address"],
            hook=hook,
            ledger=ledger,
            clock=clock,
            storage=None,
        )
        for data in storage.load_records():
            record = AuctionRecord.from_dict(data, by_address)
            if record.from_token.token is None:
                raise InvalidConfiguration(f"Sell token {record.from_token.address} not provided")
            registry.auctions[record.auction_id] = record
            registry._by_token[record.from_token.address] = record.auction_id
            registry._order.append(record.auction_id)

        registry.storage = storage
        logger.info(f"Restored registry {registry.address[:10]}... with {len(registry._order)} auctions")
        return registry


__all__ = ["AuctionRegistry"]
