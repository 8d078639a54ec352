"""
Token collaborator interface.

The auction engine never owns balances. It only asks a token for its
decimals, queries balances during kick, and moves funds during take and
sweep. Any object with these methods can back a TokenRef.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenLike(Protocol):
    """Protocol for fungible token collaborators."""
    address: str

    def decimals(self) -> int:
        """Number of decimals of the raw unit (0..18)."""
        ...

    def balance_of(self, holder: str) -> int:
        """Raw balance held by `holder`."""
        ...

    def transfer(self, sender: str, to: str, amount: int) -> None:
        """Move `amount` from `sender` (the caller) to `to`."""
        ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        """Move `amount` from `owner` to `to` using `spender`'s allowance."""
        ...


__all__ = ["TokenLike"]
