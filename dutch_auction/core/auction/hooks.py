"""
Hooks - optional collaborators invoked by the registry.

A HookAdapter lets the owning strategy decide how much is sold at kick time
and do its own accounting around each take. Each callback is gated by a
flag in HookConfig, so an adapter only pays for the callbacks it enables.

A Taker is the buyer-side callback: when `take` is given one, it runs after
the sold tokens reach the recipient and before payment is pulled, which
lets a buyer fund the payment with the tokens it just received.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class HookAdapter(Protocol):
    """Strategy-side callbacks around kick and take."""

    def kickable(self, from_token: str) -> int:
        """Amount that would be made available by a kick right now."""
        ...

    def auction_kicked(self, from_token: str) -> int:
        """Prepare a kick and return the amount made available."""
        ...

    def pre_take(self, from_token: str, amount_to_take: int, amount_needed: int) -> None:
        """Called before any funds move."""
        ...

    def post_take(self, to_token: str, amount_taken: int, amount_needed: int) -> None:
        """Called after payment reached the receiver."""
        ...


@runtime_checkable
class Taker(Protocol):
    """Buyer-side callback for flash takes."""

    def auction_take_callback(
        self,
        from_token: str,
        sender: str,
        amount_taken: int,
        amount_needed: int,
        data: bytes,
    ) -> None:
        ...


@dataclass(frozen=True)
class HookConfig:
    """
    A hook plus the callbacks it wants.

    Attributes:
        hook: The adapter, None for no hook
        kickable: Use hook.kickable() instead of the registry balance
        kick: Use hook.auction_kicked() at kick time
        pre_take: Call hook.pre_take() before settlement
        post_take: Call hook.post_take() after settlement
    """
    hook: Optional[HookAdapter] = None
    kickable: bool = False
    kick: bool = False
    pre_take: bool = False
    post_take: bool = False

    @classmethod
    def all(cls, hook: HookAdapter) -> "HookConfig":
        """Enable every callback of `hook`."""
        return cls(hook=hook, kickable=True, kick=True, pre_take=True, post_take=True)

    def wants(self, callback: str) -> bool:
        """Whether the hook is present and `callback` is enabled."""
        return self.hook is not None and bool(getattr(self, callback))


NO_HOOK = HookConfig()


__all__ = ["HookAdapter", "Taker", "HookConfig", "NO_HOOK"]
