"""
Hashing and address primitives for the auction engine.

Provides:
- Keccak-256 (Ethereum-style) via pycryptodome
- 20-byte address handling (hex strings with 0x prefix)
- Deterministic auction identifiers

Auction identifiers mirror the EVM convention of hashing the packed
addresses: keccak256(from || to || registry). The registry address is part
of the preimage so the same sell token gets independent auctions in
different registries but only one entry in each.
"""

import secrets

from Crypto.Hash import keccak


# =============================================================================
# Constants
# =============================================================================

ADDRESS_SIZE = 20
ZERO_ADDRESS = "0x" + "00" * ADDRESS_SIZE


# =============================================================================
# Hashing
# =============================================================================


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).

    Used for: auction identifiers, address derivation.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Addresses
# =============================================================================


def hex_to_bytes(value: str) -> bytes:
    """Decode a hex string with or without 0x prefix."""
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


def bytes_to_hex(data: bytes) -> str:
    """Encode bytes as a 0x-prefixed lowercase hex string."""
    return "0x" + data.hex()


def normalize_address(address: str) -> str:
    """
    Canonicalize an address to lowercase 0x-prefixed form.

    Raises:
        ValueError: if the value is not 20 bytes of hex
    """
    raw = hex_to_bytes(address)
    if len(raw) != ADDRESS_SIZE:
        raise ValueError(f"Address must be {ADDRESS_SIZE} bytes, got {len(raw)}")
    return bytes_to_hex(raw)


def is_zero_address(address: str) -> bool:
    """True for the unset address."""
    return address is None or hex_to_bytes(address) == bytes(ADDRESS_SIZE)


def address_from_label(label: str) -> str:
    """Derive a stable address from a human label (last 20 bytes of keccak)."""
    return bytes_to_hex(keccak256(label.encode())[-ADDRESS_SIZE:])


def random_address() -> str:
    """Generate a random non-zero address."""
    return bytes_to_hex(secrets.token_bytes(ADDRESS_SIZE))


# =============================================================================
# Auction Identifiers
# =============================================================================


def compute_auction_id(from_token: str, to_token: str, registry: str) -> str:
    """
    Compute the lookup key for an auction.

    auction_id = keccak256(from || to || registry) over packed 20-byte addresses.

    Args:
        from_token: Address of the token being sold
        to_token: Address of the settlement token
        registry: Address of the owning registry

    Returns:
        32-byte identifier as 0x-prefixed hex
    """
    preimage = hex_to_bytes(from_token) + hex_to_bytes(to_token) + hex_to_bytes(registry)
    return bytes_to_hex(keccak256(preimage))


__all__ = [
    "ADDRESS_SIZE",
    "ZERO_ADDRESS",
    "keccak256",
    "hex_to_bytes",
    "bytes_to_hex",
    "normalize_address",
    "is_zero_address",
    "address_from_label",
    "random_address",
    "compute_auction_id",
]
